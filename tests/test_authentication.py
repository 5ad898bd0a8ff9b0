from unittest.mock import MagicMock

import pytest

from clientbuild.src.apple.authentication_helper import AppleAuthenticator
from clientbuild.src.apple.developer_portal_api import Team
from clientbuild.src.core.errors import AuthError
from clientbuild.src.core.orchestrator import ClientBuildOptions

from conftest import FakeReporter


def team(team_id, name="Team"):
    return Team(team_id=team_id, name=name, status="active", type="company", roles=[])


@pytest.fixture(autouse=True)
def apple_env(tmp_path, monkeypatch):
    monkeypatch.setenv("CLIENTBUILD_HOME", str(tmp_path))
    monkeypatch.setenv("CLIENTBUILD_APPLE_PASSWORD", "apple-secret")
    monkeypatch.delenv("CLIENTBUILD_APPLE_ID", raising=False)
    monkeypatch.delenv("CLIENTBUILD_TEAM_ID", raising=False)


def make(teams, reporter=None, interactive=True):
    portal = MagicMock()
    portal.list_teams.return_value = teams
    auth = MagicMock()
    return AppleAuthenticator(auth, portal, reporter or FakeReporter(), interactive), auth


def test_single_team_is_picked_without_asking():
    reporter = FakeReporter()
    authenticate, auth = make([team("T1", "Solo")], reporter)

    data = authenticate(ClientBuildOptions(apple_id="dev@example.com"))

    assert (data.team_id, data.team_name, data.apple_id) == ("T1", "Solo", "dev@example.com")
    assert auth.authenticate.call_args.args == ("dev@example.com", "apple-secret")
    assert reporter.choose_calls == []


def test_operator_chooses_between_teams():
    reporter = FakeReporter(choices=[1])
    authenticate, _ = make([team("T1"), team("T2")], reporter)

    assert authenticate(ClientBuildOptions(apple_id="dev@example.com")).team_id == "T2"


def test_configured_team_must_be_accessible():
    authenticate, _ = make([team("T1")])

    with pytest.raises(AuthError):
        authenticate(ClientBuildOptions(apple_id="dev@example.com", team_id="NOPE"))


def test_apple_id_is_asked_for_when_missing():
    reporter = FakeReporter(answers=["asked@example.com"])
    authenticate, _ = make([team("T1")], reporter)

    assert authenticate(ClientBuildOptions()).apple_id == "asked@example.com"


def test_missing_apple_id_fails_without_input():
    authenticate, auth = make([team("T1")], interactive=False)

    with pytest.raises(AuthError):
        authenticate(ClientBuildOptions())
    auth.authenticate.assert_not_called()
