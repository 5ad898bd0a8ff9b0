import pytest

from clientbuild.src.core.credentials import Credential, DistributionCertificate, PushKey
from clientbuild.src.core.eligibility import check_eligibility
from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.models import (
    BuildRequest,
    BuildResult,
    DisabledServicesReport,
    start_case,
)
from clientbuild.src.core.submitter import submit_build_request

from conftest import FakeBuildService

CERT = Credential.clean(
    DistributionCertificate(cert_id="c1", cert_p12="cDEy", cert_password="pw", serial_number="S1")
)


def make_request(context, register, push_key=None):
    return BuildRequest(
        identity=None,
        context=context,
        distribution_cert=CERT,
        push_key=push_key,
        device_identifiers=("udid-1",),
        should_register_new_device=register,
        notify_email="anon@example.com",
    )


class StaticBuildService:
    def __init__(self, response):
        self.response = response

    def create_ios_request(self, user, payload):
        return self.response


def test_allowed_build():
    eligibility = check_eligibility(FakeBuildService(), None, "T1")
    assert eligibility.allowed
    assert eligibility.reason is None


def test_denied_build_carries_the_reason():
    service = FakeBuildService(allowed=False, error_message="quota exceeded")

    eligibility = check_eligibility(service, None, "T1")

    assert not eligibility.allowed
    assert eligibility.reason == "quota exceeded"
    assert service.eligibility_calls == [(None, "T1")]


@pytest.mark.parametrize(
    "kwargs", [{}, {"registration_url": "a", "status_url": "b"}]
)
def test_build_result_needs_exactly_one_url(kwargs):
    with pytest.raises(ValueError):
        BuildResult(**kwargs)


def test_registration_request_returns_registration_url(context):
    result = submit_build_request(FakeBuildService(), make_request(context, register=True))

    assert result.needs_device_registration
    assert result.status_url is None


def test_status_request_returns_status_url(context):
    result = submit_build_request(FakeBuildService(), make_request(context, register=False))

    assert result.status_url == "https://builds.example.test/status/42"
    assert result.registration_url is None


def test_response_not_matching_the_request_is_rejected(context):
    service = StaticBuildService({"statusUrl": "https://builds.example.test/status/1"})

    with pytest.raises(TransportFault):
        submit_build_request(service, make_request(context, register=True))


def test_payload_shape(context):
    key = Credential.dirty(PushKey(key_id="K1", key_p8="p8"))
    payload = make_request(context, register=False, push_key=key).to_payload()

    assert payload == {
        "appleTeamId": context.team_id,
        "appleTeamName": "Test Team",
        "addUdid": False,
        "bundleIdentifier": context.bundle_identifier,
        "email": "anon@example.com",
        "customAppConfig": {},
        "distributionCert": CERT.fields(),
        "pushKey": {"apnsKeyId": "K1", "apnsKeyP8": "p8"},
        "udids": ["udid-1"],
    }


def test_disabled_services_keep_the_first_reason():
    report = DisabledServicesReport()

    assert report.disable("pushNotifications", "first") is True
    assert report.disable("pushNotifications", "second") is False

    assert len(report) == 1
    assert report.reason_for("pushNotifications") == "first"
    assert report.rows() == [("Push Notifications", "first")]


def test_start_case():
    assert start_case("googleMaps") == "Google Maps"
    assert start_case("pushNotifications") == "Push Notifications"
