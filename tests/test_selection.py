import pytest

from clientbuild.src.core.credentials import Credential, DistributionCertificate, PushKey, Tag
from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.selection import CredentialSelector

from conftest import FakeAuthority, FakeCredentialStore, FakeReporter


class FakeLocalCredentials:
    def __init__(self, cert=None, key=None):
        self.cert = cert
        self.key = key

    def distribution_cert(self):
        return self.cert

    def push_key(self):
        return self.key


def cert(serial):
    return DistributionCertificate(
        cert_id=f"id-{serial}", cert_p12="cDEy", cert_password="pw", serial_number=serial
    )


def test_stored_certificate_still_on_the_portal_is_reused_clean(context, user):
    selector = CredentialSelector(
        FakeAuthority(cert_serials=["S1"]),
        FakeCredentialStore(dist_certs=[cert("S1")]),
        FakeReporter(),
        identity=user,
    )

    selected = selector.select_distribution_cert(context)

    assert selected.tag is Tag.CLEAN
    assert selected.record.serial_number == "S1"


def test_revoked_stored_certificate_is_not_offered(context, user):
    reporter = FakeReporter()
    authority = FakeAuthority(cert_serials=["OTHER"])
    selector = CredentialSelector(
        authority, FakeCredentialStore(dist_certs=[cert("S1")]), reporter, identity=user
    )

    selected = selector.select_distribution_cert(context)

    _, choices = reporter.choose_calls[0]
    assert not any(choice.startswith("Use existing") for choice in choices)
    assert selected.tag is Tag.DIRTY
    assert "create_distribution_certificate" in authority.calls


def test_anonymous_actor_never_queries_the_store(context):
    store = FakeCredentialStore(dist_certs=[cert("S1")])
    authority = FakeAuthority(cert_serials=["S1"])
    selector = CredentialSelector(authority, store, FakeReporter(), identity=None)

    selected = selector.select_distribution_cert(context)

    assert store.list_calls == 0
    assert "list_distribution_cert_serials" not in authority.calls
    assert selected.is_dirty


def test_uploaded_certificate_is_dirty(context, user):
    local = FakeLocalCredentials(cert=cert("LOCAL"))
    selector = CredentialSelector(
        FakeAuthority(),
        FakeCredentialStore(),
        FakeReporter(choices=["Upload my own"]),
        identity=user,
        local_credentials=local,
    )

    selected = selector.select_distribution_cert(context)

    assert selected.is_dirty
    assert selected.record.serial_number == "LOCAL"


def test_declining_a_push_key_returns_none(context, user):
    reporter = FakeReporter(choices=["I don't want"])
    selector = CredentialSelector(FakeAuthority(), FakeCredentialStore(), reporter, identity=user)

    assert selector.select_push_key(context) is None


def test_uploaded_push_key_is_offered_when_present(context, user):
    local = FakeLocalCredentials(key=PushKey(key_id="LOCALKEY", key_p8="p8"))
    reporter = FakeReporter(choices=["Upload my own"])
    selector = CredentialSelector(
        FakeAuthority(), FakeCredentialStore(), reporter, identity=user, local_credentials=local
    )

    selected = selector.select_push_key(context)

    assert selected == Credential.dirty(PushKey(key_id="LOCALKEY", key_p8="p8"))


def test_generation_failure_propagates(context, user):
    authority = FakeAuthority()
    authority.failures["create_push_key"] = TransportFault("Apple said no", 403)
    selector = CredentialSelector(authority, FakeCredentialStore(), FakeReporter(), identity=user)

    with pytest.raises(TransportFault):
        selector.select_push_key(context)
