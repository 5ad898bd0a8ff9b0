import pytest

from clientbuild.src.core.credentials import Credential, DistributionCertificate, PushKey, Tag
from clientbuild.src.core.tagger import (
    CredentialsUpdater,
    clear_tags,
    dirty_credentials,
    merge_fields,
    store_update_fn,
)

from conftest import FakeCredentialStore

CERT = DistributionCertificate(
    cert_id="c1", cert_p12="cDEy", cert_password="pw", serial_number="SERIAL1"
)
KEY = PushKey(key_id="KEY1", key_p8="p8")


class RecordingUpdate:
    def __init__(self):
        self.calls = []

    def __call__(self, credentials):
        self.calls.append(list(credentials))


def test_dirty_credentials_keeps_order_and_skips_absent():
    dirty_key = Credential.dirty(KEY)
    assert dirty_credentials([None, Credential.clean(CERT), dirty_key]) == [dirty_key]


def test_nothing_dirty_means_no_update_call():
    update = RecordingUpdate()
    updater = CredentialsUpdater(update)

    result = updater.update_all([Credential.clean(CERT), None, Credential.clean(KEY)])

    assert update.calls == []
    assert [c.tag for c in result] == [Tag.CLEAN, Tag.CLEAN]


def test_only_dirty_credentials_are_passed_in_a_single_call():
    update = RecordingUpdate()
    updater = CredentialsUpdater(update)

    result = updater.update_all([Credential.clean(CERT), Credential.dirty(KEY)])

    assert update.calls == [[Credential.dirty(KEY)]]
    assert all(not c.is_dirty for c in result)


def test_updater_refuses_to_persist_twice():
    updater = CredentialsUpdater(RecordingUpdate())
    updater.update_all([Credential.dirty(CERT)])

    with pytest.raises(RuntimeError):
        updater.update_all([Credential.dirty(KEY)])


def test_updater_is_a_no_op_on_its_own_output():
    update = RecordingUpdate()
    updater = CredentialsUpdater(update)

    cleaned = updater.update_all([Credential.dirty(CERT), Credential.dirty(KEY)])
    updater.update_all(cleaned)

    assert len(update.calls) == 1


def test_clear_tags_does_not_mutate_the_input():
    dirty = Credential.dirty(KEY)
    cleared = clear_tags([dirty, None])

    assert cleared == [Credential.clean(KEY)]
    assert dirty.is_dirty


def test_merge_fields_combines_records_over_the_base():
    merged = merge_fields([Credential.dirty(CERT), Credential.dirty(KEY)], {"teamId": "T1"})

    assert merged == {
        "teamId": "T1",
        "certId": "c1",
        "certP12": "cDEy",
        "certPassword": "pw",
        "distCertSerialNumber": "SERIAL1",
        "apnsKeyId": "KEY1",
        "apnsKeyP8": "p8",
    }


def test_store_update_fn_files_credentials_under_the_experience(context):
    store = FakeCredentialStore()

    store_update_fn(store, context)([Credential.dirty(KEY)])

    assert store.updates == [
        {
            "platform": "ios",
            "credentials": {"teamId": context.team_id, "apnsKeyId": "KEY1", "apnsKeyP8": "p8"},
            "metadata": [],
            "identity_keys": {
                "username": "jester",
                "experienceName": context.experience_name,
                "bundleIdentifier": context.bundle_identifier,
            },
        }
    ]
