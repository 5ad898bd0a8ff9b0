from clientbuild.src.core.devices import negotiate_device_enrollment
from clientbuild.src.core.models import DeviceRecord

from conftest import FakeAuthority, FakeReporter


def test_no_devices_forces_registration_without_asking(context):
    reporter = FakeReporter()

    enrollment = negotiate_device_enrollment(FakeAuthority(), context, reporter)

    assert enrollment.should_register_new_device is True
    assert enrollment.device_identifiers == ()
    assert reporter.confirm_calls == []


def test_operator_can_decline_registration(context, iphone):
    reporter = FakeReporter(confirms=[False])

    enrollment = negotiate_device_enrollment(FakeAuthority(devices=[iphone]), context, reporter)

    assert enrollment.should_register_new_device is False
    assert enrollment.device_identifiers == (iphone.device_number,)
    assert len(reporter.confirm_calls) == 1


def test_unanswered_question_defaults_to_registering(context, iphone):
    reporter = FakeReporter(confirms=[None])

    enrollment = negotiate_device_enrollment(FakeAuthority(devices=[iphone]), context, reporter)

    assert enrollment.should_register_new_device is True


def test_registered_devices_are_listed(context, iphone):
    ipad = DeviceRecord(name="iPad", device_number="ipad-udid")
    reporter = FakeReporter(confirms=[True])

    negotiate_device_enrollment(FakeAuthority(devices=[iphone, ipad]), context, reporter)

    assert reporter.tables == [
        (["Name", "Identifier"], [(iphone.name, iphone.device_number), ("iPad", "ipad-udid")])
    ]
