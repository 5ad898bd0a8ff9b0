from dataclasses import dataclass
from typing import List, Tuple

from clientbuild.src.core.models import DeviceRecord, TeamContext
from clientbuild.src.core.reporter import Reporter


@dataclass(frozen=True)
class DeviceEnrollment:
    device_identifiers: Tuple[str, ...]
    should_register_new_device: bool


def negotiate_device_enrollment(
    authority, context: TeamContext, reporter: Reporter
) -> DeviceEnrollment:
    """Decide whether a new device has to be registered before the build is usable.

    With no registered devices registration is mandatory and nobody is asked.
    Otherwise the operator decides, defaulting to yes.
    """
    devices: List[DeviceRecord] = authority.list_devices(context)
    identifiers = tuple(device.device_number for device in devices)
    reporter.newline()

    if not devices:
        reporter.info(
            "There are no devices registered to your Apple Developer account. "
            "Please follow the instructions below to register an iOS device."
        )
        return DeviceEnrollment(identifiers, should_register_new_device=True)

    reporter.info(
        "Custom builds of the client can only be installed on devices which have "
        "been registered with Apple at build-time."
    )
    reporter.info("These devices are currently registered on your Apple Developer account:")
    reporter.table(["Name", "Identifier"], [(d.name, d.device_number) for d in devices])

    register = reporter.confirm(
        "Would you like to register a new device to use the client with?", default=True
    )
    return DeviceEnrollment(identifiers, should_register_new_device=register is not False)
