import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from clientbuild.src.core.credentials import Credential


@dataclass(frozen=True)
class Identity:
    """Authenticated user of the build service. ``None`` stands for an anonymous actor."""

    username: str
    email: Optional[str] = None
    session_secret: Optional[str] = None


@dataclass(frozen=True)
class AuthData:
    """Result of authenticating against the signing authority"""

    team_id: str
    team_name: Optional[str]
    apple_id: str
    apple_id_password: Optional[str]


@dataclass(frozen=True)
class TeamContext:
    team_id: str
    team_name: Optional[str]
    apple_id: str
    apple_id_password: Optional[str]
    bundle_identifier: str
    experience_name: str
    username: Optional[str] = None

    @property
    def identity_keys(self) -> Dict[str, Optional[str]]:
        """Keys the credential store files credentials under"""
        return {
            "username": self.username,
            "experienceName": self.experience_name,
            "bundleIdentifier": self.bundle_identifier,
        }


@dataclass(frozen=True)
class DeviceRecord:
    name: str
    device_number: str


def start_case(name: str) -> str:
    """``pushNotifications`` -> ``Push Notifications``"""
    words = re.findall(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])", name)
    return " ".join(word[:1].upper() + word[1:] for word in words)


class DisabledServicesReport:
    """Services that won't work in the built client, with the reason why.

    Entries are only ever added. The first reason recorded for a service wins.
    """

    def __init__(self):
        self._reasons: Dict[str, str] = {}

    def disable(self, service: str, reason: str) -> bool:
        """Record a disabled service. Returns False if it was already recorded."""
        if service in self._reasons:
            return False
        self._reasons[service] = reason
        return True

    def reason_for(self, service: str) -> Optional[str]:
        return self._reasons.get(service)

    def rows(self) -> List[Tuple[str, str]]:
        return [(start_case(service), reason) for service, reason in self._reasons.items()]

    def as_dict(self) -> Dict[str, str]:
        return dict(self._reasons)

    def __contains__(self, service: str) -> bool:
        return service in self._reasons

    def __len__(self) -> int:
        return len(self._reasons)

    def __bool__(self) -> bool:
        return bool(self._reasons)


@dataclass(frozen=True)
class BuildRequest:
    identity: Optional[Identity]
    context: TeamContext
    distribution_cert: Credential
    push_key: Optional[Credential]
    device_identifiers: Tuple[str, ...]
    should_register_new_device: bool
    notify_email: str
    config_overlay: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body for the build service's create-ios-request call"""
        return {
            "appleTeamId": self.context.team_id,
            "appleTeamName": self.context.team_name,
            "addUdid": self.should_register_new_device,
            "bundleIdentifier": self.context.bundle_identifier,
            "email": self.notify_email,
            "customAppConfig": self.config_overlay or {},
            "distributionCert": self.distribution_cert.fields(),
            "pushKey": self.push_key.fields() if self.push_key else None,
            "udids": list(self.device_identifiers),
        }


@dataclass(frozen=True)
class BuildResult:
    """Where the operator goes next. Exactly one of the two urls is set."""

    registration_url: Optional[str] = None
    status_url: Optional[str] = None

    def __post_init__(self):
        if bool(self.registration_url) == bool(self.status_url):
            raise ValueError(
                "BuildResult needs exactly one of registration_url or status_url"
            )

    @property
    def needs_device_registration(self) -> bool:
        return self.registration_url is not None

    @property
    def url(self) -> str:
        return self.registration_url or self.status_url


@dataclass
class BuildOutcome:
    """Everything a finished run produced, for the caller and for tests"""

    result: BuildResult
    request: BuildRequest
    credentials: List[Credential] = field(default_factory=list)
    disabled_services: Dict[str, str] = field(default_factory=dict)
