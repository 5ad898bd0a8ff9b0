from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class DistributionCertificate:
    cert_id: Optional[str]
    cert_p12: str  # base64 encoded p12
    cert_password: str
    serial_number: str
    team_id: Optional[str] = None

    def fields(self) -> Dict[str, Any]:
        return {
            "certId": self.cert_id,
            "certP12": self.cert_p12,
            "certPassword": self.cert_password,
            "distCertSerialNumber": self.serial_number,
        }

    @property
    def label(self) -> str:
        return f"Distribution certificate (serial {self.serial_number})"


@dataclass(frozen=True)
class PushKey:
    key_id: str
    key_p8: str
    team_id: Optional[str] = None

    def fields(self) -> Dict[str, Any]:
        return {"apnsKeyId": self.key_id, "apnsKeyP8": self.key_p8}

    @property
    def label(self) -> str:
        return f"Push key {self.key_id}"


CredentialRecord = Union[DistributionCertificate, PushKey]


class Tag(Enum):
    CLEAN = "clean"  # reused as-is, nothing to persist
    DIRTY = "dirty"  # produced during this run, needs persisting


@dataclass(frozen=True)
class Credential:
    """A selected credential together with its persistence tag.

    An absent credential is represented by ``None`` rather than a Credential.
    """

    record: CredentialRecord
    tag: Tag = Tag.CLEAN

    @classmethod
    def clean(cls, record: CredentialRecord) -> "Credential":
        return cls(record, Tag.CLEAN)

    @classmethod
    def dirty(cls, record: CredentialRecord) -> "Credential":
        return cls(record, Tag.DIRTY)

    @property
    def is_dirty(self) -> bool:
        return self.tag is Tag.DIRTY

    def cleared(self) -> "Credential":
        return replace(self, tag=Tag.CLEAN)

    def fields(self) -> Dict[str, Any]:
        return self.record.fields()

    @property
    def label(self) -> str:
        return self.record.label
