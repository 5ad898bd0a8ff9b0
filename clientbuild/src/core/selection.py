from typing import Callable, List, Optional, Tuple

from clientbuild.logger import get_console
from clientbuild.src.core.credentials import Credential, DistributionCertificate, PushKey
from clientbuild.src.core.models import Identity, TeamContext
from clientbuild.src.core.reporter import Reporter

console = get_console()

# A choice is a label shown to the operator and the action that produces the credential
Choice = Tuple[str, Callable[[], Optional[Credential]]]


class CredentialSelector:
    """Picks the distribution certificate and push key for a build.

    Each credential is either reused from the credential store (clean), produced
    during this run by generating or uploading it (dirty), or skipped (None).
    Failures from the signing authority propagate to the caller untouched.
    """

    def __init__(
        self,
        authority,
        credential_store,
        reporter: Reporter,
        identity: Optional[Identity] = None,
        local_credentials=None,
    ):
        self.authority = authority
        self.credential_store = credential_store
        self.reporter = reporter
        self.identity = identity
        self.local_credentials = local_credentials

    def select_distribution_cert(self, context: TeamContext) -> Optional[Credential]:
        stored = self._valid_distribution_certs(context)
        choices: List[Choice] = [
            (f"Use existing {cert.label}", _reuse(cert)) for cert in stored
        ]
        choices.append(
            (
                "Let clientbuild generate a new distribution certificate",
                lambda: Credential.dirty(self.authority.create_distribution_certificate(context)),
            )
        )
        local_cert = (
            self.local_credentials.distribution_cert() if self.local_credentials else None
        )
        if local_cert is not None:
            choices.append(
                (f"Upload my own certificate ({local_cert.serial_number})", _upload(local_cert))
            )
        choices.append(("I don't want to provide a distribution certificate", lambda: None))

        return self._pick("Select an iOS distribution certificate to use", choices)

    def select_push_key(self, context: TeamContext) -> Optional[Credential]:
        stored = self._valid_push_keys(context)
        choices: List[Choice] = [(f"Use existing {key.label}", _reuse(key)) for key in stored]
        choices.append(
            (
                "Let clientbuild generate a new push key",
                lambda: Credential.dirty(self.authority.create_push_key(context)),
            )
        )
        local_key = self.local_credentials.push_key() if self.local_credentials else None
        if local_key is not None:
            choices.append((f"Upload my own push key ({local_key.key_id})", _upload(local_key)))
        choices.append(("I don't want to upload push credentials", lambda: None))

        return self._pick("Select an Apple push notifications key to use", choices)

    def _pick(self, message: str, choices: List[Choice]) -> Optional[Credential]:
        index = self.reporter.choose(message, [label for label, _ in choices])
        label, action = choices[index]
        console.log(f"[cyan]{label}")
        return action()

    def _valid_distribution_certs(self, context: TeamContext) -> List[DistributionCertificate]:
        # Stored credentials belong to a user, anonymous actors have none
        if self.identity is None:
            return []
        stored = self.credential_store.list_distribution_certs(self.identity, context)
        if not stored:
            return []
        serials = set(self.authority.list_distribution_cert_serials(context))
        return [cert for cert in stored if cert.serial_number in serials]

    def _valid_push_keys(self, context: TeamContext) -> List[PushKey]:
        if self.identity is None:
            return []
        stored = self.credential_store.list_push_keys(self.identity, context)
        if not stored:
            return []
        key_ids = set(self.authority.list_push_key_ids(context))
        return [key for key in stored if key.key_id in key_ids]


def _reuse(record) -> Callable[[], Credential]:
    return lambda: Credential.clean(record)


def _upload(record) -> Callable[[], Credential]:
    return lambda: Credential.dirty(record)
