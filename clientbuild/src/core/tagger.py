from typing import Any, Callable, Dict, Iterable, List, Optional

from clientbuild.logger import get_console
from clientbuild.src.constants.cli_constants import IOS_PLATFORM
from clientbuild.src.core.credentials import Credential
from clientbuild.src.core.models import TeamContext

console = get_console()

UpdateFn = Callable[[List[Credential]], None]


def dirty_credentials(credentials: Iterable[Optional[Credential]]) -> List[Credential]:
    """Credentials produced during this run, in selection order"""
    return [c for c in credentials if c is not None and c.is_dirty]


def clear_tags(credentials: Iterable[Optional[Credential]]) -> List[Credential]:
    """Mark everything clean without persisting anything"""
    return [c.cleared() for c in credentials if c is not None]


def merge_fields(
    credentials: Iterable[Credential], base: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    merged = dict(base or {})
    for credential in credentials:
        merged.update(credential.fields())
    return merged


class CredentialsUpdater:
    """Persists dirty credentials through ``update_fn``, once.

    ``update_fn`` receives only the dirty credentials and is not called at all
    when there are none. A second call on the same updater is refused so a run
    can never write to the store twice.
    """

    def __init__(self, update_fn: UpdateFn):
        self.update_fn = update_fn
        self._persisted = False

    def update_all(self, credentials: Iterable[Optional[Credential]]) -> List[Credential]:
        credentials = [c for c in credentials if c is not None]
        to_update = dirty_credentials(credentials)
        if not to_update:
            return credentials

        if self._persisted:
            raise RuntimeError("Credentials were already persisted during this run")

        self.update_fn(to_update)
        self._persisted = True
        return clear_tags(credentials)


def store_update_fn(credential_store, context: TeamContext) -> UpdateFn:
    """Build the update callback that merges all dirty fields into one store call"""

    def update(credentials: List[Credential]) -> None:
        payload = merge_fields(credentials, {"teamId": context.team_id})
        console.log(
            f"[blue]Saving {', '.join(c.label for c in credentials)} for {context.username}"
        )
        credential_store.update_credentials_for_platform(
            IOS_PLATFORM, payload, [], context.identity_keys
        )

    return update
