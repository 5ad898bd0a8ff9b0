import json
from pathlib import Path
from typing import Optional

from clientbuild.logger import get_console
from clientbuild.src.api.client import ApiClient
from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.models import Identity
from clientbuild.src.utils.config_loader import get_state_path

console = get_console()


class IdentityProvider:
    """Looks up the user logged in to the build service, if any.

    The login state file only holds the session secret; the user's details come
    from the build service. The answer is cached for the lifetime of the provider.
    """

    def __init__(self, client: ApiClient, state_path: Optional[Path] = None):
        self.client = client
        self.state_path = Path(state_path or get_state_path())
        self._user: Optional[Identity] = None
        self._resolved = False

    def _session_secret(self) -> Optional[str]:
        if not self.state_path.exists():
            return None
        try:
            with open(self.state_path) as f:
                state = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            console.print(f"[yellow]Ignoring unreadable login state {self.state_path}: {e}")
            return None
        return (state.get("auth") or {}).get("sessionSecret")

    def get_current_user(self) -> Optional[Identity]:
        if self._resolved:
            return self._user

        secret = self._session_secret()
        if secret:
            try:
                info = self.client.get(
                    "auth/userInfo", Identity(username="", session_secret=secret)
                )
            except TransportFault as e:
                # An expired session means logged out, anything else is a real failure
                if e.status_code not in (401, 403):
                    raise
                console.print("[yellow]Login session expired, continuing anonymously")
                info = None
            if info and info.get("username"):
                self._user = Identity(
                    username=info["username"],
                    email=info.get("email"),
                    session_secret=secret,
                )

        self._resolved = True
        return self._user
