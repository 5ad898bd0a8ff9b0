from typing import Any, Dict, List, Optional, Tuple

from clientbuild.logger import get_console
from clientbuild.src.api.client import ApiClient
from clientbuild.src.core.credentials import DistributionCertificate, PushKey
from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.models import Identity, TeamContext

console = get_console()

DIST_CERT_FIELDS = ("certP12", "certPassword", "distCertSerialNumber")
PUSH_KEY_FIELDS = ("apnsKeyId", "apnsKeyP8")


class CredentialStoreApi:
    """Credentials stored for a user on the build service.

    The user's credentials are fetched once per team and split by type, so
    listing certificates and push keys costs a single request.
    """

    def __init__(self, client: ApiClient, identity_provider):
        self.client = client
        self.identity_provider = identity_provider
        self._cache: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}

    def _user_credentials(self, identity: Identity, context: TeamContext) -> List[Dict[str, Any]]:
        key = (identity.username, context.team_id)
        if key not in self._cache:
            data = self.client.get(
                "credentials/ios/userCredentials",
                identity,
                params={"appleTeamId": context.team_id},
            )
            if data is not None and not isinstance(data, list):
                raise TransportFault("Unexpected stored credential format")
            self._cache[key] = data or []
        return self._cache[key]

    def _records(
        self, identity: Identity, context: TeamContext, kind: str, required: Tuple[str, ...]
    ) -> List[Dict[str, Any]]:
        records = []
        for item in self._user_credentials(identity, context):
            if not isinstance(item, dict) or item.get("type") != kind:
                continue
            missing = [name for name in required if not item.get(name)]
            if missing:
                console.print(
                    f"[yellow]Ignoring stored {kind} {item.get('id', '')} "
                    f"missing {', '.join(missing)}"
                )
                continue
            records.append(item)
        return records

    def list_distribution_certs(
        self, identity: Identity, context: TeamContext
    ) -> List[DistributionCertificate]:
        return [
            DistributionCertificate(
                cert_id=item.get("id"),
                cert_p12=item["certP12"],
                cert_password=item["certPassword"],
                serial_number=item["distCertSerialNumber"],
                team_id=item.get("teamId"),
            )
            for item in self._records(identity, context, "dist-cert", DIST_CERT_FIELDS)
        ]

    def list_push_keys(self, identity: Identity, context: TeamContext) -> List[PushKey]:
        return [
            PushKey(key_id=item["apnsKeyId"], key_p8=item["apnsKeyP8"], team_id=item.get("teamId"))
            for item in self._records(identity, context, "push-key", PUSH_KEY_FIELDS)
        ]

    def update_credentials_for_platform(
        self,
        platform: str,
        credentials: Dict[str, Any],
        metadata: List[Any],
        identity_keys: Dict[str, Optional[str]],
    ) -> None:
        self.client.post(
            "credentials/update",
            {
                "platform": platform,
                "credentials": credentials,
                "metadata": metadata,
                **identity_keys,
            },
            self.identity_provider.get_current_user(),
        )
        # Later listings must see what was just stored
        self._cache.clear()
