from typing import Any, Dict, Optional

from clientbuild.src.api.client import ApiClient
from clientbuild.src.core.models import Identity


class BuildServiceApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def is_allowed_to_build(self, user: Optional[Identity], team_id: str) -> Dict[str, Any]:
        """Returns ``{"isAllowed": bool, "errorMessage": str}``"""
        return self.client.post("client-build/allowed-to-build", {"appleTeamId": team_id}, user)

    def create_ios_request(self, user: Optional[Identity], payload: Dict[str, Any]) -> Dict[str, Any]:
        """Returns ``{"registrationUrl": ...}`` or ``{"statusUrl": ...}``"""
        return self.client.post("client-build/create-ios-request", payload, user)
