from typing import Any, Dict, Optional

import requests

from clientbuild.logger import get_console
from clientbuild.src.core.errors import TransportFault
from clientbuild.src.core.models import Identity
from clientbuild.src.utils.config_loader import get_api_base_url

console = get_console()


class ApiClient:
    """Thin JSON client for the build service API"""

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.session = session or requests.Session()
        self.default_headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _headers(self, user: Optional[Identity]) -> Dict[str, str]:
        headers = self.default_headers.copy()
        if user is not None and user.session_secret:
            headers["expo-session"] = user.session_secret
        return headers

    def get(self, path: str, user: Optional[Identity] = None, params=None) -> Any:
        return self._request("GET", path, user, params=params)

    def post(self, path: str, payload: Dict[str, Any], user: Optional[Identity] = None) -> Any:
        return self._request("POST", path, user, json=payload)

    def _request(self, method: str, path: str, user: Optional[Identity], **kwargs) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, headers=self._headers(user), **kwargs)
        except requests.RequestException as e:
            raise TransportFault(f"{method} {url} failed: {e}")

        if not 200 <= response.status_code < 300:
            console.print(f"[red]{method} {path} failed: {response.status_code}")
            raise TransportFault(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        # 204 and other empty successes carry nothing to decode
        if response.status_code == 204 or not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            raise TransportFault(f"{method} {path} returned a non-JSON response")
        # API v2 wraps results in {"data": ...}
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body


def _error_message(response: requests.Response) -> str:
    try:
        errors = response.json().get("errors") or []
        if errors:
            return errors[0].get("message", response.text)
    except ValueError:
        pass
    return response.text
