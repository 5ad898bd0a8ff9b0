import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from clientbuild.logger import get_console
from clientbuild.src.core.errors import TransportFault

console = get_console()

PORTAL_URL = "https://developer.apple.com/services-account"
ACCOUNT_URL = f"{PORTAL_URL}/QH65B2/account"

# Service id of "Apple Push Notifications service (APNs)" on auth keys
APNS_SERVICE_ID = "U27F4V844T"


@dataclass
class Team:
    team_id: str
    name: str
    status: str
    type: str
    roles: List[str]


@dataclass
class Certificate:
    id: str
    serial_number: str
    certificate_type: str
    name: str
    content: Optional[bytes] = None  # DER, only present right after creation


@dataclass
class BundleId:
    id: str
    identifier: str
    name: str


@dataclass
class Device:
    id: str
    name: str
    udid: str
    status: str
    device_class: str


@dataclass
class AuthKey:
    key_id: str
    name: str
    services: List[str]


class DeveloperPortalAPI:
    """Apple Developer Portal API client"""

    def __init__(self, auth_instance):
        """Initialize with an Apple session, which may log in later"""
        self.auth = auth_instance
        self.session = auth_instance.session
        self.default_headers = {
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.5",
            "Content-Type": "application/vnd.api+json",
            "X-Requested-With": "XMLHttpRequest",
            "X-HTTP-Method-Override": "GET",
        }
        # Write calls need the CSRF tokens and no method override
        self.write_headers_base = {
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": "en-US,en;q=0.5",
            "Content-Type": "application/vnd.api+json",
            "X-Requested-With": "XMLHttpRequest",
            "Origin": "https://developer.apple.com",
        }
        self.legacy_headers = {
            "Accept": "application/json, text/javascript",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        }

    @property
    def write_headers(self) -> Dict[str, str]:
        # CSRF tokens only exist once the session is authenticated
        return {
            **self.write_headers_base,
            "csrf": str(self.auth.csrf),
            "csrf_ts": str(self.auth.csrf_ts),
        }

    def _post(self, url: str, what: str, expected=(200,), **kwargs) -> requests.Response:
        try:
            response = self.session.post(url, **kwargs)
        except requests.RequestException as e:
            raise TransportFault(f"Failed to {what}: {e}")

        if response.status_code not in expected:
            console.print(f"[red]Failed to {what}: {response.status_code}")
            console.print(f"[red]Error response: {response.text}")
            raise TransportFault(
                f"Failed to {what}: {response.status_code}", status_code=response.status_code
            )
        return response

    def _query(self, resource: str, team_id: str, params: str, what: str) -> List[Dict[str, Any]]:
        response = self._post(
            f"{PORTAL_URL}/v1/{resource}",
            what,
            json={"urlEncodedQueryParams": params, "teamId": team_id},
            headers=self.default_headers.copy(),
        )
        return response.json().get("data", [])

    def list_teams(self) -> List[Team]:
        """List all teams the authenticated user has access to"""
        console.print("[blue]Fetching teams from Developer Portal...")

        response = self._post(
            f"{ACCOUNT_URL}/getTeams",
            "fetch teams",
            json={"includeInMigrationTeams": 1},
            headers=self.legacy_headers,
        )
        data = response.json()
        if data.get("resultCode") != 0:
            console.print(f"[red]API error: {data}")
            raise TransportFault(f"Failed to fetch teams: {data.get('userString', data)}")

        teams = [
            Team(
                team_id=team["teamId"],
                name=team["name"],
                status=team["status"],
                type=team["entityType"],
                roles=team.get("userRoles", []),
            )
            for team in data.get("teams", [])
        ]
        console.print(f"[green]Found {len(teams)} teams")
        return teams

    def list_certificates(
        self, team_id: str, certificate_type: Optional[str] = None
    ) -> List[Certificate]:
        """List certificates for a team, optionally only one type (e.g. DISTRIBUTION)"""
        console.print(f"[blue]Fetching certificates for team {team_id}...")

        params = "limit=1000&sort=displayName"
        if certificate_type:
            params += f"&filter[certificateType]={certificate_type}"
        certificates = [
            Certificate(
                id=cert["id"],
                serial_number=cert["attributes"]["serialNumber"],
                certificate_type=cert["attributes"]["certificateType"],
                name=cert["attributes"]["name"],
            )
            for cert in self._query("certificates", team_id, params, "fetch certificates")
        ]

        console.print(f"[green]Found {len(certificates)} certificates")
        return certificates

    def create_certificate(
        self, team_id: str, csr_content: str, certificate_type: str = "DISTRIBUTION"
    ) -> Certificate:
        """Submit a signing request and return the issued certificate"""
        console.print(f"[blue]Requesting a new {certificate_type.lower()} certificate...")

        payload = {
            "data": {
                "type": "certificates",
                "attributes": {
                    "certificateType": certificate_type,
                    "csrContent": csr_content,
                    "teamId": team_id,
                },
            }
        }
        response = self._post(
            f"{PORTAL_URL}/v1/certificates",
            "create certificate",
            expected=(200, 201),
            json=payload,
            headers=self.write_headers,
        )

        cert = response.json().get("data")
        if not cert:
            raise TransportFault("Unexpected response format when creating certificate")
        attrs = cert["attributes"]
        console.print(f"[green]Created certificate {attrs['serialNumber']}")
        return Certificate(
            id=cert["id"],
            serial_number=attrs["serialNumber"],
            certificate_type=attrs["certificateType"],
            name=attrs.get("name", ""),
            content=base64.b64decode(attrs["certificateContent"]),
        )

    def find_bundle_id(self, team_id: str, identifier: str) -> Optional[BundleId]:
        bundles = self._query(
            "bundleIds", team_id, f"filter[identifier]={identifier}", "fetch bundle IDs"
        )
        # Filter is a prefix match, only take the exact identifier
        match = next((b for b in bundles if b["attributes"]["identifier"] == identifier), None)
        if match is None:
            return None
        return BundleId(
            id=match["id"],
            identifier=match["attributes"]["identifier"],
            name=match["attributes"]["name"],
        )

    def register_bundle_id(
        self, team_id: str, identifier: str, name: str, capabilities: List[str] = ()
    ) -> BundleId:
        """Register a new bundle ID (or get existing)"""
        console.print(f"[blue]Registering bundle ID {identifier}...")

        payload = {
            "data": {
                "type": "bundleIds",
                "attributes": {
                    "identifier": identifier,
                    "name": name,
                    "seedId": team_id,
                    "teamId": team_id,
                },
                "relationships": {
                    "bundleIdCapabilities": {
                        "data": [
                            {
                                "type": "bundleIdCapabilities",
                                "attributes": {"enabled": True, "settings": []},
                                "relationships": {
                                    "capability": {
                                        "data": {"type": "capabilities", "id": capability}
                                    }
                                },
                            }
                            for capability in capabilities
                        ]
                    }
                },
            }
        }

        response = self._post(
            f"{PORTAL_URL}/v1/bundleIds",
            "register bundle ID",
            expected=(200, 201, 409),
            json=payload,
            headers=self.write_headers,
        )

        if response.status_code == 409:
            error = (response.json().get("errors") or [{}])[0]
            if error.get("resultCode") != 9400:  # 9400: already exists
                console.print(f"[red]Bundle ID registration failed: {error}")
                raise TransportFault(
                    f"Bundle ID registration failed: {error.get('detail', error)}",
                    status_code=409,
                )
            console.print(f"[yellow]Bundle ID {identifier} exists, fetching existing one...")
            existing = self.find_bundle_id(team_id, identifier)
            if existing is None:
                raise TransportFault(f"No exact match found for bundle ID: {identifier}")
            return existing

        bundle = response.json().get("data")
        if not bundle:
            raise TransportFault("Unexpected response format when registering bundle ID")
        console.print(f"[green]Successfully registered new bundle ID: {identifier}")
        return BundleId(
            id=bundle["id"],
            identifier=bundle["attributes"]["identifier"],
            name=bundle["attributes"]["name"],
        )

    def list_devices(self, team_id: str, device_types: List[str] = None) -> List[Device]:
        """
        List enabled devices for a team
        device_types: List of device types to filter by (e.g. ['IPHONE', 'IPAD'])
        """
        console.print(f"[blue]Fetching devices for team {team_id}...")

        if device_types is None:
            device_types = ["IPHONE", "IPAD", "IPOD"]

        data = self._query(
            "devices",
            team_id,
            "limit=1000&offset=0&filter[status]=ENABLED",
            "fetch devices",
        )
        devices = [
            Device(
                id=device["id"],
                name=device["attributes"]["name"],
                udid=device["attributes"]["udid"],
                status=device["attributes"]["status"],
                device_class=device["attributes"]["deviceClass"],
            )
            for device in data
            if device["attributes"]["deviceClass"] in device_types
        ]

        console.print(f"[green]Found {len(data)} devices (showing {len(devices)})")
        return devices

    def list_keys(self, team_id: str) -> List[AuthKey]:
        """List auth keys (used for push notifications) for a team"""
        console.print(f"[blue]Fetching keys for team {team_id}...")

        response = self._post(
            f"{ACCOUNT_URL}/auth/key/list",
            "fetch keys",
            json={"teamId": team_id, "pageSize": 500, "pageNumber": 1, "sort": "name=asc"},
            headers=self.legacy_headers,
        )
        keys = [
            AuthKey(
                key_id=key["keyId"],
                name=key.get("keyName", ""),
                services=[s.get("id", "") for s in key.get("services", [])],
            )
            for key in response.json().get("keys", [])
        ]
        console.print(f"[green]Found {len(keys)} keys")
        return keys

    def create_push_key(self, team_id: str, name: str) -> AuthKey:
        console.print(f"[blue]Creating push key {name}...")

        response = self._post(
            f"{ACCOUNT_URL}/auth/key/create",
            "create push key",
            json={
                "name": name,
                "serviceConfigurations": [
                    {"serviceId": APNS_SERVICE_ID, "identifiers": {}, "isNew": True}
                ],
                "teamId": team_id,
            },
            headers={**self.legacy_headers, "csrf": self.write_headers["csrf"]},
        )
        key = response.json().get("key")
        if not key:
            raise TransportFault("Unexpected response format when creating push key")
        console.print(f"[green]Created push key {key['keyId']}")
        return AuthKey(key_id=key["keyId"], name=key.get("keyName", name), services=[APNS_SERVICE_ID])

    def download_key(self, team_id: str, key_id: str) -> str:
        """Download the p8 contents of a key. Apple only allows this once per key."""
        try:
            response = self.session.get(
                f"{ACCOUNT_URL}/auth/key/download",
                params={"teamId": team_id, "keyId": key_id},
            )
        except requests.RequestException as e:
            raise TransportFault(f"Failed to download key {key_id}: {e}")

        if response.status_code != 200:
            console.print(f"[red]Failed to download key: {response.status_code}")
            raise TransportFault(
                f"Failed to download key {key_id}: {response.status_code}",
                status_code=response.status_code,
            )
        return response.text
