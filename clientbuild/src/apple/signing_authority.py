from datetime import datetime
from typing import List

from clientbuild.logger import get_console
from clientbuild.src.apple.developer_portal_api import APNS_SERVICE_ID, BundleId, DeveloperPortalAPI
from clientbuild.src.core.cert_handler import export_p12, generate_password, generate_signing_request
from clientbuild.src.core.credentials import DistributionCertificate, PushKey
from clientbuild.src.core.models import DeviceRecord, TeamContext

console = get_console()

APP_NAME_PREFIX = "Expo Client"


class SigningAuthority:
    """What the client build flow needs from the Apple Developer Portal"""

    def __init__(self, portal: DeveloperPortalAPI):
        self.portal = portal

    def ensure_app_exists(
        self, context: TeamContext, enable_push_notifications: bool = True
    ) -> BundleId:
        """Register the bundle ID, or reuse it when it already exists. Safe to repeat."""
        capabilities = ["PUSH_NOTIFICATIONS"] if enable_push_notifications else []
        return self.portal.register_bundle_id(
            context.team_id,
            context.bundle_identifier,
            f"{APP_NAME_PREFIX} {context.team_id}",
            capabilities=capabilities,
        )

    def list_distribution_cert_serials(self, context: TeamContext) -> List[str]:
        return [
            cert.serial_number
            for cert in self.portal.list_certificates(context.team_id, "DISTRIBUTION")
        ]

    def create_distribution_certificate(self, context: TeamContext) -> DistributionCertificate:
        private_key, csr = generate_signing_request(
            common_name=f"{APP_NAME_PREFIX} {context.team_id}", email=context.apple_id
        )
        certificate = self.portal.create_certificate(context.team_id, csr, "DISTRIBUTION")
        password = generate_password()
        return DistributionCertificate(
            cert_id=certificate.id,
            cert_p12=export_p12(certificate.content, private_key, password),
            cert_password=password,
            serial_number=certificate.serial_number,
            team_id=context.team_id,
        )

    def list_push_key_ids(self, context: TeamContext) -> List[str]:
        return [
            key.key_id
            for key in self.portal.list_keys(context.team_id)
            if APNS_SERVICE_ID in key.services
        ]

    def create_push_key(self, context: TeamContext) -> PushKey:
        # Key names only allow alphanumerics and spaces
        name = f"Expo Push Key {datetime.now().strftime('%Y%m%d%H%M%S')}"
        key = self.portal.create_push_key(context.team_id, name)
        return PushKey(
            key_id=key.key_id,
            key_p8=self.portal.download_key(context.team_id, key.key_id),
            team_id=context.team_id,
        )

    def list_devices(self, context: TeamContext) -> List[DeviceRecord]:
        return [
            DeviceRecord(name=device.name, device_number=device.udid)
            for device in self.portal.list_devices(context.team_id)
        ]
