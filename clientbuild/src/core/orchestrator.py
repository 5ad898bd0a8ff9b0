import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from clientbuild.logger import get_console
from clientbuild.src.constants.cli_constants import DISABLED_SERVICES_DOCS_URL
from clientbuild.src.core.credentials import Credential
from clientbuild.src.core.devices import DeviceEnrollment, negotiate_device_enrollment
from clientbuild.src.core.eligibility import check_eligibility
from clientbuild.src.core.errors import (
    BusinessDenial,
    ClientBuildError,
    ConfigError,
    MissingCredentialError,
    ValidationFault,
)
from clientbuild.src.core.models import (
    AuthData,
    BuildOutcome,
    BuildRequest,
    BuildResult,
    DisabledServicesReport,
    Identity,
    TeamContext,
)
from clientbuild.src.core.reporter import Reporter
from clientbuild.src.core.selection import CredentialSelector
from clientbuild.src.core.submitter import submit_build_request
from clientbuild.src.core.tagger import CredentialsUpdater, clear_tags, store_update_fn

console = get_console()

EMAIL_PATTERN = re.compile(r".+@.+")


def generate_bundle_identifier(team_id: str) -> str:
    return f"dev.expo.client.{team_id.lower()}"


def get_experience_name(identity: Optional[Identity], team_id: str) -> str:
    owner = identity.username if identity else "anonymous"
    return f"@{owner}/expo-client-{team_id}"


def validate_email(value: str) -> str:
    value = value.strip()
    if not EMAIL_PATTERN.search(value):
        raise ValidationFault("That doesn't look like a valid email.")
    return value


@dataclass(frozen=True)
class ClientBuildOptions:
    project_dir: Path = Path(".")
    config_path: Optional[Path] = None
    apple_id: Optional[str] = None
    team_id: Optional[str] = None

    @property
    def overlay_path(self) -> Path:
        return self.config_path or self.project_dir / "app.json"


@dataclass
class BuildRun:
    """State accumulated by a single orchestration run"""

    disabled: DisabledServicesReport = field(default_factory=DisabledServicesReport)
    overlay: Optional[Dict[str, Any]] = None
    auth: Optional[AuthData] = None
    identity: Optional[Identity] = None
    context: Optional[TeamContext] = None
    distribution_cert: Optional[Credential] = None
    push_key: Optional[Credential] = None
    credentials: List[Credential] = field(default_factory=list)
    email: Optional[str] = None
    enrollment: Optional[DeviceEnrollment] = None
    request: Optional[BuildRequest] = None
    result: Optional[BuildResult] = None
    completed_steps: List[str] = field(default_factory=list)


class Step(NamedTuple):
    name: str
    action: Callable[[BuildRun], None]
    # Shown as a spinner while the step runs; steps that prompt have none
    status: Optional[str] = None


class ClientBuildOrchestrator:
    """Runs the client build flow as a fixed sequence of steps.

    Every step reads and writes the shared BuildRun. A ClientBuildError raised by
    a step aborts the run; the error is tagged with the step name and re-raised.
    Nothing is submitted unless every step before submission succeeded.
    """

    def __init__(
        self,
        authenticate: Callable[[ClientBuildOptions], AuthData],
        identity_provider,
        authority,
        credential_store,
        build_service,
        overlay_loader: Callable[[Path], Optional[Dict[str, Any]]],
        reporter: Reporter,
        options: Optional[ClientBuildOptions] = None,
        local_credentials=None,
    ):
        self.authenticate = authenticate
        self.identity_provider = identity_provider
        self.authority = authority
        self.credential_store = credential_store
        self.build_service = build_service
        self.overlay_loader = overlay_loader
        self.reporter = reporter
        self.options = options or ClientBuildOptions()
        self.local_credentials = local_credentials

    @property
    def steps(self) -> List[Step]:
        return [
            Step("overlay", self._resolve_overlay, "Finding custom configuration for the client..."),
            Step("authenticate", self._authenticate),
            Step("eligibility", self._check_eligibility, "Checking if a new build can be requested..."),
            Step("app", self._ensure_app, "Ensuring the app exists on the Apple Developer Portal..."),
            Step("credentials", self._select_credentials),
            Step("disabled-services", self._record_disabled_services),
            Step("persist", self._persist_credentials, "Saving credentials..."),
            Step("email", self._resolve_email),
            Step("devices", self._negotiate_devices),
            Step("submit", self._submit, "Submitting the build request..."),
            Step("report", self._render),
        ]

    def run(self) -> BuildOutcome:
        run = BuildRun()
        for step in self.steps:
            try:
                if step.status:
                    with self.reporter.step(step.status):
                        step.action(run)
                else:
                    step.action(run)
            except ClientBuildError as e:
                e.step = step.name
                console.log(f"[red]Client build aborted during '{step.name}'")
                raise
            run.completed_steps.append(step.name)

        return BuildOutcome(
            result=run.result,
            request=run.request,
            credentials=run.credentials,
            disabled_services=run.disabled.as_dict(),
        )

    def _resolve_overlay(self, run: BuildRun) -> None:
        path = self.options.overlay_path
        try:
            run.overlay = self.overlay_loader(path)
        except ConfigError as e:
            self.reporter.warn(e.message)
            run.overlay = None

        if run.overlay is not None:
            self.reporter.success(f"Found custom configuration for the client at {path}")
        else:
            self.reporter.warn("Unable to find custom configuration for the client.")

        ios_config = ((run.overlay or {}).get("ios") or {}).get("config") or {}
        if not ios_config.get("googleMapsApiKey"):
            run.disabled.disable(
                "googleMaps",
                f"ios.config.googleMapsApiKey does not exist in configuration file found in {path}"
                if run.overlay is not None
                else "No custom configuration file could be found. You will need to provide "
                "a json file with a valid ios.config.googleMapsApiKey field.",
            )

    def _authenticate(self, run: BuildRun) -> None:
        run.auth = self.authenticate(self.options)
        run.identity = self.identity_provider.get_current_user()
        if run.identity is None:
            console.log("[yellow]Not logged in, continuing as an anonymous user")

    def _check_eligibility(self, run: BuildRun) -> None:
        eligibility = check_eligibility(self.build_service, run.identity, run.auth.team_id)
        if not eligibility.allowed:
            raise BusinessDenial(eligibility.reason)

    def _ensure_app(self, run: BuildRun) -> None:
        team_id = run.auth.team_id
        run.context = TeamContext(
            team_id=team_id,
            team_name=run.auth.team_name,
            apple_id=run.auth.apple_id,
            apple_id_password=run.auth.apple_id_password,
            bundle_identifier=generate_bundle_identifier(team_id),
            experience_name=get_experience_name(run.identity, team_id),
            username=run.identity.username if run.identity else None,
        )
        self.authority.ensure_app_exists(run.context, enable_push_notifications=True)

    def _select_credentials(self, run: BuildRun) -> None:
        selector = CredentialSelector(
            self.authority,
            self.credential_store,
            self.reporter,
            identity=run.identity,
            local_credentials=self.local_credentials,
        )
        run.distribution_cert = selector.select_distribution_cert(run.context)
        if run.distribution_cert is None:
            raise MissingCredentialError(
                "A distribution certificate is required to build the client."
            )
        run.push_key = selector.select_push_key(run.context)

    def _record_disabled_services(self, run: BuildRun) -> None:
        # Anonymous credentials are never stored, so push can't work without a login
        if run.push_key is None:
            run.disabled.disable("pushNotifications", "you did not upload your push credentials")
        elif run.identity is None:
            run.disabled.disable(
                "pushNotifications", "we require you to be logged in to store push credentials"
            )

    def _persist_credentials(self, run: BuildRun) -> None:
        selected = [c for c in (run.distribution_cert, run.push_key) if c is not None]
        if run.identity is None:
            run.credentials = clear_tags(selected)
            return
        updater = CredentialsUpdater(store_update_fn(self.credential_store, run.context))
        run.credentials = updater.update_all(selected)

    def _resolve_email(self, run: BuildRun) -> None:
        if run.identity is not None and run.identity.email:
            run.email = run.identity.email
            return

        while run.email is None:
            answer = self.reporter.ask(
                "Please enter an email address to notify, when the build is completed"
            )
            try:
                run.email = validate_email(answer or "")
            except ValidationFault as e:
                self.reporter.warn(e.message)

    def _negotiate_devices(self, run: BuildRun) -> None:
        run.enrollment = negotiate_device_enrollment(self.authority, run.context, self.reporter)

    def _submit(self, run: BuildRun) -> None:
        run.request = BuildRequest(
            identity=run.identity,
            context=run.context,
            distribution_cert=run.distribution_cert,
            push_key=run.push_key,
            device_identifiers=run.enrollment.device_identifiers,
            should_register_new_device=run.enrollment.should_register_new_device,
            notify_email=run.email,
            config_overlay=run.overlay,
        )
        run.result = submit_build_request(self.build_service, run.request)

    def _render(self, run: BuildRun) -> None:
        reporter = self.reporter
        if run.disabled:
            reporter.newline()
            reporter.warn("These services will be disabled in your custom client:")
            reporter.table(["Service", "Reason"], run.disabled.rows())
            reporter.info(f"See {DISABLED_SERVICES_DOCS_URL} for more details.")

        reporter.newline()
        reporter.qr_code(run.result.url)
        if run.result.needs_device_registration:
            reporter.info(
                "Open the following link on your iOS device (or scan the QR code) and "
                "follow the instructions to install the development profile:"
            )
            reporter.newline()
            reporter.link(run.result.registration_url)
            reporter.newline()
            reporter.info("Please note that you can only register one iOS device per request.")
            reporter.info(
                "After you register your device, we'll start building your client, "
                "and you'll receive an email when it's ready to install."
            )
        else:
            reporter.info("Your custom client is being built! 🛠")
            reporter.info(
                "Open this link on your iOS device (or scan the QR code) to view build "
                "logs and install the client:"
            )
            reporter.newline()
            reporter.link(run.result.status_url)
        reporter.newline()
