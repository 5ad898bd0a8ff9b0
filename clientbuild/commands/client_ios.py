import sys

from clientbuild.arguments import create_client_options
from clientbuild.logger import get_console
from clientbuild.src.api.build_service import BuildServiceApi
from clientbuild.src.api.client import ApiClient
from clientbuild.src.api.credential_store import CredentialStoreApi
from clientbuild.src.api.identity import IdentityProvider
from clientbuild.src.apple.apple_account_login import AppleDeveloperAuth
from clientbuild.src.apple.authentication_helper import AppleAuthenticator
from clientbuild.src.apple.developer_portal_api import DeveloperPortalAPI
from clientbuild.src.apple.signing_authority import SigningAuthority
from clientbuild.src.core.cert_handler import LocalCredentials
from clientbuild.src.core.errors import BusinessDenial, ClientBuildError
from clientbuild.src.core.orchestrator import ClientBuildOrchestrator
from clientbuild.src.core.reporter import RichReporter
from clientbuild.src.utils.config_loader import is_non_interactive, load_optional_overlay


def build_orchestrator(args, console) -> ClientBuildOrchestrator:
    """Wire the real services into the orchestrator."""
    interactive = not (args.non_interactive or is_non_interactive()) and sys.stdin.isatty()
    reporter = RichReporter(console, interactive=interactive)

    api = ApiClient()
    identity_provider = IdentityProvider(api)
    apple_auth = AppleDeveloperAuth()
    portal = DeveloperPortalAPI(apple_auth)

    return ClientBuildOrchestrator(
        authenticate=AppleAuthenticator(apple_auth, portal, reporter, interactive=interactive),
        identity_provider=identity_provider,
        authority=SigningAuthority(portal),
        credential_store=CredentialStoreApi(api, identity_provider),
        build_service=BuildServiceApi(api),
        overlay_loader=load_optional_overlay,
        reporter=reporter,
        options=create_client_options(args),
        local_credentials=LocalCredentials(),
    )


def run_client_ios_command(args) -> int:
    """Entry point for the client-ios command from CLI"""
    console = get_console()

    try:
        orchestrator = build_orchestrator(args, console)
        orchestrator.run()
    except BusinessDenial as e:
        console.print(f"[red]{e.message}[/]")
        return 1
    except ClientBuildError as e:
        step = f" ({e.step})" if e.step else ""
        console.print(f"[red]Error{step}:[/] {e.message}")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]\nClient build cancelled by user[/]")
        return 130

    return 0
