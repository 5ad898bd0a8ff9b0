import getpass
from typing import Optional

from clientbuild.logger import get_console
from clientbuild.src.apple.apple_account_login import AppleDeveloperAuth
from clientbuild.src.apple.developer_portal_api import DeveloperPortalAPI, Team
from clientbuild.src.core.errors import AuthError
from clientbuild.src.core.models import AuthData
from clientbuild.src.core.reporter import Reporter
from clientbuild.src.utils.config_loader import get_apple_credentials, get_team_id

console = get_console()


class AppleAuthenticator:
    """Logs in to the Apple Developer Portal and picks the team to build for.

    Credentials come from the command line, environment or config file and are
    prompted for when missing and input is allowed.
    """

    def __init__(
        self,
        auth: AppleDeveloperAuth,
        portal: DeveloperPortalAPI,
        reporter: Reporter,
        interactive: bool = True,
    ):
        self.auth = auth
        self.portal = portal
        self.reporter = reporter
        self.interactive = interactive

    def __call__(self, options) -> AuthData:
        credentials = get_apple_credentials(options.apple_id)
        apple_id = credentials["apple_id"]
        apple_password = credentials["apple_password"]

        if not apple_id:
            if not self.interactive:
                raise AuthError("No Apple ID configured. Pass --apple-id or set CLIENTBUILD_APPLE_ID.")
            apple_id = self.reporter.ask("Apple ID")

        if not apple_password:
            console.print("[yellow]No Apple password found in configuration.[/]")
            if not self.interactive:
                raise AuthError(
                    "NON_INTERACTIVE mode detected. Set CLIENTBUILD_APPLE_PASSWORD to log in."
                )
            apple_password = getpass.getpass("Enter Apple ID password: ")

        console.print(f"Authenticating with Apple ID: {apple_id}")
        ask_code = (lambda: self.reporter.ask("Enter the verification code")) if self.interactive else None
        self.auth.authenticate(apple_id, apple_password, ask_code=ask_code)
        console.print("[green]Authentication verified successfully[/]")

        team = self._select_team(get_team_id(options.team_id))
        return AuthData(
            team_id=team.team_id,
            team_name=team.name,
            apple_id=apple_id,
            apple_id_password=apple_password,
        )

    def _select_team(self, team_id: Optional[str]) -> Team:
        teams = self.portal.list_teams()
        if not teams:
            raise AuthError("This Apple ID is not a member of any developer team")

        if team_id:
            team = next((t for t in teams if t.team_id == team_id), None)
            if team is None:
                raise AuthError(f"Apple ID has no access to team {team_id}")
            return team

        if len(teams) == 1:
            return teams[0]

        index = self.reporter.choose(
            "Which Apple Developer team do you want to use?",
            [f"{t.name} ({t.team_id}) {t.type}" for t in teams],
        )
        return teams[index]
