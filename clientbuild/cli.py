import argparse
import sys

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter

from clientbuild.arguments import add_client_arguments
from clientbuild.src.constants.cli_constants import (
    APP_DESCRIPTION,
    APP_NAME,
    __version__,
    get_banner_text,
)


class ClientBuildHelpFormatter(RichHelpFormatter):
    """Help formatter with the clientbuild colour scheme."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)
        self.console = Console(
            theme=Theme(
                {
                    "command": "bold cyan",
                    "argument": "green",
                    "option": "yellow",
                    "version": "blue",
                    "title": "bold magenta",
                }
            )
        )

    def start_section(self, heading):
        heading_text = Text(heading, style="title")
        super().start_section(str(heading_text))


def display_banner():
    console = Console()
    version_info = Text(f"v{__version__}", style="blue")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(get_banner_text(), "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME}: {APP_DESCRIPTION}",
        formatter_class=ClientBuildHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    client_parser = subparsers.add_parser(
        "client-ios",
        help="Build a custom iOS client",
        formatter_class=ClientBuildHelpFormatter,
        description=(
            "Build a custom version of the client for iOS using your own Apple credentials "
            "and install it on your mobile device using Safari."
        ),
    )
    add_client_arguments(client_parser)

    subparsers.add_parser(
        "setup",
        help="Set up clientbuild configuration",
        formatter_class=ClientBuildHelpFormatter,
        description="Interactive wizard to set up clientbuild directories and configuration.",
    )
    return parser


def main(argv=None):
    load_dotenv()

    argv = sys.argv[1:] if argv is None else argv
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    parser = create_cli_parser()
    args = parser.parse_args(argv)

    if args.command == "client-ios":
        from clientbuild.commands.client_ios import run_client_ios_command

        return run_client_ios_command(args)
    elif args.command == "setup":
        from clientbuild.commands.setup import run_setup_command

        return run_setup_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
