from pathlib import Path

from clientbuild.src.core.orchestrator import ClientBuildOptions


def add_client_arguments(parser):
    """Add all client-build arguments to an existing parser."""
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Project directory holding app.json [default: current directory]",
    )

    parser.add_argument(
        "--apple-id",
        type=str,
        help="Apple ID username (set the password in CLIENTBUILD_APPLE_PASSWORD) [default: from config]",
    )

    parser.add_argument(
        "--team-id",
        type=str,
        help="Apple Developer team to build for [default: ask when there are several]",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Custom configuration file for the client [default: <project_dir>/app.json]",
    )

    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; use defaults and fail when input is required [default: disabled]",
    )


def create_client_options(args) -> ClientBuildOptions:
    """Convert parsed arguments to ClientBuildOptions"""
    return ClientBuildOptions(
        project_dir=args.project_dir,
        config_path=args.config,
        apple_id=args.apple_id,
        team_id=args.team_id,
    )
