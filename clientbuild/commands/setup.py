import shutil
from pathlib import Path

import toml
from rich import box
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from clientbuild.logger import get_console
from clientbuild.src.constants.cli_constants import DEFAULT_API_BASE_URL
from clientbuild.src.utils.config_loader import get_config_path, get_home_dir

console = get_console()


def ensure_directory_exists(directory_path: Path) -> bool:
    """Create directory if it doesn't exist. Returns whether it existed."""
    if not directory_path.exists():
        directory_path.mkdir(parents=True, exist_ok=True)
        return False
    return True


def create_or_update_config(config_path: Path) -> bool:
    """Create or update the config file based on user input."""
    config_data = {}
    if config_path.exists():
        try:
            config_data = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            console.print(f"[yellow]Warning: Could not parse existing config: {e}[/yellow]")
            if not Confirm.ask("Would you like to create a new configuration?", default=True):
                return False
            config_data = {}

    console.print(
        Panel("Let's configure your clientbuild settings", style="bold green", box=box.ROUNDED)
    )

    console.print("\n[bold blue]Apple Developer Configuration[/bold blue]")
    apple = config_data.setdefault("apple", {})
    apple["apple_id"] = Prompt.ask(
        "Apple ID (email)", default=apple.get("apple_id", "changeme@apple.com")
    )

    team_id = Prompt.ask(
        "Apple Developer team ID (leave empty to choose on every build)",
        default=apple.get("team_id", ""),
    )
    if team_id:
        apple["team_id"] = team_id
    else:
        apple.pop("team_id", None)

    if Confirm.ask("Do you want to set your Apple ID password?", default=False):
        apple["apple_password"] = Prompt.ask("Apple ID password", password=True)
    elif "apple_password" in apple:
        if Confirm.ask("Remove existing password from config?", default=False):
            del apple["apple_password"]

    console.print("\n[bold blue]Build Service Configuration[/bold blue]")
    api = config_data.setdefault("api", {})
    api["base_url"] = Prompt.ask(
        "Build service API URL", default=api.get("base_url", DEFAULT_API_BASE_URL)
    )

    with open(config_path, "w") as f:
        toml.dump(config_data, f)
    return True


def setup_directory_structure(base_dir: Path):
    """Set up the clientbuild directory structure and config file."""
    cert_dir = base_dir / "certificates"
    directories = [
        (base_dir, "clientbuild base directory"),
        (cert_dir / "distribution", "Distribution certificate"),
        (cert_dir / "push", "Push notification key"),
        (base_dir / "sessions", "Apple sessions"),
    ]

    table = Table(title="Directory Structure", box=box.ROUNDED)
    table.add_column("Directory", style="cyan")
    table.add_column("Status", style="green")

    for dir_path, _ in directories:
        existed = ensure_directory_exists(dir_path)
        table.add_row(str(dir_path), "✓ Already exists" if existed else "✓ Created")

    console.print(table)

    config_path = get_config_path()
    if config_path.exists():
        console.print(f"[yellow]Configuration file already exists at:[/yellow] {config_path}")
        if not Confirm.ask("Do you want to edit the existing configuration?", default=True):
            return
    else:
        console.print(f"[yellow]Creating new configuration file at:[/yellow] {config_path}")

    if create_or_update_config(config_path):
        console.print("[bold green]✓ Configuration saved successfully![/bold green]")
    else:
        console.print("[bold red]Failed to save configuration.[/bold red]")


def import_certificates(cert_dir: Path):
    """Copy an existing distribution certificate and push key into the certificate directory."""
    dist_dir = cert_dir / "distribution"
    push_dir = cert_dir / "push"
    for dir_path in (dist_dir, push_dir):
        ensure_directory_exists(dir_path)

    p12 = Prompt.ask("Path to a distribution certificate (.p12), empty to skip", default="")
    if p12:
        source = Path(p12).expanduser()
        if source.exists():
            shutil.copyfile(source, dist_dir / "cert.p12")
            password = Prompt.ask("Certificate password", password=True)
            (dist_dir / "cert_pass.txt").write_text(password)
        else:
            console.print(f"[red]× {source} not found[/red]")

    p8 = Prompt.ask("Path to a push notification key (.p8), empty to skip", default="")
    if p8:
        source = Path(p8).expanduser()
        if source.exists():
            shutil.copyfile(source, push_dir / "key.p8")
            (push_dir / "key_id.txt").write_text(Prompt.ask("Key ID"))
        else:
            console.print(f"[red]× {source} not found[/red]")

    table = Table(title="Local Credentials", box=box.ROUNDED)
    table.add_column("Type", style="cyan")
    table.add_column("Status")
    for label, path in (
        ("Distribution Certificate", dist_dir / "cert.p12"),
        ("Push Key", push_dir / "key.p8"),
    ):
        table.add_row(
            label,
            "[bold green]✓ Found[/bold green]" if path.exists() else "[bold red]Not found[/bold red]",
        )
    console.print(table)


def run_setup_command(args):
    """Run the setup command."""
    console.print(
        Panel.fit(
            Text("clientbuild Setup Wizard", style="bold magenta"),
            subtitle="Let's get you ready to build!",
            border_style="green",
            padding=(1, 8),
        )
    )

    console.print("\n[bold]What would you like to set up?[/bold]")
    console.print("[1] Directory structure and configuration")
    console.print("[2] Import certificates")
    console.print("[3] Complete setup (both options)")

    choice = IntPrompt.ask("Enter your choice", choices=["1", "2", "3"], default=3)

    base_dir = get_home_dir()
    if choice in [1, 3]:
        setup_directory_structure(base_dir)

    if choice in [2, 3]:
        import_certificates(base_dir / "certificates")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(
        "\n[bold cyan]What's next?[/bold cyan]\n\n"
        "• To build a custom client: [green]clientbuild client-ios path/to/project[/green]\n"
        "• For more help: [green]clientbuild --help[/green]"
    )
    return 0
