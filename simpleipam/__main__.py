"""Entry point for SimpleIPAM CLI."""

import logging
import sys
from pathlib import Path

USAGE = """\
Usage: simpleipam [--config PATH] [COMMAND]

Commands:
  (none)     Launch the terminal UI
  subnets    Print the subnet list and exit
  check      Probe the backend health endpoint
"""


def configure_logging(config) -> None:
    """Send logs to the configured file; the TUI owns the terminal."""
    root = logging.getLogger()
    if not config.logging.file:
        root.addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=config.logging.file,
        level=getattr(logging, config.logging.level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _login_interactively(session, console) -> bool:
    from rich.prompt import Prompt

    username = Prompt.ask("Username", console=console)
    password = Prompt.ask("Password", password=True, console=console)
    if session.login(username.strip(), password):
        return True
    console.print(f"[bold red]Login failed:[/bold red] {session.error}")
    return False


def print_subnets(config) -> int:
    from rich.console import Console
    from rich.table import Table

    from simpleipam.ipam_client import IPAMClient, IPAMError
    from simpleipam.session import SessionExpiredError, SessionManager

    console = Console()
    session = SessionManager.from_config(config, watch_expiry=False)
    if session.enabled and not _login_interactively(session, console):
        return 1

    client = IPAMClient(config, session)
    try:
        subnets = client.list_subnets()
    except (IPAMError, SessionExpiredError) as e:
        console.print(f"[bold red]Failed to load subnets:[/bold red] {e}")
        return 1

    table = Table(title=f"Subnets ({len(subnets)})")
    table.add_column("ID", style="dim")
    table.add_column("CIDR", style="bold cyan")
    table.add_column("Description")
    table.add_column("Updated", style="dim")
    for subnet in subnets:
        table.add_row(
            str(subnet.id), subnet.cidr, subnet.description or "-", subnet.updated_display,
        )
    console.print(table)
    return 0


def check_backend(config) -> int:
    from rich.console import Console

    from simpleipam.ipam_client import IPAMClient

    console = Console()
    client = IPAMClient(config)
    if client.check_health():
        console.print(f"[green]OK[/green] {client.health_url}")
        return 0
    console.print(f"[bold red]Unreachable:[/bold red] {client.health_url}")
    return 1


def main():
    """Main entry point."""
    from simpleipam.config import Config, ConfigError

    args = sys.argv[1:]
    config_path = None
    if "--config" in args:
        idx = args.index("--config")
        if idx + 1 >= len(args):
            print(USAGE, file=sys.stderr)
            sys.exit(2)
        config_path = Path(args[idx + 1])
        del args[idx:idx + 2]

    if args and args[0] in ("-h", "--help", "help"):
        print(USAGE)
        return

    # Load config
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        from rich.console import Console
        console = Console()
        console.print(f"\n[bold red]Configuration Error:[/bold red] {e}")
        console.print(
            "\n[yellow]Settings come from ~/.config/simpleipam/config.yaml"
            " and the IPAM_* environment variables.[/yellow]"
        )
        sys.exit(1)

    configure_logging(config)

    if args and args[0] == "subnets":
        sys.exit(print_subnets(config))

    if args and args[0] == "check":
        sys.exit(check_backend(config))

    if args:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    # Launch the TUI app
    from simpleipam.app import SimpleIPAMApp
    app = SimpleIPAMApp(config=config)
    app.run()


if __name__ == "__main__":
    main()
