"""
Main entry point for the scdesk browser shell.

Provides CLI interface and application startup logic.
"""

import logging
from pathlib import Path
import sys

import click
from rich.console import Console
from rich.markup import escape

from .config.manager import ConfigManager
from .core.app import Application
from .storage.models import DownloadStatus
from .utils.logging import log_system_info, setup_logging

console = Console()
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="scdesk")
@click.option(
    "--config-dir",
    type=click.Path(exists=False, path_type=Path),
    help="Configuration directory path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="INFO",
    help="Logging level",
)
@click.option("--json-logs", is_flag=True, help="Write the log file as JSON lines")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, log_level: str, json_logs: bool) -> None:
    """SoundCloud desktop shell CLI."""
    ctx.ensure_object(dict)

    # Setup logging
    setup_logging(level=log_level)

    # Initialize configuration
    config_manager = ConfigManager(config_dir=config_dir)
    ctx.obj["config_manager"] = config_manager
    ctx.obj["log_level"] = log_level
    ctx.obj["json_logs"] = json_logs


@cli.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Open the browser shell."""
    config_manager = ctx.obj["config_manager"]

    # GUI sessions also keep a rotating log file
    setup_logging(
        level=ctx.obj["log_level"],
        log_file=config_manager.log_file,
        structured_logging=ctx.obj["json_logs"],
    )
    log_system_info()

    try:
        app = Application(config_manager=config_manager)
        console.print("[green]Starting browser shell[/green]")
        app.start_gui()

    except KeyboardInterrupt:
        console.print("\n[yellow]Application stopped by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        console.print(f"[red]Error starting application: {escape(str(e))}[/red]")
        logger.exception("Application startup failed")
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option(
    "--output", "-o", type=click.Path(file_okay=False, path_type=Path), help="Output directory"
)
@click.option(
    "--flac/--no-flac", default=None, help="Use FLAC if available (default from config)"
)
@click.option("--timeout", type=float, help="Give up after this many seconds")
@click.pass_context
def download(
    ctx: click.Context,
    url: str,
    output: Path | None,
    flac: bool | None,
    timeout: float | None,
) -> None:
    """Download a track, set or profile from URL."""
    config_manager = ctx.obj["config_manager"]

    try:
        app = Application(config_manager=config_manager)
        item = app.run_headless_download(
            url,
            output=output,
            use_lossless=flac,
            echo=lambda line: console.print(escape(line), highlight=False),
            timeout=timeout,
        )

        if item is None:
            sys.exit(2)
        if item.status is not DownloadStatus.COMPLETED:
            console.print(f"[red]✗[/red] Download {item.status.value}: {escape(item.url)}")
            sys.exit(1)

        console.print(f"[green]✓[/green] Downloaded {escape(item.file_name)} to {item.destination}")

    except KeyboardInterrupt:
        console.print("\n[yellow]Download stopped by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logger.exception("Headless download failed")
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Check the downloader and transcoder are installed."""
    config_manager = ctx.obj["config_manager"]

    try:
        app = Application(config_manager=config_manager)
        results = app.check_dependencies()

        for result in results:
            if result.found:
                console.print(f"[green]✓[/green] {result.name}: {result.location}")
            else:
                console.print(f"[red]✗[/red] {result.name} not found")
                console.print(f"  [dim]Searched: {escape(result.searched)}[/dim]")

        if not all(result.found for result in results):
            sys.exit(1)

    except Exception as e:
        console.print(f"[red]Error checking dependencies: {escape(str(e))}[/red]")
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
