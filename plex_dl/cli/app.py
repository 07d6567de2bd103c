"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from plex_dl import __version__
from plex_dl.api.client import PlexAPIClient
from plex_dl.core.pipeline import DownloadPipeline, PipelineResult
from plex_dl.exceptions import ConfigurationError, PlexDlError
from plex_dl.media.downloader import (
    BrowserTrigger,
    Downloader,
    DryRunTrigger,
    close_connection_pool,
)
from plex_dl.models.config import DownloaderConfig
from plex_dl.models.stats import DownloadStats
from plex_dl.storage.config_manager import ConfigManager
from plex_dl.web.injector import inject_into_html
from plex_dl.web.server import run_server

from .formatters import (
    print_config,
    print_parts_table,
    print_result_message,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("plex_dl")

app = typer.Typer(
    name="plex-dl",
    help=(
        "Download the files behind a Plex Web page. Use 'plex-dl <command> --help'"
        " for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "plex-dl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict) -> DownloaderConfig:
    options = {key: value for key, value in cli_options.items() if value is not None}
    try:
        return ConfigManager(CONFIG_FILE).load_config(options)
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e


async def _run_pipeline(
    config: DownloaderConfig, page_url: str, trigger, stats: DownloadStats
) -> PipelineResult:
    async with PlexAPIClient(config.account_url, config.timeout) as api_client:
        pipeline = DownloadPipeline(api_client, trigger, stats)
        return await pipeline.run(page_url, config.token)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Plex Downloader CLI"""
    if version:
        console.print(f"[bold]plex-dl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("plex_dl").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]plex-dl init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        print_config(CONFIG_FILE, ConfigManager(CONFIG_FILE).get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    token: str = typer.Argument(..., help="Your myPlexAccessToken from Plex Web."),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Default directory for downloaded parts."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite existing configuration without asking."
    ),
):
    """Initialize configuration with a Plex account token."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {"token": token}
    if output_dir:
        settings["output_dir"] = output_dir
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]plex-dl download '<PLEX WEB URL>'[/cyan]")


@app.command(name="download")
def download_command(
    page_url: str = typer.Argument(
        ..., help="Address of the Plex Web page showing the item."
    ),
    token: str | None = typer.Option(
        None, "--token", "-t", help="Account token (overrides the config file)."
    ),
    output_dir: str | None = typer.Option(
        None, "-o", "--output", help="Directory to save the parts in."
    ),
    browser: bool = typer.Option(
        False, "--browser", help="Open each part in the browser instead of saving it."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Resolve the parts without downloading anything."
    ),
):
    """Download every file part of the item shown at a Plex Web address."""
    config = _load_config(
        {
            "token": token,
            "output_dir": output_dir,
            "trigger": "browser" if browser else None,
            "dry_run": dry_run,
        }
    )

    async def _download_async() -> tuple[PipelineResult, DownloadStats, float]:
        stats = DownloadStats(dry_run=config.dry_run)
        start_time = time.monotonic()
        use_progress = not config.dry_run and config.trigger == "file"
        async with ProgressManager(
            console=console, dry_run=not use_progress
        ) as progress_manager:
            try:
                if config.dry_run:
                    trigger = DryRunTrigger(stats)
                elif config.trigger == "browser":
                    trigger = BrowserTrigger(stats)
                else:
                    trigger = Downloader(
                        Path(config.output_dir), stats, progress_manager
                    )
                result = await _run_pipeline(config, page_url, trigger, stats)
            finally:
                await close_connection_pool()
        return result, stats, time.monotonic() - start_time

    result, stats, duration = asyncio.run(_download_async())
    print_result_message(console, result)
    if not result.ok:
        raise typer.Exit(code=1)
    print_summary_panel(stats, duration)


@app.command()
def parts(
    page_url: str = typer.Argument(
        ..., help="Address of the Plex Web page showing the item."
    ),
    token: str | None = typer.Option(
        None, "--token", "-t", help="Account token (overrides the config file)."
    ),
):
    """List the download URLs of an item without downloading it."""
    config = _load_config({"token": token, "dry_run": True})
    trigger = DryRunTrigger()
    result = asyncio.run(_run_pipeline(config, page_url, trigger, trigger.stats))
    if not result.ok:
        print_result_message(console, result)
        raise typer.Exit(code=1)
    print_parts_table(trigger.urls)


@app.command()
def inject(
    html_file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Saved Plex Web page to modify."
    ),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Where to write the page (default: in place)."
    ),
    endpoint: str | None = typer.Option(
        None, "--endpoint", help="Companion service URL the button posts to."
    ),
):
    """Add the 'Descargar' button to a Plex Web HTML page."""
    config = _load_config({})
    endpoint = endpoint or f"http://{config.host}:{config.port}"

    try:
        html = html_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]✗ Could not read {html_file}: {e}[/red]")
        raise typer.Exit(code=1) from e

    new_html, injected = inject_into_html(html, endpoint)
    if not injected:
        console.print("[yellow]⚠️  The page already has the download button.[/yellow]")
        return

    target = output or html_file
    target.write_text(new_html, encoding="utf-8")
    console.print(f"[green]✓ Button added.[/green] Page written to [dim]{target}[/dim]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to bind."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on."),
    token: str | None = typer.Option(
        None, "--token", "-t", help="Fallback account token for requests without one."
    ),
    browser: bool = typer.Option(
        False, "--browser", help="Open parts in the browser instead of saving them."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Resolve parts without downloading anything."
    ),
    allow_origin: list[str] | None = typer.Option(
        None,
        "--allow-origin",
        help="Extra page origin allowed to call the companion (repeatable).",
    ),
):
    """Run the local companion service used by the injected button."""
    config = _load_config(
        {
            "host": host,
            "port": port,
            "token": token,
            "trigger": "browser" if browser else None,
            "dry_run": dry_run,
        }
    )
    run_server(config, tuple(allow_origin or ()))


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config(require_file=True)
        print_validation_table(config)
    except PlexDlError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
