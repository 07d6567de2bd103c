"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from plex_dl.core.messages import describe
from plex_dl.core.pipeline import PipelineResult
from plex_dl.models.config import TRIGGER_MODES, DownloaderConfig
from plex_dl.models.stats import DownloadStats
from plex_dl.utils.formatting import format_duration, format_size, mask_url


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `plex-dl init <TOKEN> --force` to rewrite it.",
        ],
        "MalformedResponseError": [
            "• The server answered with something other than XML.",
            "• Make sure the account URL points at plex.tv.",
        ],
        "ClientResponseError": [
            "• Plex rejected the request. Your token may have expired.",
            "• Copy a fresh myPlexAccessToken from Plex Web.",
        ],
        "ClientConnectorError": [
            "• The server's remote address could not be reached.",
            "• Check that Remote Access is enabled on the Plex server.",
        ],
        "TimeoutError": [
            "• A lookup timed out.",
            "• Try again or raise the `timeout` setting.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_result_message(console: Console, result: PipelineResult) -> None:
    """Prints the outcome message, green on success and red otherwise."""
    message = describe(result)
    if result.ok:
        console.print(f"[bold green]✓ {message}[/bold green]")
    else:
        console.print(f"[bold red]✗ {message}[/bold red]")


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "token":
            value = "••••••••" if value else "[dim]<not set>[/dim]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: DownloaderConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row(
        "Account Token:",
        "[green]✓ Set[/green]" if config.token else "[yellow]✗ Not set[/yellow]",
    )
    table.add_row("Account URL:", config.account_url)
    table.add_row(
        "Trigger:",
        f"{config.trigger} [dim]({TRIGGER_MODES[config.trigger]})[/dim]",
    )
    table.add_row("Output Directory:", f"[dim]{config.output_dir}[/dim]")
    table.add_row("Timeout:", f"{config.timeout}s")
    table.add_row("Companion:", f"http://{config.host}:{config.port}")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_parts_table(urls: list[str]):
    """Lists resolved download URLs with their tokens masked."""
    console = Console()
    table = Table(title="Downloadable Parts", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("URL", style="cyan", overflow="fold")
    for i, url in enumerate(urls, 1):
        table.add_row(str(i), mask_url(url))
    console.print(table)


def print_summary_panel(stats: DownloadStats, duration_s: float):
    """Displays a final summary of the download session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Parts Found:", str(stats.parts_resolved))
    stats_table.add_row(
        "✓ Triggered:" if not stats.dry_run else "○ Simulated:",
        f"[bold green]{stats.parts_downloaded}[/bold green]",
    )
    if stats.parts_skipped_exists > 0:
        stats_table.add_row(
            "○ Skipped:", f"[yellow]{stats.parts_skipped_exists} (exists)[/yellow]"
        )
    if stats.parts_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.parts_failed}[/bold red]")

    if stats.total_size_downloaded > 0:
        stats_table.add_row("", "")
        stats_table.add_row(
            "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
        )
        avg_speed = stats.total_size_downloaded / duration_s if duration_s > 0 else 0
        stats_table.add_row(
            "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
        )
        if stats.peak_speed_bps > 0:
            stats_table.add_row(
                "Peak Speed:",
                f"[magenta]{format_size(int(stats.peak_speed_bps))}/s[/magenta]",
            )

    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.dry_run:
        title = "🔍 [bold]Dry Run Summary[/bold]"
        border_color = "yellow"
    else:
        title = "📥 [bold]Download Summary[/bold]"
        border_color = "green" if stats.parts_failed == 0 else "yellow"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
