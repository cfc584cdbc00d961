"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qbit_cli.models.config import ClientConfig
from qbit_cli.models.torrent import TorrentInfo
from qbit_cli.utils.formatting import format_progress, format_size, format_speed

STATE_COLORS = {
    "downloading": "cyan",
    "uploading": "green",
    "stalledUP": "green",
    "stalledDL": "yellow",
    "pausedDL": "dim",
    "pausedUP": "dim",
    "stoppedDL": "dim",
    "stoppedUP": "dim",
    "error": "red",
    "missingFiles": "red",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Verify the username and password in the configuration file.",
            "• Too many failed logins get your IP banned by the Web UI for a while.",
            "• Run `qbit-cli init --force` to store new credentials.",
        ],
        "RequestFailedError": [
            "• Check that qBittorrent is running and the Web UI is enabled.",
            "• Verify the base URL, including the port.",
            "• HTTP 403 usually means the session expired or the IP is banned.",
        ],
        "UnexpectedResponseError": [
            "• Check that the torrent hash exists.",
            "• The Web API version may not support this call.",
        ],
        "InvalidRequestError": [
            "• Pass at least one URL, magnet link or .torrent file.",
        ],
        "UnsupportedPayloadError": [
            "• Torrent files must be text, bytes, bytearray or a shared buffer.",
        ],
        "ConfigurationError": [
            "• Run `qbit-cli init <BASE_URL>` to create a configuration file.",
            "• Run `qbit-cli validate` to check the current settings.",
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


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "password" and value:
            value = "********"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: ClientConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    auth_method = "Username/Password" if config.has_credentials else "None"
    table.add_row("Base URL:", config.base_url)
    table.add_row("Auth Method:", f"[green]{auth_method}[/green]")
    table.add_row("Timeout:", f"{config.timeout:g}s")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def build_torrent_table(torrents: list[dict[str, Any]]) -> Table:
    """Builds a table of torrents from a torrents/info listing."""
    table = Table(title=f"Torrents ({len(torrents)})")
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Progress", justify="right", style="green")
    table.add_column("State")
    table.add_column("Down", justify="right", style="magenta")
    table.add_column("Up", justify="right", style="magenta")
    table.add_column("Category", style="yellow")

    for raw in torrents:
        torrent = TorrentInfo.model_validate(raw)
        color = STATE_COLORS.get(torrent.state, "white")
        table.add_row(
            torrent.hash[:8],
            escape(torrent.name),
            format_size(torrent.size),
            format_progress(torrent.progress),
            f"[{color}]{torrent.state}[/{color}]",
            format_speed(torrent.dlspeed),
            format_speed(torrent.upspeed),
            escape(torrent.category),
        )
    return table


def build_peers_table(peers_data: dict[str, Any]) -> Table:
    """Builds a table from a torrents/peers reply, keyed by ``ip:port``."""
    peers = peers_data.get("peers", peers_data)
    table = Table(title=f"Peers ({len(peers)})")
    table.add_column("Address", style="cyan", no_wrap=True)
    table.add_column("Client")
    table.add_column("Progress", justify="right", style="green")
    table.add_column("Down", justify="right", style="magenta")
    table.add_column("Up", justify="right", style="magenta")

    for address, peer in peers.items():
        if not isinstance(peer, dict):
            continue
        table.add_row(
            escape(address),
            escape(str(peer.get("client", ""))),
            format_progress(float(peer.get("progress", 0.0))),
            format_speed(int(peer.get("dl_speed", 0))),
            format_speed(int(peer.get("up_speed", 0))),
        )
    return table


def print_torrents(torrents: list[dict[str, Any]]):
    console = Console()
    if not torrents:
        console.print("[dim]No torrents found.[/dim]")
        return
    console.print(build_torrent_table(torrents))


def print_peers(peers_data: dict[str, Any]):
    Console().print(build_peers_table(peers_data))


def print_preferences(preferences: dict[str, Any]):
    """Displays application preferences as ``key = value`` lines."""
    console = Console()
    content = "\n".join(
        f"{key} = {escape(str(value))}" for key, value in sorted(preferences.items())
    )
    console.print(
        Panel(
            content,
            title="[bold]qBittorrent Preferences[/bold]",
            border_style="cyan",
        )
    )
