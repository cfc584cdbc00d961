"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from qbit_cli import __version__
from qbit_cli.api.client import QBittorrentClient
from qbit_cli.exceptions import QbitCliError
from qbit_cli.models.config import DEFAULT_TIMEOUT, ClientConfig
from qbit_cli.models.torrent import (
    TorrentAddRequest,
    TorrentFile,
    TorrentFilter,
    TorrentInfoQuery,
)
from qbit_cli.storage.config_manager import ConfigManager

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_peers,
    print_preferences,
    print_torrents,
    print_validation_table,
)

T = TypeVar("T")

console = Console()

logging.basicConfig(
    level="WARNING",
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
log = logging.getLogger("qbit_cli")

app = typer.Typer(
    name="qbit-cli",
    help=(
        "Control a qBittorrent instance through its Web API. Use 'qbit-cli"
        " <command> --help' for more info."
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
    return base_dir.expanduser() / "qbit-cli"


CONFIG_FILE = get_config_dir() / "config.ini"
URL_PREFIXES = ("magnet:", "http://", "https://", "bc://")


def _config_file(ctx: typer.Context) -> Path:
    return (ctx.obj or {}).get("config_file", CONFIG_FILE)


def _cli_options(ctx: typer.Context) -> dict[str, Any]:
    """Connection settings given on the command line, overriding the file."""
    return (ctx.obj or {}).get("cli_options", {})


def _run_with_client(
    ctx: typer.Context, action: Callable[[QBittorrentClient], Awaitable[T]]
) -> T:
    """Loads the configuration and runs one async action against a fresh client."""

    async def _runner() -> T:
        config = ConfigManager(_config_file(ctx)).load_config(_cli_options(ctx))
        async with QBittorrentClient.from_config(config) as client:
            return await action(client)

    try:
        return asyncio.run(_runner())
    except QbitCliError as e:
        console.print(format_error_with_suggestions(e))
        log.debug("Full traceback:", exc_info=True)
        raise typer.Exit(code=1) from e


def split_sources(sources: list[str]) -> tuple[list[str], list[TorrentFile]]:
    """Separates local .torrent files from URLs and magnet links."""
    urls: list[str] = []
    files: list[TorrentFile] = []
    for source in sources:
        if source.lower().startswith(URL_PREFIXES):
            urls.append(source)
            continue
        path = Path(source).expanduser()
        try:
            is_file = path.is_file()
        except OSError:
            # e.g. a name longer than the filesystem allows
            is_file = False
        if is_file:
            files.append(TorrentFile(buffer=path.read_bytes(), filename=path.name))
        else:
            urls.append(source)
    return urls, files


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config_file: Path = typer.Option(  # noqa: B008
        CONFIG_FILE, "--config", "-c", help="Path to the configuration file."
    ),
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
    base_url: str | None = typer.Option(
        None, "--url", help="Web UI address, overriding the configuration file."
    ),
    username: str | None = typer.Option(
        None, "--username", "-u", help="Web UI user, overriding the file."
    ),
    password: str | None = typer.Option(
        None, "--password", "-p", help="Web UI password, overriding the file."
    ),
):
    """qBittorrent Web API CLI"""
    if version:
        console.print(f"[bold]qbit-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose >= 2:
        log_level = "DEBUG"
    elif verbose == 1:
        log_level = "INFO"
    logging.getLogger("qbit_cli").setLevel(log_level)

    ctx.obj = {
        "config_file": config_file,
        "cli_options": {
            "base_url": base_url,
            "username": username,
            "password": password,
        },
    }

    if show_config:
        if not config_file.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]qbit-cli init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(config_file)
        config_manager.load_config(_cli_options(ctx))
        print_config(config_file, config_manager._get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ctx: typer.Context,
    base_url: str = typer.Argument(
        ..., help="Web UI address, e.g. http://localhost:8080"
    ),
    username: str | None = typer.Option(None, "--username", "-u", help="Web UI user."),
    password: str | None = typer.Option(
        None, "--password", "-p", help="Web UI password (prompted if omitted)."
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT, "--timeout", help="Request timeout in seconds."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Create the configuration file."""
    config_file = _config_file(ctx)
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    if username and password is None:
        password = typer.prompt("Password", hide_input=True)

    try:
        config = ClientConfig(
            base_url=base_url, username=username, password=password, timeout=timeout
        )
    except ValidationError as e:
        console.print(f"[red]✗ Invalid settings:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1) from e

    try:
        ConfigManager(config_file).save_new_config(config.model_dump())
    except QbitCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(
        f"\n[bold green]✓ Configuration saved to '{config_file}'[/bold green]"
    )


@app.command()
def validate(ctx: typer.Context):
    """Validate the current configuration."""
    try:
        config = ConfigManager(_config_file(ctx)).load_config(_cli_options(ctx))
        print_validation_table(config)
    except QbitCliError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def version(ctx: typer.Context):
    """Show the qBittorrent application version."""
    app_version = _run_with_client(ctx, lambda client: client.get_api_version())
    console.print(f"qBittorrent [cyan]{app_version}[/cyan]")


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    filter_: TorrentFilter | None = typer.Option(
        None, "--filter", help="Only list torrents in this state."
    ),
    category: str | None = typer.Option(None, "--category", help="Category name."),
    sort: str | None = typer.Option(None, "--sort", help="Sort key, e.g. 'name'."),
    reverse: bool | None = typer.Option(
        None, "--reverse/--no-reverse", help="Reverse the sort order."
    ),
    limit: int | None = typer.Option(None, "--limit", help="Maximum results."),
    offset: int | None = typer.Option(None, "--offset", help="Results to skip."),
    hashes: list[str] | None = typer.Option(  # noqa: B008
        None, "--hash", help="Only list these hashes (repeatable)."
    ),
):
    """List torrents."""
    query = TorrentInfoQuery(
        filter=filter_,
        category=category,
        sort=sort,
        reverse=reverse,
        limit=limit,
        offset=offset,
        hashes=hashes or None,
    )
    torrents = _run_with_client(ctx, lambda client: client.get_torrent_info(query))
    print_torrents(torrents)


@app.command()
def add(
    ctx: typer.Context,
    sources: list[str] = typer.Argument(  # noqa: B008
        ..., help="URLs, magnet links or paths to .torrent files."
    ),
    savepath: str | None = typer.Option(None, "--savepath", help="Download folder."),
    category: str | None = typer.Option(None, "--category", help="Category name."),
    paused: bool | None = typer.Option(
        None, "--paused/--no-paused", help="Add in paused state."
    ),
    skip_checking: bool | None = typer.Option(
        None, "--skip-checking/--no-skip-checking", help="Skip hash checking."
    ),
    rename: str | None = typer.Option(None, "--rename", help="New torrent name."),
    up_limit: int | None = typer.Option(
        None, "--up-limit", help="Upload limit in bytes/s."
    ),
    dl_limit: int | None = typer.Option(
        None, "--dl-limit", help="Download limit in bytes/s."
    ),
):
    """Add torrents from URLs or .torrent files."""
    urls, files = split_sources(sources)
    request = TorrentAddRequest(
        urls=urls or None,
        torrents=files or None,
        savepath=savepath,
        category=category,
        paused=paused,
        skip_checking=skip_checking,
        rename=rename,
        up_limit=up_limit,
        dl_limit=dl_limit,
    )
    _run_with_client(ctx, lambda client: client.add_torrent(request))
    console.print(
        f"[green]✓ Added {len(urls)} URL(s) and {len(files)} file(s).[/green]"
    )


@app.command()
def pause(ctx: typer.Context, torrent_hash: str = typer.Argument(..., metavar="HASH")):
    """Pause a torrent."""
    _run_with_client(ctx, lambda client: client.pause_torrent(torrent_hash))
    console.print(f"[green]✓ Paused {torrent_hash}[/green]")


@app.command()
def resume(ctx: typer.Context, torrent_hash: str = typer.Argument(..., metavar="HASH")):
    """Resume a paused torrent."""
    _run_with_client(ctx, lambda client: client.resume_torrent(torrent_hash))
    console.print(f"[green]✓ Resumed {torrent_hash}[/green]")


@app.command()
def delete(
    ctx: typer.Context,
    torrent_hash: str = typer.Argument(..., metavar="HASH"),
    delete_files: bool = typer.Option(
        False, "--delete-files", help="Also delete downloaded data."
    ),
):
    """Remove a torrent."""
    _run_with_client(
        ctx, lambda client: client.remove_torrent(torrent_hash, delete_files)
    )
    console.print(f"[green]✓ Removed {torrent_hash}[/green]")


@app.command(name="set-category")
def set_category(
    ctx: typer.Context,
    torrent_hash: str = typer.Argument(..., metavar="HASH"),
    category: str = typer.Argument(...),
):
    """Assign a torrent to a category."""
    _run_with_client(ctx, lambda client: client.set_category(torrent_hash, category))
    console.print(f"[green]✓ Category of {torrent_hash} set to '{category}'[/green]")


@app.command()
def peers(ctx: typer.Context, torrent_hash: str = typer.Argument(..., metavar="HASH")):
    """Show the peers of a torrent."""
    peers_data: dict[str, Any] = _run_with_client(
        ctx, lambda client: client.get_torrent_peers(torrent_hash)
    )
    print_peers(peers_data)


@app.command()
def preferences(ctx: typer.Context):
    """Show the application preferences."""
    prefs = _run_with_client(ctx, lambda client: client.get_preferences())
    print_preferences(prefs)
