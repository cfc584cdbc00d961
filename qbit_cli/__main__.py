"""
Main entry point for the qbit-cli application.
Renders any error that escapes a command and sets the exit code.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from qbit_cli.cli.app import app
from qbit_cli.cli.formatters import format_error_with_suggestions
from qbit_cli.exceptions import QbitCliError


def main() -> None:
    """Main entry point function."""
    log = logging.getLogger("qbit_cli")
    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Interrupted.[/yellow]")
        sys.exit(130)
    except QbitCliError as e:
        console.print(format_error_with_suggestions(e))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
