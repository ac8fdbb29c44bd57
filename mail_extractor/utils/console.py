"""Centralised console management module"""

from io import StringIO
from typing import Optional

from rich.console import Console
from rich.markup import escape

_console: Optional[Console] = None


def get_console() -> Console:
    """Get the shared Console instance"""
    global _console

    if _console is None:
        _console = Console()

    return _console


def get_buffer_console(width: int = 120) -> tuple[Console, StringIO]:
    """Get a Console that writes plain text into a buffer"""
    buffer = StringIO()
    console = Console(file=buffer, force_terminal=False, width=width, no_color=True)
    return console, buffer


## Convenience Print Functions

async def print_success(message: str, console: Optional[Console] = None) -> None:
    output_console = console or get_console()
    output_console.print(f"[green]{escape(message)}[/]")


async def print_error(message: str, console: Optional[Console] = None) -> None:
    output_console = console or get_console()
    output_console.print(f"[red]{escape(message)}[/]")


async def print_warning(message: str, console: Optional[Console] = None) -> None:
    output_console = console or get_console()
    output_console.print(f"[yellow]{escape(message)}[/]")


async def print_status(message: str, console: Optional[Console] = None) -> None:
    output_console = console or get_console()
    output_console.print(f"[cyan]{escape(message)}[/]")
