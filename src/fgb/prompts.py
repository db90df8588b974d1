"""Terminal prompts used by the engines."""

from typing import Optional

import typer
from rich.console import Console


class TerminalPrompter:
    """Ask the user for confirmations and paths on the terminal."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def confirm(self, message: str) -> bool:
        """Single keystroke confirmation; only 'y' or 'Y' accepts."""
        self.console.print(f"{message} (y|N): ", end="")
        answer = typer.getchar()
        self.console.print()
        return answer in ("y", "Y")

    def ask_path(self, message: str, default: str) -> str:
        """Ask for a path, offering a default."""
        return str(typer.prompt(message, default=default))
