"""Rich-based terminal output for the CLI."""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

DECISION_STYLES = {
    "allowAccess": "green",
    "notSignature": "yellow",
    "notResource": "magenta",
}


class GuardConsole:
    """Wrap the Rich console to keep CLI output consistent."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def info(self, message: str) -> None:
        self.console.print(Text(message, style="green"))

    def warn(self, message: str) -> None:
        self.console.print(Text(message, style="yellow"))

    def error(self, message: str) -> None:
        self.console.print(Text(message, style="bold red"))

    def decision(self, value: str) -> Text:
        return Text(value, style=DECISION_STYLES.get(value, "red"))

    def table(self, title: str, columns: List[str], rows: List[List[str]]) -> Table:
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        return table


__all__ = ["GuardConsole"]
