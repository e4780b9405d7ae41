"""Rich-based console output for the fetchkit CLI."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic_core import to_jsonable_python
from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fetchkit.domain.interfaces.user_interface import UserInterface
from fetchkit.domain.models.paging import PagedResult

logger = logging.getLogger(__name__)

MAX_TABLE_COLUMNS = 8


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def display_json(self, value: Any, **kwargs: Any) -> None:
        """Pretty-prints a JSON-compatible value (models are converted first)."""
        title = kwargs.get("title")
        data = to_jsonable_python(value, fallback=str)
        rendered = JSON(json.dumps(data, ensure_ascii=False))
        if title:
            self.console.print(Panel(rendered, title=f"[bold]{title}[/bold]", title_align="left", box=SIMPLE))
        else:
            self.console.print(rendered)

    def display_page(self, page: PagedResult, **kwargs: Any) -> None:
        """Renders page items as a table followed by the total count.

        Object items become rows with one column per key (first keys seen,
        capped); scalar items are shown in a single "value" column.
        """
        items: List[Any] = to_jsonable_python(page.items, fallback=str)
        table = Table(title=kwargs.get("title"), box=SIMPLE, show_lines=False)

        if items and all(isinstance(item, dict) for item in items):
            columns: Dict[str, None] = {}
            for item in items:
                for key in item:
                    if len(columns) >= MAX_TABLE_COLUMNS:
                        break
                    columns.setdefault(str(key), None)
            for column in columns:
                table.add_column(column)
            for item in items:
                table.add_row(*(_cell(item.get(column)) for column in columns))
        else:
            table.add_column("value")
            for item in items:
                table.add_row(_cell(item))

        self.console.print(table)
        self.console.print(f"[dim]Showing {len(page.items)} of {page.total}[/dim]")

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_preload_report(self, loaded: Sequence[str], missing: Sequence[str]) -> None:
        table = Table(box=SIMPLE)
        table.add_column("resource")
        table.add_column("status")
        for name in loaded:
            table.add_row(name, "[green]cached[/green]")
        for name in missing:
            table.add_row(name, "[yellow]unavailable[/yellow]")
        self.console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
