"""
Console helpers shared by the CLI and the reporter.
"""

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from devsweep import __version__
from devsweep.models import PlanSummary

VERSION = __version__

console = Console()
err_console = Console(stderr=True)

_STATUS_STYLES = {
    "info": ("cyan", "•"),
    "success": ("green", "✓"),
    "warning": ("yellow", "!"),
    "error": ("red", "✗"),
}


def ds_print(message: str, status: str = "info") -> None:
    style, icon = _STATUS_STYLES.get(status, _STATUS_STYLES["info"])
    console.print(f"[{style}]{icon}[/{style}] {message}")


def ds_header(title: str) -> None:
    console.print()
    console.rule(f"[bold cyan]{title}[/bold cyan]")


def format_size(size_bytes: int | float, lower_bound: bool = False) -> str:
    """Human readable size using binary units (1 KB = 1024 bytes)."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if size < 1024 or unit == "TB":
            text = f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
            return f"≥{text}" if lower_bound else text
        size /= 1024
    return f"{size_bytes} B"


class ConsoleConfirm:
    """Interactive confirmation: lists the gated entries, then asks (default No)."""

    def __init__(self, target: Console | None = None):
        self.console = target or console

    def confirm(self, summary: PlanSummary) -> bool:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Risk")
        table.add_column("Size", justify="right")
        table.add_column("Path")
        for entry in summary.entries:
            risk_style = "red" if entry.risk.label == "High" else "yellow"
            table.add_row(
                f"[{risk_style}]{entry.risk.label}[/{risk_style}]",
                format_size(entry.size_bytes, entry.size_is_lower_bound),
                str(entry.path),
            )
        self.console.print(table)

        action = "Permanently delete" if summary.permanent else "Move to trash"
        question = f"{action} {summary.entry_count} item(s) ({format_size(summary.total_bytes)})?"
        return Confirm.ask(question, default=False, console=self.console)
