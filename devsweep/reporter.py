"""
Rich rendering of plans, clean reports, storage analysis and the rule catalog.
"""

import json
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from devsweep.branding import console as default_console
from devsweep.branding import format_size
from devsweep.models import (
    CleanPlan,
    CleanReport,
    CleanupRule,
    OutcomeStatus,
    RiskLevel,
    StorageReport,
)

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red bold",
}


def risk_text(risk: RiskLevel) -> str:
    style = RISK_STYLES[risk]
    return f"[{style}]{risk.label}[/{style}]"


class Reporter:
    """Renders pipeline results to a rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def plan(self, plan: CleanPlan, output_format: str = "table") -> None:
        if output_format == "json":
            self.console.out(json.dumps(plan.to_dict(), indent=2), highlight=False)
            return
        if output_format == "list":
            for entry in plan.entries:
                self.console.out(f"{entry.size_bytes}\t{entry.path}", highlight=False)
            return

        if plan.is_empty:
            self.console.print("[green]Nothing to clean.[/green]")
        else:
            table = Table(title="Cleanup plan", show_header=True, header_style="bold")
            table.add_column("Category", style="cyan")
            table.add_column("Risk")
            table.add_column("Size", justify="right")
            table.add_column("Path", overflow="fold")
            table.add_column("Rule", style="dim")
            for entry in plan.entries:
                table.add_row(
                    entry.category.label,
                    risk_text(entry.risk),
                    format_size(entry.size_bytes, entry.size_is_lower_bound),
                    str(entry.path),
                    entry.rule_name,
                )
            self.console.print(table)

            totals = Table(box=None, show_header=False)
            totals.add_column("Category", style="cyan")
            totals.add_column("Size", justify="right")
            for category, size in plan.bytes_by_category.items():
                totals.add_row(category.label, format_size(size))
            totals.add_row("[bold]Total[/bold]", f"[bold]{format_size(plan.total_bytes)}[/bold]")
            self.console.print(totals)

        if plan.unreadable:
            self.console.print(f"\n[yellow]{len(plan.unreadable)} path(s) could not be checked:[/yellow]")
            for entry in plan.unreadable:
                self.console.print(f"  [dim]{entry.path}[/dim] ({entry.scan_error})")
        if plan.partial:
            self.console.print("[yellow]Scan was interrupted; results are incomplete.[/yellow]")

    def clean_report(self, report: CleanReport) -> None:
        title = "Dry run" if report.dry_run else "Clean summary"
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Category", style="cyan")
        table.add_column("Removed", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Freed", justify="right")
        for category, row in report.summary_by_category().items():
            failed = f"[red]{row.failed}[/red]" if row.failed else "0"
            table.add_row(
                category.label,
                str(row.succeeded),
                str(row.skipped),
                failed,
                format_size(row.bytes_freed),
            )
        self.console.print(table)

        for outcome in report.outcomes:
            if outcome.status is OutcomeStatus.FAILED:
                self.console.print(f"[red]✗[/red] {outcome.path}: {outcome.reason}")

        if report.dry_run:
            self.console.print(f"[dim]{len(report.outcomes)} item(s) would be processed. Nothing was changed.[/dim]")
        else:
            color = "red" if report.any_failures else "green"
            self.console.print(
                Panel(
                    f"[bold {color}]Freed {format_size(report.bytes_freed)}[/bold {color}]",
                    expand=False,
                    border_style=color,
                )
            )
        if report.cancelled:
            self.console.print("[yellow]Interrupted: remaining entries were skipped.[/yellow]")

    def storage(self, report: StorageReport, top_types: int = 10) -> None:
        lower = report.size_is_lower_bound
        self.console.print(
            Panel(
                f"[bold]{format_size(report.total_bytes, lower)}[/bold] in "
                f"{report.file_count} files, {report.dir_count} directories",
                title="Storage analysis",
                expand=False,
            )
        )

        if report.volume_total:
            used_pct = 100 * (report.volume_used or 0) / report.volume_total
            self.console.print(
                f"Volume: {format_size(report.volume_used or 0)} used of "
                f"{format_size(report.volume_total)} ({used_pct:.0f}%), "
                f"{format_size(report.volume_free or 0)} free"
            )

        types = Table(title="By file type", show_header=True, header_style="bold")
        types.add_column("Type", style="cyan")
        types.add_column("Size", justify="right")
        for name, size in list(report.by_type.items())[:top_types]:
            types.add_row(name, format_size(size))
        self.console.print(types)

        extensions = Table(title="By extension", show_header=True, header_style="bold")
        extensions.add_column("Extension", style="cyan")
        extensions.add_column("Size", justify="right")
        for ext, size in list(report.by_extension.items())[:top_types]:
            extensions.add_row(ext, format_size(size))
        self.console.print(extensions)

        if report.largest_files:
            largest = Table(title="Largest files", show_header=True, header_style="bold")
            largest.add_column("Size", justify="right")
            largest.add_column("Path", overflow="fold")
            for path, size in report.largest_files:
                largest.add_row(format_size(size), str(path))
            self.console.print(largest)

    def rules(self, rules: Sequence[CleanupRule], detailed: bool = False, platform: str = sys.platform) -> None:
        platform = "linux" if platform.startswith("linux") else platform
        table = Table(title="Cleanup rules", show_header=True, header_style="bold")
        table.add_column("Category", style="cyan")
        table.add_column("Rule")
        table.add_column("Risk")
        table.add_column("Here", justify="center")
        if detailed:
            table.add_column("Patterns", style="dim", overflow="fold")
            table.add_column("Description", style="dim")
        for rule in rules:
            row = [
                rule.category.label,
                rule.name,
                risk_text(rule.risk),
                "[green]✓[/green]" if rule.applies_to(platform) else "[dim]-[/dim]",
            ]
            if detailed:
                row.extend(["\n".join(rule.patterns), rule.description])
            table.add_row(*row)
        self.console.print(table)
