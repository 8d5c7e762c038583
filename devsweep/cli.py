import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml
from rich.logging import RichHandler
from rich.prompt import Confirm

from devsweep.branding import (
    VERSION,
    ConsoleConfirm,
    console,
    ds_header,
    ds_print,
    err_console,
    format_size,
)
from devsweep.cleanup.cleaner import AutoConfirm
from devsweep.cleanup.pipeline import CleanupPipeline
from devsweep.config import SweepConfig, default_config_path
from devsweep.exceptions import ConfigError, DevSweepError
from devsweep.models import Category, OutcomeStatus, RiskLevel
from devsweep.reporter import Reporter
from devsweep.rules import all_rules, rules_for

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


class DevSweepCLI:
    """Command handlers. Each returns a process exit code."""

    def __init__(
        self,
        config: SweepConfig,
        verbose: bool = False,
        pipeline: Optional[CleanupPipeline] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.config = config
        self.verbose = verbose
        self.pipeline = pipeline or CleanupPipeline(config)
        self.reporter = reporter or Reporter()

    def _plan(self, args: argparse.Namespace):
        categories = Category.parse_many([args.categories]) if args.categories else None
        return self.pipeline.run_scan(
            categories,
            include_heuristic=args.heuristic,
            min_risk=RiskLevel.parse(args.min_risk),
            max_risk=RiskLevel.parse(args.max_risk),
        )

    def scan(self, args: argparse.Namespace) -> int:
        if args.format == "table":
            with console.status("Scanning..."):
                plan = self._plan(args)
        else:
            plan = self._plan(args)
        self.reporter.plan(plan, args.format)
        return EXIT_INTERRUPTED if plan.partial else EXIT_OK

    def clean(self, args: argparse.Namespace) -> int:
        with console.status("Scanning..."):
            plan = self._plan(args)
        self.reporter.plan(plan)
        if plan.partial:
            ds_print("Scan was interrupted, nothing will be removed", "warning")
            return EXIT_INTERRUPTED
        if plan.is_empty:
            return EXIT_OK

        permanent = True if args.permanent else None
        will_delete = args.permanent or not self.config.general.use_trash
        if not args.dry_run and not args.yes:
            action = "Permanently delete" if will_delete else "Move to trash"
            question = f"{action} {len(plan.entries)} item(s), {format_size(plan.total_bytes)}"
            flagged = self._flagged(plan)
            if flagged:
                question += f", including {flagged} {self._flagged_label()} item(s)"
            if not Confirm.ask(f"{question}?", default=False, console=console):
                ds_print("Aborted, nothing was removed", "info")
                return EXIT_OK

        # Accepting the overall prompt confirms flagged entries unless each is asked about.
        if args.yes or not self.config.general.per_entry_confirmation:
            confirmer = AutoConfirm(True)
        else:
            confirmer = ConsoleConfirm()

        report = self.pipeline.run_clean(plan, dry_run=args.dry_run, permanent=permanent, confirmer=confirmer)
        self.reporter.clean_report(report)

        unconfirmed = sum(
            1 for o in report.outcomes if o.status is OutcomeStatus.SKIPPED and o.reason == "unconfirmed"
        )
        if unconfirmed:
            ds_print(f"{unconfirmed} item(s) needing confirmation were kept", "warning")
        if report.cancelled:
            return EXIT_INTERRUPTED
        return EXIT_FAILURE if report.any_failures else EXIT_OK

    def _flagged(self, plan) -> int:
        risk = self.config.risk
        return sum(
            1
            for e in plan.entries
            if (e.risk is RiskLevel.HIGH and risk.confirm_high_risk)
            or (e.risk is RiskLevel.MEDIUM and risk.confirm_medium_risk)
        )

    def _flagged_label(self) -> str:
        return "medium/high-risk" if self.config.risk.confirm_medium_risk else "high-risk"

    def analyze(self, args: argparse.Namespace) -> int:
        roots = [Path(p).expanduser() for p in args.path] if args.path else None
        with console.status("Analyzing..."):
            report = self.pipeline.run_analyze(roots, max_depth=args.depth, top_n=args.top)
        self.reporter.storage(report)
        return EXIT_OK

    def list_rules(self, args: argparse.Namespace) -> int:
        if args.categories:
            rules = rules_for(Category.parse_many([args.categories]), self.pipeline.platform)
        else:
            rules = all_rules()
        self.reporter.rules(rules, detailed=args.detailed, platform=self.pipeline.platform)
        return EXIT_OK

    def config_command(self, args: argparse.Namespace, config_path: Optional[str]) -> int:
        path = Path(config_path).expanduser() if config_path else default_config_path()
        if args.path:
            console.out(str(path), highlight=False)
            return EXIT_OK
        if args.init:
            if path.exists() and not args.force:
                ds_print(f"{path} already exists (use --force to overwrite)", "warning")
                return EXIT_FAILURE
            written = SweepConfig().save(path)
            ds_print(f"Wrote default configuration to {written}", "success")
            return EXIT_OK

        ds_header(f"Configuration ({path if path.exists() else 'defaults'})")
        console.out(yaml.safe_dump(self.config.to_dict(), sort_keys=False), highlight=False)
        return EXIT_OK


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--categories", "-C", help="Comma-separated categories (default: all)")
    parser.add_argument("--min-risk", choices=["low", "medium", "high"], help="Lowest risk to include")
    parser.add_argument("--max-risk", choices=["low", "medium", "high"], help="Highest risk to include")
    parser.add_argument(
        "--heuristic",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include heuristically detected caches (default: from config)",
    )


def add_scan_parser(subparsers) -> argparse.ArgumentParser:
    scan_parser = subparsers.add_parser("scan", help="Show what can be cleaned")
    _add_filter_args(scan_parser)
    scan_parser.add_argument(
        "--format", choices=["table", "json", "list"], default="table", help="Output format"
    )
    return scan_parser


def add_clean_parser(subparsers) -> argparse.ArgumentParser:
    clean_parser = subparsers.add_parser("clean", help="Remove caches and build artifacts")
    _add_filter_args(clean_parser)
    clean_parser.add_argument("--dry-run", "-n", action="store_true", help="Show what would be removed")
    clean_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    clean_parser.add_argument(
        "--permanent", action="store_true", help="Delete instead of moving to the trash"
    )
    return clean_parser


def add_analyze_parser(subparsers) -> argparse.ArgumentParser:
    analyze_parser = subparsers.add_parser("analyze", help="Break down disk usage by file type")
    analyze_parser.add_argument("--path", "-p", action="append", help="Directory to analyze (repeatable)")
    analyze_parser.add_argument("--depth", "-d", type=int, help="Maximum directory depth")
    analyze_parser.add_argument("--top", "-t", type=int, default=10, help="Number of largest files")
    return analyze_parser


def add_list_parser(subparsers) -> argparse.ArgumentParser:
    list_parser = subparsers.add_parser("list", help="List cleanup rules")
    list_parser.add_argument("--categories", "-C", help="Only rules of these categories")
    list_parser.add_argument("--detailed", "-d", action="store_true", help="Show patterns")
    return list_parser


def add_config_parser(subparsers) -> argparse.ArgumentParser:
    config_parser = subparsers.add_parser("config", help="Show or create the configuration file")
    group = config_parser.add_mutually_exclusive_group()
    group.add_argument("--init", action="store_true", help="Write a default configuration file")
    group.add_argument("--show", action="store_true", help="Show the effective configuration")
    group.add_argument("--path", action="store_true", help="Print the configuration file path")
    config_parser.add_argument("--force", action="store_true", help="Overwrite with --init")
    return config_parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devsweep",
        description="Find and remove developer tool caches, build artifacts and logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  devsweep scan
  devsweep scan -C rust,nodejs --format json
  devsweep clean --dry-run
  devsweep clean -C xcode --max-risk medium -y
  devsweep analyze -p ~/Projects -t 20
  devsweep list --detailed
        """,
    )
    parser.add_argument("--version", "-V", action="version", version=f"devsweep {VERSION}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    parser.add_argument("--config", "-c", help="Configuration file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    add_scan_parser(subparsers)
    add_clean_parser(subparsers)
    add_analyze_parser(subparsers)
    add_list_parser(subparsers)
    add_config_parser(subparsers)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    if args.no_color:
        console.no_color = True
        err_console.no_color = True

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        if args.command == "config" and (args.init or args.path):
            config = SweepConfig()
        else:
            config = SweepConfig.load_or_default(args.config)

        cli = DevSweepCLI(config, verbose=args.verbose)
        if args.command == "scan":
            return cli.scan(args)
        elif args.command == "clean":
            return cli.clean(args)
        elif args.command == "analyze":
            return cli.analyze(args)
        elif args.command == "list":
            return cli.list_rules(args)
        elif args.command == "config":
            return cli.config_command(args, args.config)
        parser.print_help()
        return EXIT_FAILURE
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled[/yellow]")
        return EXIT_INTERRUPTED
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_FAILURE
    except DevSweepError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
