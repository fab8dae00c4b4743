#!/usr/bin/env python3
"""
Console interface for spreadsheet imports.

``analyze`` shows what the pipeline would do with a file; ``run`` imports it
into the configured database using the proposed mappings.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from talent_import.api.schemas.imports import ColumnMapping, EntityKind, ImportResult, ParsedFile
from talent_import.core.config import settings
from talent_import.core.logging_config import configure_logging
from talent_import.db.session import create_tables, get_session_local
from talent_import.domain.imports.errors import FileStructureError
from talent_import.domain.imports.llm_client import build_text_generator
from talent_import.domain.imports.mapping_engine import MappingEngine
from talent_import.domain.imports.orchestrator import ImportService
from talent_import.domain.imports.row_transformer import TenantContext
from talent_import.domain.imports.store import SqlAlchemyEntityStore

ERRORS_SHOWN = 20


class ImportConsole:
    """Renders pipeline results with rich."""

    def __init__(self, service: ImportService, console: Optional[Console] = None):
        self.service = service
        self.console = console or Console()

    def print_file_summary(self, path: Path, parsed: ParsedFile) -> None:
        header_note = (
            f"row {parsed.header_row_index}"
            if parsed.header_detected
            else f"row {parsed.header_row_index} [yellow](no header found, using first row)[/yellow]"
        )
        self.console.print(Panel.fit(
            f"[bold]{path.name}[/bold]\n"
            f"Header: {header_note}\n"
            f"Columns: {len(parsed.columns)}\n"
            f"Data rows: {parsed.total_rows}",
            title="File",
            border_style="blue",
        ))

    def print_mappings(self, mappings: List[ColumnMapping]) -> None:
        table = Table(title="Proposed mappings")
        table.add_column("Column", style="cyan")
        table.add_column("Field", style="green")
        table.add_column("Confidence", justify="right")

        for mapping in mappings:
            target = mapping.target_field if mapping.is_active else "[dim]SKIP[/dim]"
            table.add_row(mapping.source_column, target, f"{mapping.confidence:.2f}")
        self.console.print(table)

    def print_result(self, result: ImportResult) -> None:
        style = "green" if not result.errors else "yellow"
        self.console.print(Panel.fit(
            f"Created: [green]{result.created}[/green]\nSkipped: [red]{result.skipped}[/red]",
            title="Import result",
            border_style=style,
        ))
        if not result.errors:
            return

        table = Table(title="Row errors")
        table.add_column("Row", justify="right", style="cyan")
        table.add_column("Message", style="white")
        for error in result.errors[:ERRORS_SHOWN]:
            table.add_row(str(error.row), error.message)
        self.console.print(table)
        if len(result.errors) > ERRORS_SHOWN:
            self.console.print(f"[dim]... and {len(result.errors) - ERRORS_SHOWN} more[/dim]")

    def analyze(self, path: Path, entity_kind: EntityKind):
        parsed = self.service.parse_upload(path.read_bytes(), path.name)
        # Analysis alone never imports; drop the stored copy right away
        self.service.uploads.release(parsed.file_id)

        mappings = self.service.analyze_mappings(entity_kind, parsed.columns, parsed.sample_rows)
        self.print_file_summary(path, parsed)
        self.print_mappings(mappings)
        return parsed, mappings

    def run(self, path: Path, entity_kind: EntityKind, context: TenantContext, assume_yes: bool = False) -> Optional[ImportResult]:
        parsed = self.service.parse_upload(path.read_bytes(), path.name)
        mappings = self.service.analyze_mappings(entity_kind, parsed.columns, parsed.sample_rows)
        self.print_file_summary(path, parsed)
        self.print_mappings(mappings)

        if not assume_yes and not Confirm.ask(f"Import {parsed.total_rows} rows as {entity_kind.value}?", console=self.console):
            self.service.uploads.release(parsed.file_id)
            self.console.print("[yellow]Import cancelled.[/yellow]")
            return None

        with self.console.status("Importing..."):
            result = self.service.execute_import(context, parsed.file_id, entity_kind, mappings)
        self.print_result(result)
        return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="talent-import",
        description="Import candidates, jobs or clients from CSV and Excel files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s analyze candidates.xlsx --entity candidate
  %(prog)s run jobs.csv --entity job --tenant acme --user u-42
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    entity_choices = [kind.value for kind in EntityKind]

    analyze = subparsers.add_parser("analyze", help="Show the detected header and proposed mappings")
    analyze.add_argument("file", type=Path)
    analyze.add_argument("--entity", choices=entity_choices, required=True)

    run = subparsers.add_parser("run", help="Import a file with the proposed mappings")
    run.add_argument("file", type=Path)
    run.add_argument("--entity", choices=entity_choices, required=True)
    run.add_argument("--tenant", required=True, help="Tenant id the records belong to")
    run.add_argument("--user", required=True, help="User id recorded as creator")
    run.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    parser.add_argument("--log-level", default=None, help=f"Logging level (default: {settings.log_level})")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or settings.log_level)
    console = Console()

    if not args.file.is_file():
        console.print(f"[red]❌ File not found: {args.file}[/red]")
        return 1

    store = SqlAlchemyEntityStore(get_session_local())
    service = ImportService(store, mapping_engine=MappingEngine(build_text_generator(settings)))
    import_console = ImportConsole(service, console)
    entity_kind = EntityKind(args.entity)

    try:
        if args.command == "analyze":
            import_console.analyze(args.file, entity_kind)
        else:
            create_tables()
            import_console.run(
                args.file,
                entity_kind,
                TenantContext(tenant_id=args.tenant, user_id=args.user),
                assume_yes=args.yes,
            )
    except FileStructureError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        return 1
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
