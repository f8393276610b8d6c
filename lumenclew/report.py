"""Report rendering - rich terminal tables and JSON output."""

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lumenclew.models import Importance, PanelStatus, ReportStatus, ScanResponse

IMPORTANCE_COLORS = {
    Importance.IMPORTANT: "bold red",
    Importance.EXPLORE: "yellow",
    Importance.NOTE: "cyan",
    Importance.FYI: "dim",
}

PANEL_STATUS_COLORS = {
    PanelStatus.SUCCESS: "green",
    PanelStatus.PARTIAL: "yellow",
    PanelStatus.SKIPPED: "red",
}

REPORT_STATUS_COLORS = {
    ReportStatus.SUCCESS: "bold green",
    ReportStatus.PARTIAL: "bold yellow",
    ReportStatus.ERROR: "bold red",
}

PANEL_TITLES = {
    "code_quality": "Code Quality",
    "dependencies": "Dependencies",
    "secrets": "Secrets",
    "accessibility": "Accessibility",
}


def render_json(response: ScanResponse) -> str:
    return json.dumps(response.to_dict(), indent=2)


def render_table(response: ScanResponse, console: Console | None = None) -> None:
    console = console or Console()
    color = REPORT_STATUS_COLORS[response.status]

    if response.report is None:
        error = response.error
        detail = f": {error.code.value} - {escape(error.message)}" if error else ""
        console.print(f"\n[{color}]Scan failed[/]{detail}\n")
        return

    report = response.report
    console.print(f"\n[bold]{report.repo_url}[/] ({report.scan_mode.value} scan) - [{color}]{report.status.value}[/]")
    console.print(f"[dim]{report.orientation_note}[/]\n")

    for panel, result in report.panels.items():
        status_color = PANEL_STATUS_COLORS[result.status]
        shown = len(result.findings)
        title = f"{PANEL_TITLES[panel.value]} - [{status_color}]{result.status.value}[/] ({result.finding_count} found, {shown} shown)"

        if not result.findings:
            console.print(f"[bold]{title}[/]")
            if result.error_message:
                console.print(f"  [{status_color}]{escape(result.error_message)}[/]")
            console.print()
            continue

        table = Table(title=title, show_lines=True, title_justify="left")
        table.add_column("Importance", width=10)
        table.add_column("Finding", width=60)
        table.add_column("Note", width=30)

        for f in result.findings:
            imp_color = IMPORTANCE_COLORS[f.importance]
            table.add_row(
                f"[{imp_color}]{f.importance.value}[/]",
                escape(f.plain_language),
                escape(f.static_analysis_note or ""),
            )
        console.print(table)
        if result.error_message:
            console.print(f"  [{status_color}]{escape(result.error_message)}[/]")
        console.print()

    _print_summary(console, response)


def _print_summary(console: Console, response: ScanResponse) -> None:
    report = response.report
    scope = report.scan_scope
    total = sum(r.finding_count for r in report.panels.values())
    shown = sum(len(r.findings) for r in report.panels.values())

    console.print(f"[bold]Summary:[/] {total} finding(s), {shown} shown | Duration: {report.scan_duration_ms / 1000:.2f}s")
    console.print(
        f"Files: {scope.files_counted} counted | {scope.files_scanned} scanned | "
        f"{scope.files_skipped} skipped (limit {scope.max_files_allowed})"
    )
    if report.partial_reasons:
        console.print("[yellow]Incomplete panels:[/]")
        for reason in report.partial_reasons:
            console.print(f"  - {escape(reason)}")
    if response.rate_limit:
        console.print(f"[dim]Scans remaining today: {response.rate_limit.remaining}/{response.rate_limit.max_scans_per_day}[/]")
    console.print()
