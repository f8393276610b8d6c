"""Click-based CLI interface for Lumen Clew."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from lumenclew.config import load_config
from lumenclew.models import ReportStatus, ScanMode, ScanRequest
from lumenclew.orchestrator import ScanOrchestrator
from lumenclew.report import render_json, render_table


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(package_name="lumenclew")
def cli():
    """Lumen Clew - plain-language static analysis for public GitHub repositories."""


@cli.command()
@click.argument("repo_url")
@click.option("--mode", "scan_mode", type=click.Choice([m.value for m in ScanMode]), default="fast")
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table")
@click.option("--output", "-o", type=str, default=None, help="Write JSON report to file.")
@click.option("--client-ip", type=str, default="cli", help="Client identifier used for rate limiting.")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Path to .lumenclew.yml config file.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def scan(repo_url, scan_mode, fmt, output, client_ip, config_path, verbose):
    """Scan a public GitHub repository and explain the findings."""
    _configure_logging(verbose)
    try:
        config = load_config(config_path=config_path, project_root=".")
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    orchestrator = ScanOrchestrator(config)
    response = orchestrator.scan(ScanRequest(repo_url=repo_url, client_ip=client_ip, scan_mode=ScanMode(scan_mode)))

    if fmt == "json":
        text_out = render_json(response)
        if output:
            Path(output).write_text(text_out)
            click.echo(f"Report written to {output}")
        else:
            click.echo(text_out)
    else:
        render_table(response)
        if output:
            Path(output).write_text(render_json(response))
            click.echo(f"JSON report also written to {output}")

    if response.status == ReportStatus.ERROR:
        sys.exit(1)
