"""Command-line interface for compose-audit."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from compose_audit import __version__
from compose_audit.analyzer import ComposeAnalyzer, filter_result
from compose_audit.config import AnalyzerConfig, ConfigError, load_config
from compose_audit.models import AnalysisResult, ChangeAction, Severity
from compose_audit.reporter import create_reporter, render_diff
from compose_audit.rules.registry import get_registry
from compose_audit.samples import SAMPLE_VULNERABLE_COMPOSE

console = Console()
err_console = Console(stderr=True)

EXIT_PARSE_ERROR = 2


def _setup_logging(level: str) -> None:
    """Route log records through rich on stderr."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _read_compose(path: str) -> str:
    """Read compose text from a file, or stdin for '-'."""
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _analyze(ctx: click.Context, path: str) -> AnalysisResult:
    config: AnalyzerConfig = ctx.obj["config"]
    content = _read_compose(path)
    return ComposeAnalyzer(config).analyze(content)


def _output_report(
    result: AnalysisResult,
    format: str,
    output: Optional[str],
    show_details: bool,
    file_path: str,
) -> None:
    """Output analysis results in the specified format."""
    reporter = create_reporter(
        format,
        show_details=show_details,
        tool_version=__version__,
        file_path=file_path,
    )
    report = reporter.generate(result)

    if output:
        Path(output).write_text(report, encoding="utf-8")
        console.print(f"[green]Report written to {escape(output)}[/green]", soft_wrap=True)
    else:
        click.echo(report)


@click.group()
@click.version_option(version=__version__, prog_name="compose-audit")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Logging verbosity",
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[str], log_level: Optional[str]) -> None:
    """compose-audit - Security analyzer for docker-compose files."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if log_level:
        config.log_level = log_level.upper()
    _setup_logging(config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "table", "sarif"]),
    default="table",
    help="Output format",
)
@click.option(
    "--severity",
    "-s",
    type=click.Choice(["critical", "high", "medium", "low"]),
    default=None,
    help="Minimum severity to report",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Write output to file",
)
@click.option(
    "--details/--no-details",
    default=True,
    help="Show impact and remediation for each finding (table format)",
)
@click.pass_context
def scan(
    ctx: click.Context,
    path: str,
    format: str,
    severity: Optional[str],
    output: Optional[str],
    details: bool,
) -> None:
    """Scan a compose file for security misconfigurations.

    PATH is the compose file to scan ('-' reads stdin).
    """
    config: AnalyzerConfig = ctx.obj["config"]
    is_machine_format = format in ("json", "sarif")

    if not is_machine_format:
        console.print(f"[blue]Scanning {escape(path)}...[/blue]", soft_wrap=True)

    result = _analyze(ctx, path)
    threshold = Severity(severity) if severity else config.severity_threshold
    result = filter_result(result, threshold)

    _output_report(result, format, output, details, path)

    if result.parse_error:
        sys.exit(EXIT_PARSE_ERROR)

    if result.has_issues:
        if not is_machine_format:
            console.print(f"\n[red]Found {result.counts.total} security issue(s)[/red]")
        sys.exit(1)
    elif not is_machine_format:
        console.print("\n[green]No security issues found[/green]")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option(
    "--write",
    "-w",
    is_flag=True,
    help="Overwrite PATH with the patched document",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Write the patched document to file",
)
@click.option(
    "--diff",
    "show_diff",
    is_flag=True,
    help="Show an aligned diff instead of the patched document",
)
@click.pass_context
def fix(ctx: click.Context, path: str, write: bool, output: Optional[str], show_diff: bool) -> None:
    """Produce a hardened copy of a compose file.

    Offending lines are removed and missing user/read_only settings are
    added; everything else is left as written.
    """
    if write and path == "-":
        raise click.BadParameter("--write cannot be used with stdin", param_hint="PATH")

    result = _analyze(ctx, path)

    if result.parse_error:
        err_console.print(
            f"[red]Failed to parse {escape(path)}: {escape(result.parse_error)}[/red]",
            soft_wrap=True,
        )
        sys.exit(EXIT_PARSE_ERROR)

    if show_diff:
        console.print(render_diff(result.diff), soft_wrap=True)
    elif not write and not output:
        click.echo(result.patched_text, nl=False)

    target = path if write else output
    if target:
        Path(target).write_text(result.patched_text, encoding="utf-8")
        removed = sum(1 for c in result.changes if c.action == ChangeAction.REMOVED)
        added = len(result.changes) - removed
        err_console.print(
            f"[green]Wrote {escape(target)}: {removed} line(s) removed, {added} line(s) added[/green]",
            soft_wrap=True,
        )


@main.command()
def rules() -> None:
    """List the available security rules."""
    table = Table(title="Compose Security Rules", show_header=True, header_style="bold cyan")
    table.add_column("Rule ID", width=12)
    table.add_column("Severity", width=10)
    table.add_column("Title")

    for rule in get_registry().get_all():
        table.add_row(rule.RULE_ID, rule.SEVERITY.value, rule.TITLE)

    console.print(table)


@main.command()
def sample() -> None:
    """Print a deliberately insecure compose file for testing."""
    click.echo(SAMPLE_VULNERABLE_COMPOSE, nl=False)


@main.command()
def version() -> None:
    """Show version information."""
    console.print(f"compose-audit version {__version__}")


if __name__ == "__main__":
    main()
