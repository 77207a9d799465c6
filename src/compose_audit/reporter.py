"""Analysis report generators."""

import io
import json
from abc import ABC, abstractmethod
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from compose_audit.models import (
    AnalysisResult,
    ChangeAction,
    DiffLine,
    Finding,
    GroupedFinding,
    Severity,
)


class ReportGenerator(ABC):
    """Abstract base class for report generators."""

    @abstractmethod
    def generate(self, result: AnalysisResult) -> str:
        """Generate a report from analysis results.

        Args:
            result: The analysis results to report.

        Returns:
            Formatted report as a string.
        """
        pass


class JSONReporter(ReportGenerator):
    """Generate JSON format reports."""

    def __init__(self, indent: int = 2) -> None:
        """Initialize JSON reporter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def generate(self, result: AnalysisResult) -> str:
        """Generate JSON report."""
        return json.dumps(result.to_dict(), indent=self.indent)


class TableReporter(ReportGenerator):
    """Generate rich table format reports for CLI output."""

    SEVERITY_COLORS = {
        Severity.CRITICAL: "red bold",
        Severity.HIGH: "dark_orange",
        Severity.MEDIUM: "yellow",
        Severity.LOW: "blue",
    }

    def __init__(self, show_details: bool = True, width: int = 120) -> None:
        """Initialize table reporter.

        Args:
            show_details: Whether to show impact and remediation per finding.
            width: Console width used for rendering.
        """
        self.show_details = show_details
        # Rendered only into the recording; generate() returns the text
        self.console = Console(file=io.StringIO(), record=True, force_terminal=True, width=width)

    def generate(self, result: AnalysisResult) -> str:
        """Generate table report."""
        if result.parse_error:
            self._render_error(result.parse_error)
            return self.console.export_text()

        self._render_summary(result)

        if result.grouped:
            self._render_findings(result.grouped)
            if self.show_details:
                self._render_details(result.grouped)

        if result.changes:
            self._render_changes(result)

        return self.console.export_text()

    def _render_summary(self, result: AnalysisResult) -> None:
        """Render summary panel."""
        summary_text = Text()
        summary_text.append(f"Security Score: {result.score}/100\n", style="bold")
        summary_text.append(f"Total Issues: {result.counts.total}\n\n")

        summary_text.append("By Severity:\n", style="bold")
        for severity in Severity:
            color = self.SEVERITY_COLORS[severity]
            summary_text.append(f"  {severity.value}: ", style=color)
            summary_text.append(f"{result.counts.get(severity)}\n")

        panel = Panel(
            summary_text,
            title="Compose Security Summary",
            border_style="blue",
        )
        self.console.print(panel)

    def _render_findings(self, grouped: list[GroupedFinding]) -> None:
        """Render grouped findings table."""
        table = Table(
            title="Findings",
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("Severity", width=10)
        table.add_column("Rule ID", width=12)
        table.add_column("Title", width=32)
        table.add_column("Locations")

        for group in sorted(grouped, key=lambda g: g.severity.order):
            color = self.SEVERITY_COLORS[group.severity]
            locations = Text(
                "\n".join(
                    f"{o.location} [line {o.line_number}]" if o.line_number else o.location
                    for o in group.occurrences
                )
            )
            table.add_row(
                Text(group.severity.value, style=color),
                group.rule_id,
                group.title,
                locations,
            )

        self.console.print(table)

    def _render_details(self, grouped: list[GroupedFinding]) -> None:
        """Render impact/exploitation/remediation for each finding."""
        for group in grouped:
            text = Text()
            text.append("Impact: ", style="bold")
            text.append(f"{group.impact}\n")
            text.append("Exploitation: ", style="bold red")
            text.append(f"{group.exploit}\n")
            text.append("Fix: ", style="bold green")
            text.append(group.remediation)
            if group.reference:
                text.append(f"\nReference: {group.reference}", style="dim")

            panel = Panel(
                text,
                title=f"{group.title} ({', '.join(group.services)})",
                border_style=self.SEVERITY_COLORS[group.severity],
            )
            self.console.print(panel)

    def _render_changes(self, result: AnalysisResult) -> None:
        """Render the patch change list."""
        text = Text()
        for change in result.changes:
            if change.action == ChangeAction.REMOVED:
                text.append(f"- [{change.service}] {change.line}\n", style="red")
            else:
                text.append(f"+ [{change.service}] {change.line}\n", style="green")

        panel = Panel(
            text,
            title="Patch Changes",
            border_style="green",
        )
        self.console.print(panel)

    def _render_error(self, error: str) -> None:
        """Render decode error panel."""
        panel = Panel(
            Text(error, style="red"),
            title="YAML Parse Error",
            border_style="red",
        )
        self.console.print(panel)


class SARIFReporter(ReportGenerator):
    """Generate SARIF (Static Analysis Results Interchange Format) reports.

    SARIF is a standard format for static analysis tools that integrates
    with VS Code, GitHub, and other tools.
    """

    SARIF_VERSION = "2.1.0"
    SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"

    def __init__(
        self,
        tool_name: str = "compose-audit",
        tool_version: str = "0.1.0",
        file_path: str = "docker-compose.yml",
    ) -> None:
        """Initialize SARIF reporter.

        Args:
            tool_name: Name of the scanning tool.
            tool_version: Version of the scanning tool.
            file_path: Artifact URI findings are reported against.
        """
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.file_path = file_path

    def generate(self, result: AnalysisResult) -> str:
        """Generate SARIF report."""
        sarif = {
            "$schema": self.SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [self._create_run(result)],
        }
        return json.dumps(sarif, indent=2)

    def _create_run(self, result: AnalysisResult) -> dict[str, Any]:
        """Create a SARIF run object."""
        rules = [self._create_rule(group) for group in result.grouped]
        results = [self._create_result(finding) for finding in result.findings]

        return {
            "tool": {
                "driver": {
                    "name": self.tool_name,
                    "version": self.tool_version,
                    "rules": rules,
                }
            },
            "results": results,
        }

    def _create_rule(self, group: GroupedFinding) -> dict[str, Any]:
        """Create a SARIF rule for a finding group."""
        rule: dict[str, Any] = {
            "id": group.rule_id,
            "name": group.title.replace(" ", ""),
            "shortDescription": {"text": group.title},
            "fullDescription": {"text": group.impact},
            "help": {"text": group.remediation},
            "defaultConfiguration": {
                "level": self._severity_to_sarif_level(group.severity)
            },
        }
        if group.reference:
            rule["helpUri"] = group.reference
        return rule

    def _create_result(self, finding: Finding) -> dict[str, Any]:
        """Create a SARIF result for a finding."""
        location: dict[str, Any] = {"artifactLocation": {"uri": self.file_path}}
        if finding.line_number:
            location["region"] = {"startLine": finding.line_number, "startColumn": 1}

        return {
            "ruleId": finding.rule_id,
            "level": self._severity_to_sarif_level(finding.severity),
            "message": {"text": f"{finding.title} in service '{finding.service}'"},
            "locations": [
                {
                    "physicalLocation": location,
                    "logicalLocations": [{"fullyQualifiedName": finding.location}],
                }
            ],
        }

    def _severity_to_sarif_level(self, severity: Severity) -> str:
        """Convert severity to SARIF level."""
        mapping = {
            Severity.CRITICAL: "error",
            Severity.HIGH: "error",
            Severity.MEDIUM: "warning",
            Severity.LOW: "note",
        }
        return mapping.get(severity, "none")


def render_diff(diff: list[DiffLine], only_changed: bool = False) -> Text:
    """Render aligned diff rows as two columns.

    Args:
        diff: Rows from the diff aligner.
        only_changed: Skip rows whose two sides are identical.

    Returns:
        Rich Text ready to print.
    """
    text = Text()
    width = max((len(row.original) for row in diff), default=0)
    for row in diff:
        if only_changed and not row.changed:
            continue
        marker = "!" if row.is_problematic else " "
        style = "red" if row.is_problematic else ("yellow" if row.changed else "")
        text.append(f"{row.line_num:>4} {marker} {row.original:<{width}} | ", style=style)
        text.append(f"{row.patched}\n", style="green" if row.changed else "")
    return text


def create_reporter(
    format: str,
    show_details: bool = True,
    tool_name: str = "compose-audit",
    tool_version: str = "0.1.0",
    file_path: str = "docker-compose.yml",
) -> ReportGenerator:
    """Create a reporter for the specified format.

    Args:
        format: Output format ('json', 'table', 'sarif').
        show_details: Whether to show full details (for table format).
        tool_name: Tool name (for SARIF format).
        tool_version: Tool version (for SARIF format).
        file_path: Analyzed file (for SARIF format).

    Returns:
        Appropriate ReportGenerator instance.

    Raises:
        ValueError: If format is not supported.
    """
    if format == "json":
        return JSONReporter()
    elif format == "table":
        return TableReporter(show_details=show_details)
    elif format == "sarif":
        return SARIFReporter(tool_name=tool_name, tool_version=tool_version, file_path=file_path)
    else:
        raise ValueError(f"Unsupported format: {format}. Use 'json', 'table', or 'sarif'.")
