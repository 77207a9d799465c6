"""Rule engine for detecting compose security misconfigurations."""

import logging
import re
from typing import Any, Iterable, Optional

from compose_audit.models import (
    Finding,
    FindingLocation,
    GroupedFinding,
    Severity,
    SeverityCounts,
)
from compose_audit.parser import SERVICE_INDENT, get_services
from compose_audit.rules.base import ComposeService, Rule
from compose_audit.rules.registry import RuleRegistry, get_registry

logger = logging.getLogger(__name__)

_SERVICES_HEADER = re.compile(r"^services\s*:")


class RuleEngine:
    """Evaluates compose services against the registered rules."""

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        enabled_rules: Optional[Iterable[str]] = None,
        disabled_rules: Optional[Iterable[str]] = None,
    ) -> None:
        """Initialize the rule engine.

        Args:
            registry: Rule registry to draw rules from (global one by default).
            enabled_rules: Rule IDs to run (None runs all).
            disabled_rules: Rule IDs to skip.
        """
        self._registry = registry or get_registry()
        self._rules = self._registry.select(enabled_rules, disabled_rules)

    @property
    def rules(self) -> list[Rule]:
        """Rules this engine evaluates, in evaluation order."""
        return list(self._rules)

    def evaluate(self, document: Optional[dict[str, Any]], raw_text: str = "") -> list[Finding]:
        """Evaluate every service in a parsed compose document.

        Args:
            document: Parsed compose document (may be None).
            raw_text: Original text, used to attribute line numbers.

        Returns:
            Findings sorted by priority; ties keep service/rule order.
        """
        services = get_services(document)
        if services is None:
            return []

        lines = raw_text.split("\n") if raw_text else []
        findings: list[Finding] = []

        for name, config in services.items():
            # Malformed service entries are skipped, not reported
            if not isinstance(config, dict):
                logger.debug(f"Skipping non-mapping service entry: {name!r}")
                continue

            service = ComposeService(name=str(name), config=config)
            findings.extend(self._evaluate_service(service, lines))

        return sort_findings(findings)

    def _evaluate_service(self, service: ComposeService, lines: list[str]) -> list[Finding]:
        """Run all rules against one service."""
        findings = []
        for rule in self._rules:
            rule_result = rule.evaluate(service)
            if rule_result.passed:
                continue

            line_number = find_service_line(lines, service.name, rule)
            logger.debug(
                f"{rule_result.rule_id} fired for service {service.name!r} (line {line_number})"
            )
            findings.append(
                Finding(
                    service=service.name,
                    rule_id=rule_result.rule_id,
                    title=rule_result.title,
                    severity=rule_result.severity,
                    location=rule_result.location,
                    impact=rule_result.impact,
                    exploit=rule_result.exploit,
                    remediation=rule_result.remediation,
                    priority=rule_result.priority,
                    line_number=line_number,
                    reference=rule_result.reference,
                    fix_code=rule_result.fix_code,
                )
            )
        return findings


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _find_service_header(lines: list[str], service_name: str) -> Optional[int]:
    """Find the index of the line declaring a service.

    Only service-level keys of the top-level ``services`` block count, so a
    nested key such as a long-form ``depends_on`` entry is never taken for
    the header of the service it names.
    """
    start = None
    for i, line in enumerate(lines):
        if _SERVICES_HEADER.match(line):
            start = i + 1
            break
    if start is None:
        return None

    header = f"{service_name}:"
    for i in range(start, len(lines)):
        line = lines[i]
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        indent = _indent(line)
        if indent == 0:
            break
        if indent == SERVICE_INDENT and stripped == header:
            return i
    return None


def find_service_line(lines: list[str], service_name: str, rule: Rule) -> Optional[int]:
    """Find the first line in a service's block that matches a rule.

    The block runs from the service header to the next key line at the
    same or lower indentation. Comment lines never match.

    Args:
        lines: Source lines of the document.
        service_name: Service whose block is searched.
        rule: Rule providing the line matcher.

    Returns:
        1-based line number, or None if no line matched.
    """
    header_index = _find_service_header(lines, service_name)
    if header_index is None:
        return None

    header_indent = _indent(lines[header_index])
    for i in range(header_index + 1, len(lines)):
        line = lines[i]
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if _indent(line) <= header_indent and stripped.endswith(":"):
            break
        if rule.matches_line(line):
            return i + 1
    return None


def sort_findings(findings: list[Finding]) -> list[Finding]:
    """Stable sort by priority (lower first)."""
    return sorted(findings, key=lambda f: f.priority)


def group_findings(findings: list[Finding]) -> list[GroupedFinding]:
    """Merge findings with the same title, keeping first-seen order.

    Args:
        findings: Flat list of findings.

    Returns:
        One GroupedFinding per distinct title.
    """
    groups: dict[str, GroupedFinding] = {}
    for finding in findings:
        group = groups.get(finding.title)
        if group is None:
            group = GroupedFinding.from_finding(finding)
            groups[finding.title] = group
        group.occurrences.append(
            FindingLocation(
                service=finding.service,
                location=finding.location,
                line_number=finding.line_number,
            )
        )
    return list(groups.values())


def group_by_severity(findings: list[Finding]) -> dict[Severity, list[Finding]]:
    """Bucket findings per severity, most severe first."""
    groups: dict[Severity, list[Finding]] = {severity: [] for severity in Severity}
    for finding in findings:
        groups[finding.severity].append(finding)
    return groups


def count_by_severity(findings: list[Finding]) -> SeverityCounts:
    """Count findings per severity."""
    return SeverityCounts.from_findings(findings)


def compute_score(findings: list[Finding]) -> int:
    """Security score: 100 minus weighted severity penalties, floored at 0."""
    return count_by_severity(findings).score


def filter_by_severity(findings: list[Finding], threshold: Severity) -> list[Finding]:
    """Keep findings at or above a severity threshold."""
    return [f for f in findings if f.severity.order <= threshold.order]
