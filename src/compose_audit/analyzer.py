"""Main analysis interface for compose_audit."""

import logging
from typing import Optional

from compose_audit.config import AnalyzerConfig
from compose_audit.engine import RuleEngine, count_by_severity, filter_by_severity, group_findings
from compose_audit.fixers.diff import generate_diff
from compose_audit.fixers.patcher import LinePatcher
from compose_audit.models import AnalysisResult, Severity
from compose_audit.parser import ComposeParser

logger = logging.getLogger(__name__)


class ComposeAnalyzer:
    """Runs parse, rule evaluation, patching and diffing for one document."""

    def __init__(self, config: Optional[AnalyzerConfig] = None) -> None:
        """Initialize the analyzer.

        Args:
            config: Analyzer settings (defaults when omitted).
        """
        self.config = config or AnalyzerConfig()
        self._parser = ComposeParser()
        self._engine = RuleEngine(
            enabled_rules=self.config.enabled_rules,
            disabled_rules=self.config.disabled_rules,
        )
        self._patcher = LinePatcher(hardening_user=self.config.hardening_user)

    def analyze(self, content: str) -> AnalysisResult:
        """Analyze compose text.

        A decode failure is reported in ``parse_error`` and leaves the text
        unpatched; nothing is raised.

        Args:
            content: Raw compose text.

        Returns:
            AnalysisResult with findings, score, patched text and diff.
        """
        content = content or ""
        parsed = self._parser.parse(content)

        if not parsed.ok:
            return AnalysisResult(
                source=content,
                patched_text=content,
                diff=generate_diff(content, content, []),
                parse_error=parsed.error,
            )

        findings = self._engine.evaluate(parsed.document, content)
        patch = self._patcher.patch(content, parsed.document)
        logger.info(
            f"Analyzed compose file: {len(findings)} finding(s), "
            f"{len(patch.removed)} line(s) removed, {len(patch.added)} line(s) added"
        )

        return AnalysisResult(
            source=content,
            findings=findings,
            grouped=group_findings(findings),
            counts=count_by_severity(findings),
            patched_text=patch.patched_text,
            changes=patch.changes,
            diff=generate_diff(content, patch.patched_text, patch.changes),
        )


def analyze_compose(content: str, config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
    """Analyze compose text with the given (or default) configuration.

    Args:
        content: Raw compose text.
        config: Optional analyzer settings.

    Returns:
        AnalysisResult for the document.
    """
    return ComposeAnalyzer(config).analyze(content)


def filter_result(result: AnalysisResult, threshold: Severity) -> AnalysisResult:
    """Restrict reported findings to a minimum severity.

    The patched text, changes and diff are kept as they are.
    """
    if threshold == Severity.LOW:
        return result

    findings = filter_by_severity(result.findings, threshold)
    return AnalysisResult(
        source=result.source,
        findings=findings,
        grouped=group_findings(findings),
        counts=count_by_severity(findings),
        patched_text=result.patched_text,
        changes=result.changes,
        diff=result.diff,
        parse_error=result.parse_error,
    )
