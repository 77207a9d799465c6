"""Data models for compose analysis results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Finding severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def order(self) -> int:
        """Sort rank (lower = more severe)."""
        return _SEVERITY_ORDER[self]

    @property
    def penalty(self) -> int:
        """Points deducted from the security score per finding."""
        return _SEVERITY_PENALTY[self]

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """Convert a severity name (any case) to a Severity."""
        return cls(value.strip().lower())


_SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}

_SEVERITY_PENALTY = {
    Severity.CRITICAL: 20,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
    Severity.LOW: 2,
}


class ChangeAction(str, Enum):
    """Kind of edit made by the patcher."""

    REMOVED = "removed"
    ADDED = "added"


@dataclass(frozen=True)
class Finding:
    """A single rule violation for a single service."""

    service: str
    rule_id: str
    title: str
    severity: Severity
    location: str
    impact: str
    exploit: str
    remediation: str
    priority: int
    line_number: Optional[int] = None
    reference: Optional[str] = None
    fix_code: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "service": self.service,
            "rule_id": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "location": self.location,
            "line_number": self.line_number,
            "impact": self.impact,
            "exploit": self.exploit,
            "remediation": self.remediation,
            "reference": self.reference,
            "fix_code": self.fix_code,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class FindingLocation:
    """Where one occurrence of a grouped finding was seen."""

    service: str
    location: str
    line_number: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "service": self.service,
            "location": self.location,
            "line_number": self.line_number,
        }


@dataclass
class GroupedFinding:
    """All occurrences of one rule, merged across services.

    Static metadata comes from the first occurrence; every finding with the
    same title is produced by the same rule, so it is identical anyway.
    """

    rule_id: str
    title: str
    severity: Severity
    impact: str
    exploit: str
    remediation: str
    priority: int
    reference: Optional[str] = None
    fix_code: Optional[str] = None
    occurrences: list[FindingLocation] = field(default_factory=list)

    @classmethod
    def from_finding(cls, finding: Finding) -> "GroupedFinding":
        """Start a group from its first finding."""
        return cls(
            rule_id=finding.rule_id,
            title=finding.title,
            severity=finding.severity,
            impact=finding.impact,
            exploit=finding.exploit,
            remediation=finding.remediation,
            priority=finding.priority,
            reference=finding.reference,
            fix_code=finding.fix_code,
        )

    @property
    def services(self) -> list[str]:
        """Distinct affected services in first-seen order."""
        seen: list[str] = []
        for occurrence in self.occurrences:
            if occurrence.service not in seen:
                seen.append(occurrence.service)
        return seen

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "impact": self.impact,
            "exploit": self.exploit,
            "remediation": self.remediation,
            "reference": self.reference,
            "fix_code": self.fix_code,
            "priority": self.priority,
            "occurrences": [o.to_dict() for o in self.occurrences],
        }


@dataclass(frozen=True)
class ChangeRecord:
    """One line removed from or added to the patched document."""

    service: str
    action: ChangeAction
    line: str

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "service": self.service,
            "action": self.action.value,
            "line": self.line,
        }


@dataclass
class PatchResult:
    """Output of the line patcher."""

    patched_text: str
    changes: list[ChangeRecord] = field(default_factory=list)

    @property
    def removed(self) -> list[ChangeRecord]:
        """Removal records in emission order."""
        return [c for c in self.changes if c.action == ChangeAction.REMOVED]

    @property
    def added(self) -> list[ChangeRecord]:
        """Addition records in emission order."""
        return [c for c in self.changes if c.action == ChangeAction.ADDED]


@dataclass(frozen=True)
class DiffLine:
    """One index-aligned row of the original/patched comparison."""

    original: str
    patched: str
    changed: bool
    removed: bool
    added: bool
    is_problematic: bool
    line_num: int

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "original": self.original,
            "patched": self.patched,
            "changed": self.changed,
            "removed": self.removed,
            "added": self.added,
            "is_problematic": self.is_problematic,
            "line_num": self.line_num,
        }


@dataclass
class SeverityCounts:
    """Tally of findings per severity."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @classmethod
    def from_findings(cls, findings: list[Finding]) -> "SeverityCounts":
        """Count findings by severity."""
        counts = cls()
        for finding in findings:
            setattr(counts, finding.severity.value, counts.get(finding.severity) + 1)
        return counts

    def get(self, severity: Severity) -> int:
        """Count for one severity."""
        return getattr(self, severity.value)

    @property
    def total(self) -> int:
        """Total number of findings."""
        return self.critical + self.high + self.medium + self.low

    @property
    def score(self) -> int:
        """Security score from 0 to 100."""
        risk = sum(self.get(severity) * severity.penalty for severity in Severity)
        return max(0, 100 - risk)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
        }


@dataclass
class AnalysisResult:
    """Everything produced for one compose document."""

    source: str = ""
    findings: list[Finding] = field(default_factory=list)
    grouped: list[GroupedFinding] = field(default_factory=list)
    counts: SeverityCounts = field(default_factory=SeverityCounts)
    patched_text: str = ""
    changes: list[ChangeRecord] = field(default_factory=list)
    diff: list[DiffLine] = field(default_factory=list)
    parse_error: Optional[str] = None

    @property
    def score(self) -> int:
        """Overall security score (0-100)."""
        return self.counts.score

    @property
    def has_issues(self) -> bool:
        """Whether any finding was reported."""
        return bool(self.findings)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "score": self.score,
            "counts": self.counts.to_dict(),
            "findings": [g.to_dict() for g in self.grouped],
            "patched": self.patched_text,
            "changes": [c.to_dict() for c in self.changes],
            "parse_error": self.parse_error,
            "summary": {
                "total_issues": self.counts.total,
                "services_affected": len({f.service for f in self.findings}),
            },
        }
