"""Base classes for compose security rules."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from compose_audit.models import Severity


@dataclass
class ComposeService:
    """A single entry of the ``services`` mapping."""

    name: str
    config: dict[str, Any]

    def get_config(self, *keys: str, default: Any = None) -> Any:
        """Get nested config value by key path.

        Args:
            *keys: Path of keys to traverse.
            default: Default value if not found.

        Returns:
            Config value or default.
        """
        current = self.config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current


@dataclass
class RuleResult:
    """Result of applying a rule to a service."""

    passed: bool
    rule_id: str
    title: str
    severity: Severity
    priority: int
    service_name: str
    location: str
    impact: str
    exploit: str
    remediation: str
    reference: Optional[str] = None
    fix_code: Optional[str] = None


class Rule(ABC):
    """Abstract base class for compose security rules."""

    # Rule metadata - override in subclasses
    RULE_ID: str = "UNKNOWN"
    TITLE: str = "Unknown Rule"
    SEVERITY: Severity = Severity.MEDIUM
    PRIORITY: int = 99
    IMPACT: str = ""
    EXPLOIT: str = ""
    REMEDIATION: str = ""
    FIX_CODE: Optional[str] = None
    REFERENCE: Optional[str] = None

    # Service field the finding points at, e.g. "privileged"
    FIELD: str = ""
    # Text searched for inside the service block to attribute a line
    LINE_NEEDLE: Optional[str] = None

    @abstractmethod
    def is_violated(self, service: ComposeService) -> bool:
        """Check whether the service breaks this rule.

        Args:
            service: The compose service to check.

        Returns:
            True if the rule fires.
        """
        pass

    def evaluate(self, service: ComposeService) -> RuleResult:
        """Evaluate the rule against a service.

        Args:
            service: The compose service to evaluate.

        Returns:
            RuleResult indicating pass/fail and details.
        """
        return self._create_result(not self.is_violated(service), service)

    def matches_line(self, line: str) -> bool:
        """Check if a source line is where this rule's field is written."""
        return self.LINE_NEEDLE is not None and self.LINE_NEEDLE in line

    def location_for(self, service: ComposeService) -> str:
        """Dotted path of the offending field."""
        return f"services.{service.name}.{self.FIELD}"

    def _create_result(self, passed: bool, service: ComposeService) -> RuleResult:
        """Create a RuleResult for this rule.

        Args:
            passed: Whether the rule passed.
            service: The evaluated service.

        Returns:
            RuleResult with rule metadata.
        """
        return RuleResult(
            passed=passed,
            rule_id=self.RULE_ID,
            title=self.TITLE,
            severity=self.SEVERITY,
            priority=self.PRIORITY,
            service_name=service.name,
            location=self.location_for(service),
            impact=self.IMPACT,
            exploit=self.EXPLOIT,
            remediation=self.REMEDIATION,
            reference=self.REFERENCE,
            fix_code=self.FIX_CODE,
        )
