"""Rule registry for managing compose security rules."""

from typing import Iterable, Optional, Type

from compose_audit.rules.base import Rule


class RuleRegistry:
    """Registry for compose security rules.

    Rules are evaluated in registration order, which decides the order of
    equal-priority findings within a service.
    """

    def __init__(self) -> None:
        """Initialize the rule registry."""
        self._rules: dict[str, Rule] = {}

    def register(self, rule: Rule) -> None:
        """Register a rule.

        Args:
            rule: Rule instance to register.
        """
        self._rules[rule.RULE_ID] = rule

    def register_class(self, rule_class: Type[Rule]) -> None:
        """Register a rule class (instantiates it).

        Args:
            rule_class: Rule class to register.
        """
        self.register(rule_class())

    def get(self, rule_id: str) -> Optional[Rule]:
        """Get a rule by ID.

        Args:
            rule_id: The rule ID.

        Returns:
            Rule instance or None if not found.
        """
        return self._rules.get(rule_id)

    def get_all(self) -> list[Rule]:
        """Get all registered rules.

        Returns:
            List of all registered rules.
        """
        return list(self._rules.values())

    def select(
        self,
        enabled: Optional[Iterable[str]] = None,
        disabled: Optional[Iterable[str]] = None,
    ) -> list[Rule]:
        """Get the rules left after applying enable/disable lists.

        Args:
            enabled: Rule IDs to keep (None keeps all).
            disabled: Rule IDs to drop.

        Returns:
            Selected rules in registration order.
        """
        enabled_ids = set(enabled) if enabled is not None else None
        disabled_ids = set(disabled or ())
        return [
            rule
            for rule_id, rule in self._rules.items()
            if (enabled_ids is None or rule_id in enabled_ids) and rule_id not in disabled_ids
        ]

    @property
    def rule_ids(self) -> list[str]:
        """IDs of all registered rules."""
        return list(self._rules)

    def clear(self) -> None:
        """Clear all registered rules."""
        self._rules.clear()


# Global registry instance
_registry: Optional[RuleRegistry] = None


def get_registry() -> RuleRegistry:
    """Get the global rule registry.

    Returns:
        The global RuleRegistry instance.
    """
    global _registry
    if _registry is None:
        _registry = RuleRegistry()
        _register_default_rules(_registry)
    return _registry


def _register_default_rules(registry: RuleRegistry) -> None:
    """Register all default rules."""
    from compose_audit.rules.compose import (
        AppArmorDisabledRule,
        DockerSocketRule,
        HostIpcRule,
        HostNetworkRule,
        HostPidRule,
        HostRootMountRule,
        HostUtsRule,
        PrivilegedModeRule,
        ReadOnlyRootFilesystemRule,
        RunAsRootRule,
        SeccompDisabledRule,
    )

    registry.register_class(PrivilegedModeRule)
    registry.register_class(DockerSocketRule)
    registry.register_class(HostRootMountRule)
    registry.register_class(HostNetworkRule)
    registry.register_class(HostPidRule)
    registry.register_class(HostIpcRule)
    registry.register_class(HostUtsRule)
    registry.register_class(SeccompDisabledRule)
    registry.register_class(AppArmorDisabledRule)
    registry.register_class(RunAsRootRule)
    registry.register_class(ReadOnlyRootFilesystemRule)
