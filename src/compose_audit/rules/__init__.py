"""Compose security rules."""

from compose_audit.rules.base import ComposeService, Rule, RuleResult
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
from compose_audit.rules.registry import RuleRegistry, get_registry

__all__ = [
    "ComposeService",
    "Rule",
    "RuleResult",
    "RuleRegistry",
    "get_registry",
    "AppArmorDisabledRule",
    "DockerSocketRule",
    "HostIpcRule",
    "HostNetworkRule",
    "HostPidRule",
    "HostRootMountRule",
    "HostUtsRule",
    "PrivilegedModeRule",
    "ReadOnlyRootFilesystemRule",
    "RunAsRootRule",
    "SeccompDisabledRule",
]
