"""Fixer modules for compose remediation."""

from compose_audit.fixers.diff import generate_diff
from compose_audit.fixers.patcher import LinePatcher, apply_all_patches

__all__ = ["LinePatcher", "apply_all_patches", "generate_diff"]
