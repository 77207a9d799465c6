"""compose-audit - Security analyzer and patcher for docker-compose files."""

__version__ = "0.1.0"

from compose_audit.analyzer import ComposeAnalyzer, analyze_compose
from compose_audit.config import AnalyzerConfig, ConfigError
from compose_audit.models import (
    AnalysisResult,
    ChangeRecord,
    DiffLine,
    Finding,
    GroupedFinding,
    Severity,
)

__all__ = [
    "__version__",
    "analyze_compose",
    "ComposeAnalyzer",
    "AnalyzerConfig",
    "ConfigError",
    "AnalysisResult",
    "ChangeRecord",
    "DiffLine",
    "Finding",
    "GroupedFinding",
    "Severity",
]
