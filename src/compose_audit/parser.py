"""Compose file parser."""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Conventional compose layout: service keys sit two spaces under `services:`
SERVICE_INDENT = 2


@dataclass
class ParseResult:
    """Result of decoding compose text.

    ``ok`` with ``document`` set to None means there was nothing to parse
    (empty input), which is not an error.
    """

    ok: bool
    document: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class ComposeParser:
    """Decodes and encodes compose documents with PyYAML."""

    NON_OBJECT_ERROR = "YAML parsed to non-object."

    def parse(self, content: str) -> ParseResult:
        """Parse compose file content.

        Args:
            content: Raw YAML text.

        Returns:
            ParseResult with the decoded mapping or the decode error.
        """
        if not content or not content.strip():
            return ParseResult(ok=True)

        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse compose file: {e}")
            return ParseResult(ok=False, error=str(e))

        if not isinstance(document, dict):
            logger.warning(f"Compose file decoded to {type(document).__name__}, expected mapping")
            return ParseResult(ok=False, error=self.NON_OBJECT_ERROR)

        return ParseResult(ok=True, document=document)

    def dump(self, document: Any) -> Optional[str]:
        """Encode a document back to YAML.

        Args:
            document: Object to serialize.

        Returns:
            YAML text, or None if the object cannot be represented.
        """
        try:
            return yaml.safe_dump(
                document,
                sort_keys=False,
                width=120,
                default_flow_style=False,
            )
        except yaml.YAMLError as e:
            logger.error(f"YAML dump error: {e}")
            return None

    @classmethod
    def supported_extensions(cls) -> list[str]:
        """Return supported file extensions."""
        return [".yaml", ".yml"]


def parse_compose(content: str) -> ParseResult:
    """Parse compose text with the default parser."""
    return ComposeParser().parse(content)


def dump_compose(document: Any) -> Optional[str]:
    """Serialize a document with the default parser."""
    return ComposeParser().dump(document)


def normalize_security_opt(value: Any) -> str:
    """Lower-case a security_opt entry and drop all whitespace."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value).lower())


def get_services(document: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Return the services mapping, or None when absent or malformed."""
    if not isinstance(document, dict):
        return None
    services = document.get("services")
    if not isinstance(services, dict):
        return None
    return services
