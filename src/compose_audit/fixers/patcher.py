"""Line-oriented compose patcher.

Removes offending lines and appends hardening fields without re-serializing
the document, so comments, ordering and formatting survive. Structure is
recovered from indentation, which assumes the conventional compose layout:

    services:         <- column 0
      web:            <- service level, 2 spaces
        privileged:   <- field level, 4 spaces
          - item      <- list item level, 6 spaces
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from compose_audit.models import ChangeAction, ChangeRecord, PatchResult
from compose_audit.parser import SERVICE_INDENT, get_services, normalize_security_opt
from compose_audit.rules import checks

logger = logging.getLogger(__name__)

FIELD_INDENT = 4
ITEM_INDENT = 6
INSERT_INDENT = " " * FIELD_INDENT

DEFAULT_USER = "1000:1000"

_SERVICES_KEY = re.compile(r"^services\s*:\s*(#.*)?$")


@dataclass
class PatchState:
    """Context carried from one line to the next during the patch pass."""

    services: dict[str, Any]
    in_services: bool = False
    current_service: Optional[str] = None
    in_security_opt: bool = False
    in_volumes: bool = False
    # Index in ``emitted`` of the current service's last content line
    anchor: int = -1
    anchors: dict[str, int] = field(default_factory=dict)
    emitted: list[str] = field(default_factory=list)
    changes: list[ChangeRecord] = field(default_factory=list)

    @property
    def service_config(self) -> dict[str, Any]:
        return self.services[self.current_service]

    def open_service(self, name: str) -> None:
        """Enter a service block; its header is the initial anchor."""
        self.close_service()
        self.current_service = name
        self.anchor = len(self.emitted)
        self.in_security_opt = False
        self.in_volumes = False

    def close_service(self) -> None:
        """Leave the current service block, remembering its anchor."""
        if self.current_service is not None and self.anchor >= 0:
            self.anchors[self.current_service] = self.anchor
        self.current_service = None
        self.in_security_opt = False
        self.in_volumes = False

    def emit(self, line: str) -> None:
        self.emitted.append(line)

    def elide(self, trimmed: str) -> None:
        """Drop the current line, recording it against the current service."""
        logger.debug(f"Removing from {self.current_service!r}: {trimmed}")
        self.changes.append(
            ChangeRecord(service=self.current_service, action=ChangeAction.REMOVED, line=trimmed)
        )


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


class LinePatcher:
    """Applies all removals and hardening additions to compose text."""

    def __init__(self, hardening_user: str = DEFAULT_USER) -> None:
        """Initialize the patcher.

        Args:
            hardening_user: Value written for ``user`` when a service lacks one.
        """
        self.hardening_user = hardening_user

    def patch(self, raw_text: str, document: Optional[dict[str, Any]]) -> PatchResult:
        """Patch compose text according to its parsed document.

        Args:
            raw_text: Original compose text.
            document: The same text, parsed (None when parsing failed).

        Returns:
            PatchResult with patched text and ordered change records.
        """
        services = get_services(document)
        if services is None:
            return PatchResult(patched_text=raw_text)

        state = PatchState(services=services)
        for line in raw_text.split("\n"):
            self._step(state, line)
        state.close_service()

        lines = self._insert_hardening(state)
        return PatchResult(patched_text="\n".join(lines), changes=state.changes)

    def _step(self, state: PatchState, line: str) -> None:
        """Advance the state machine by one source line."""
        trimmed = line.strip()
        indent = _indent(line)

        # Blank lines and comments never change state
        if not trimmed or trimmed.startswith("#"):
            state.emit(line)
            return

        if indent == 0:
            state.close_service()
            state.in_services = bool(_SERVICES_KEY.match(trimmed))
            state.emit(line)
            return

        if state.in_services and indent == SERVICE_INDENT:
            # Any service-level key ends the previous service's block
            name = trimmed[:-1] if self._is_service_header(trimmed) else None
            if name is not None and name in state.services and isinstance(state.services[name], dict):
                state.open_service(name)
            else:
                state.close_service()
            state.emit(line)
            return

        if state.current_service is None:
            state.emit(line)
            return

        if indent == FIELD_INDENT:
            self._track_block(state, trimmed)

        if self._should_remove(state, trimmed, indent):
            state.elide(trimmed)
            return

        state.emit(line)
        if indent >= FIELD_INDENT:
            state.anchor = len(state.emitted) - 1

    @staticmethod
    def _is_service_header(trimmed: str) -> bool:
        return trimmed.endswith(":") and " " not in trimmed

    @staticmethod
    def _track_block(state: PatchState, trimmed: str) -> None:
        """Follow entry into and exit from security_opt/volumes lists."""
        if trimmed.startswith("-"):
            return
        state.in_security_opt = trimmed.startswith("security_opt:")
        state.in_volumes = trimmed.startswith("volumes:")

    def _should_remove(self, state: PatchState, trimmed: str, indent: int) -> bool:
        service = state.service_config

        if indent == FIELD_INDENT:
            if trimmed.startswith("privileged:"):
                return checks.is_privileged(service)
            for field_name in checks.NAMESPACE_FIELDS:
                if trimmed.startswith(f"{field_name}:"):
                    return checks.shares_host_namespace(service, field_name)
            # An explicit non-true read_only is replaced by the hardening line
            if trimmed.startswith("read_only:"):
                return checks.lacks_read_only(service)
            return False

        if indent != ITEM_INDENT or not trimmed.startswith("-"):
            return False

        if state.in_security_opt:
            normalized = normalize_security_opt(trimmed)
            for option in (checks.SECCOMP_UNCONFINED, checks.APPARMOR_UNCONFINED):
                if option in normalized and checks.has_security_opt(service, option):
                    return True

        if state.in_volumes:
            item = checks.list_item_value(trimmed)
            if checks.DOCKER_SOCKET in trimmed and checks.mounts_docker_socket(service):
                return True
            if checks.is_host_root_mount(item) and checks.mounts_host_root(service):
                return True

        return False

    def _insert_hardening(self, state: PatchState) -> list[str]:
        """Append user/read_only after each service's anchor line."""
        by_anchor: dict[int, list[str]] = {}
        for name, anchor in state.anchors.items():
            by_anchor.setdefault(anchor, []).append(name)

        result: list[str] = []
        for index, line in enumerate(state.emitted):
            result.append(line)
            for name in by_anchor.get(index, ()):
                for addition in self._hardening_lines(state.services[name]):
                    result.append(f"{INSERT_INDENT}{addition}")
                    state.changes.append(
                        ChangeRecord(service=name, action=ChangeAction.ADDED, line=addition)
                    )
                    logger.debug(f"Adding to {name!r}: {addition}")
        return result

    def _hardening_lines(self, service: dict[str, Any]) -> list[str]:
        additions = []
        if checks.lacks_user(service):
            additions.append(f'user: "{self.hardening_user}"')
        if checks.lacks_read_only(service):
            additions.append("read_only: true")
        return additions


def apply_all_patches(raw_text: str, document: Optional[dict[str, Any]]) -> PatchResult:
    """Patch compose text with the default patcher."""
    return LinePatcher().patch(raw_text, document)
