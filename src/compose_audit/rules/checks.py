"""Violation predicates shared by the rule engine and the line patcher.

Both consumers must agree on what makes a service unsafe, so every check
on the parsed service lives here.
"""

import re
from typing import Any

from compose_audit.parser import normalize_security_opt

DOCKER_SOCKET = "/var/run/docker.sock"
SECCOMP_UNCONFINED = "seccomp:unconfined"
APPARMOR_UNCONFINED = "apparmor:unconfined"

HOST_ROOT_MOUNT = re.compile(r"^\s*/:/")

NAMESPACE_FIELDS = ("network_mode", "pid", "ipc", "uts")


def is_host(value: Any) -> bool:
    """Check if a namespace setting shares the host namespace."""
    if value is None:
        return False
    return str(value).lower() == "host"


def is_privileged(service: dict[str, Any]) -> bool:
    """Privileged only when the value is literally boolean true."""
    return service.get("privileged") is True


def shares_host_namespace(service: dict[str, Any], field_name: str) -> bool:
    """Check a network_mode/pid/ipc/uts field for host sharing."""
    return is_host(service.get(field_name))


def get_volumes(service: dict[str, Any]) -> list:
    volumes = service.get("volumes")
    return volumes if isinstance(volumes, list) else []


def get_security_opt(service: dict[str, Any]) -> list:
    security_opt = service.get("security_opt")
    return security_opt if isinstance(security_opt, list) else []


def is_docker_socket_mount(volume: Any) -> bool:
    return DOCKER_SOCKET in str(volume)


def is_host_root_mount(volume: Any) -> bool:
    return bool(HOST_ROOT_MOUNT.match(str(volume).strip()))


def list_item_value(line: str) -> str:
    """Value of a YAML block-list item line, without the dash and quotes."""
    item = line.strip()
    if not item.startswith("-"):
        return ""
    return item[1:].strip().strip("\"'")


def mounts_docker_socket(service: dict[str, Any]) -> bool:
    """Check if any volume mounts the Docker daemon socket."""
    return any(is_docker_socket_mount(v) for v in get_volumes(service))


def mounts_host_root(service: dict[str, Any]) -> bool:
    """Check if any volume mounts the host's root directory."""
    return any(is_host_root_mount(v) for v in get_volumes(service))


def has_security_opt(service: dict[str, Any], option: str) -> bool:
    """Check for a security_opt entry after normalization."""
    return any(normalize_security_opt(o) == option for o in get_security_opt(service))


def lacks_user(service: dict[str, Any]) -> bool:
    """The mere presence of ``user`` satisfies the check."""
    return "user" not in service


def lacks_read_only(service: dict[str, Any]) -> bool:
    return service.get("read_only") is not True
