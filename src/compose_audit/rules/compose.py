"""Docker Compose security rules."""

from compose_audit.models import Severity
from compose_audit.parser import normalize_security_opt
from compose_audit.rules import checks
from compose_audit.rules.base import ComposeService, Rule

_OWASP_DOCKER = "https://cheatsheetseries.owasp.org/cheatsheets/Docker_Security_Cheat_Sheet.html"
_COMPOSE_SERVICES = "https://docs.docker.com/reference/compose-file/services/"


class PrivilegedModeRule(Rule):
    """Check that services don't run in privileged mode."""

    RULE_ID = "COMPOSE_001"
    TITLE = "Privileged Mode Enabled"
    SEVERITY = Severity.CRITICAL
    PRIORITY = 1
    FIELD = "privileged"
    LINE_NEEDLE = "privileged:"
    IMPACT = (
        "Container runs with full root capabilities on the host, effectively "
        "disabling container isolation."
    )
    EXPLOIT = (
        "An attacker can access host devices, mount filesystems, and potentially "
        "escape to the host with full privileges."
    )
    REMEDIATION = (
        "Avoid privileged containers. Prefer narrowly scoped capabilities, "
        "read-only mounts, and tighter runtime profiles."
    )
    FIX_CODE = '''# Prefer removing privileged. If needed, switch to minimal caps:
cap_drop:
  - ALL
cap_add:
  - NET_BIND_SERVICE'''
    REFERENCE = _OWASP_DOCKER + "#rule-3-limit-capabilities-grant-only-specific-capabilities-needed-by-a-container"

    def is_violated(self, service: ComposeService) -> bool:
        return checks.is_privileged(service.config)


class DockerSocketRule(Rule):
    """Check that the Docker daemon socket is not mounted."""

    RULE_ID = "COMPOSE_002"
    TITLE = "Docker Socket Exposed"
    SEVERITY = Severity.CRITICAL
    PRIORITY = 1
    FIELD = "volumes"
    LINE_NEEDLE = checks.DOCKER_SOCKET
    IMPACT = (
        "Mounting the Docker socket effectively grants root-equivalent control "
        "of the host via the Docker daemon."
    )
    EXPLOIT = (
        "An attacker can start privileged containers, mount the host filesystem, "
        "and obtain a host root shell."
    )
    REMEDIATION = (
        "Avoid mounting the Docker socket. If you must, isolate to a dedicated "
        "host, limit who can reach it, and consider proxying with authentication."
    )
    FIX_CODE = '''# Remove this mount:
# - /var/run/docker.sock:/var/run/docker.sock'''
    REFERENCE = _OWASP_DOCKER + "#rule-1-do-not-expose-the-docker-daemon-socket-even-to-the-containers"

    def is_violated(self, service: ComposeService) -> bool:
        return checks.mounts_docker_socket(service.config)


class HostRootMountRule(Rule):
    """Check that the host root filesystem is not mounted."""

    RULE_ID = "COMPOSE_003"
    TITLE = "Host Root Mounted"
    SEVERITY = Severity.CRITICAL
    PRIORITY = 1
    FIELD = "volumes"
    LINE_NEEDLE = "/:/"
    IMPACT = (
        "Mounting the host root filesystem allows reading/writing any host file "
        "(SSH keys, configs, binaries)."
    )
    EXPLOIT = (
        "An attacker can modify /etc, add persistence, read secrets, or backdoor "
        "the host."
    )
    REMEDIATION = (
        "Mount only the specific directory you need and prefer read-only. Avoid "
        "host-root mounts entirely for app containers."
    )
    FIX_CODE = '''# Prefer narrow, read-only mounts:
volumes:
  - ./app-data:/data:ro
  - ./config:/config:ro'''
    REFERENCE = _OWASP_DOCKER + "#rule-8-set-filesystem-and-volumes-to-read-only"

    def is_violated(self, service: ComposeService) -> bool:
        return checks.mounts_host_root(service.config)

    def matches_line(self, line: str) -> bool:
        # Safe mounts such as ./:/app also contain the needle
        return checks.is_host_root_mount(checks.list_item_value(line))


class _HostNamespaceRule(Rule):
    """Shared check for network_mode/pid/ipc/uts set to host."""

    def is_violated(self, service: ComposeService) -> bool:
        return checks.shares_host_namespace(service.config, self.FIELD)


class HostNetworkRule(_HostNamespaceRule):
    """Check that services don't use the host network stack."""

    RULE_ID = "COMPOSE_004"
    TITLE = "Host Network Mode"
    SEVERITY = Severity.HIGH
    PRIORITY = 2
    FIELD = "network_mode"
    LINE_NEEDLE = "network_mode:"
    IMPACT = (
        "Container shares the host network stack, removing network isolation "
        "and exposing host-local services."
    )
    EXPLOIT = (
        "An attacker may access localhost-only services and bind to ports "
        "directly on the host."
    )
    REMEDIATION = "Prefer bridge networking with explicit port mappings."
    FIX_CODE = '''# Remove network_mode: host
ports:
  - "8080:80"'''
    REFERENCE = "https://docs.docker.com/engine/network/drivers/host/"


class HostPidRule(_HostNamespaceRule):
    """Check that services don't share the host PID namespace."""

    RULE_ID = "COMPOSE_005"
    TITLE = "Host PID Namespace Shared"
    SEVERITY = Severity.HIGH
    PRIORITY = 2
    FIELD = "pid"
    LINE_NEEDLE = "pid:"
    IMPACT = "Container can see and potentially interact with host processes via /proc."
    EXPLOIT = "An attacker may enumerate host processes and attempt attacks against them."
    REMEDIATION = (
        "Remove PID namespace sharing unless you are running a dedicated "
        "monitoring agent that explicitly requires it."
    )
    FIX_CODE = '''# Remove:
# pid: host'''
    REFERENCE = _COMPOSE_SERVICES + "#pid"


class HostIpcRule(_HostNamespaceRule):
    """Check that services don't share the host IPC namespace."""

    RULE_ID = "COMPOSE_006"
    TITLE = "Host IPC Namespace Shared"
    SEVERITY = Severity.MEDIUM
    PRIORITY = 3
    FIELD = "ipc"
    LINE_NEEDLE = "ipc:"
    IMPACT = (
        "Container shares IPC with the host, increasing risk of shared-memory "
        "and IPC-based information exposure."
    )
    EXPLOIT = (
        "An attacker may access shared memory segments or message queues used "
        "by host processes."
    )
    REMEDIATION = "Remove IPC namespace sharing unless explicitly required for your workload."
    FIX_CODE = '''# Remove:
# ipc: host'''
    REFERENCE = _COMPOSE_SERVICES + "#ipc"


class _SecurityOptRule(Rule):
    """Shared check for an unconfined security_opt profile."""

    def is_violated(self, service: ComposeService) -> bool:
        return checks.has_security_opt(service.config, self.LINE_NEEDLE)

    def matches_line(self, line: str) -> bool:
        return self.LINE_NEEDLE in normalize_security_opt(line)


class SeccompDisabledRule(_SecurityOptRule):
    """Check that the default seccomp profile is not disabled."""

    RULE_ID = "COMPOSE_007"
    TITLE = "Seccomp Disabled"
    SEVERITY = Severity.MEDIUM
    PRIORITY = 3
    FIELD = "security_opt"
    LINE_NEEDLE = checks.SECCOMP_UNCONFINED
    IMPACT = "Syscall filtering is disabled, allowing a wider set of dangerous system calls."
    EXPLOIT = (
        "An attacker may leverage expanded syscall access to escalate privileges "
        "or bypass controls in some environments."
    )
    REMEDIATION = (
        "Remove seccomp:unconfined to use the default profile or an approved "
        "custom one."
    )
    FIX_CODE = '''# Remove:
# - seccomp:unconfined'''
    REFERENCE = "https://docs.docker.com/engine/security/seccomp/"


class AppArmorDisabledRule(_SecurityOptRule):
    """Check that the default AppArmor profile is not disabled."""

    RULE_ID = "COMPOSE_008"
    TITLE = "AppArmor Disabled"
    SEVERITY = Severity.MEDIUM
    PRIORITY = 3
    FIELD = "security_opt"
    LINE_NEEDLE = checks.APPARMOR_UNCONFINED
    IMPACT = "Mandatory Access Control policy is disabled, removing an important hardening layer."
    EXPLOIT = "An attacker may perform actions that would normally be constrained by policy."
    REMEDIATION = (
        "Remove apparmor:unconfined to use the default profile or an approved "
        "custom one."
    )
    FIX_CODE = '''# Remove:
# - apparmor:unconfined'''
    REFERENCE = "https://docs.docker.com/engine/security/apparmor/"


class RunAsRootRule(Rule):
    """Check that services declare a user."""

    RULE_ID = "COMPOSE_009"
    TITLE = "Running as Root (No User Set)"
    SEVERITY = Severity.MEDIUM
    PRIORITY = 3
    FIELD = "user"
    LINE_NEEDLE = "user:"
    IMPACT = (
        "If the container is compromised, attacker gets root inside the "
        "container by default."
    )
    EXPLOIT = (
        "Root inside the container often makes breakout chains easier when "
        "combined with misconfigurations."
    )
    REMEDIATION = (
        "Set a non-root user that matches your image/app requirements (avoid "
        "breaking writes/permissions)."
    )
    FIX_CODE = '''# Example (choose a user that exists in your image):
user: "1000:1000"'''
    REFERENCE = _OWASP_DOCKER + "#rule-2-set-a-user"

    def is_violated(self, service: ComposeService) -> bool:
        return checks.lacks_user(service.config)


class HostUtsRule(_HostNamespaceRule):
    """Check that services don't share the host UTS namespace."""

    RULE_ID = "COMPOSE_010"
    TITLE = "Host UTS Namespace Shared"
    SEVERITY = Severity.LOW
    PRIORITY = 4
    FIELD = "uts"
    LINE_NEEDLE = "uts:"
    IMPACT = (
        "Container shares hostname/domain with the host (minor information "
        "disclosure / tampering risk)."
    )
    EXPLOIT = "In some configurations, hostname changes may affect the host namespace."
    REMEDIATION = "Remove UTS namespace sharing unless required."
    FIX_CODE = '''# Remove:
# uts: host'''
    REFERENCE = _COMPOSE_SERVICES + "#uts"


class ReadOnlyRootFilesystemRule(Rule):
    """Check that the container root filesystem is read-only."""

    RULE_ID = "COMPOSE_011"
    TITLE = "Root Filesystem Not Read-Only"
    SEVERITY = Severity.LOW
    PRIORITY = 4
    FIELD = "read_only"
    LINE_NEEDLE = "read_only:"
    IMPACT = "Writable filesystem makes persistence and tool installation easier after compromise."
    EXPLOIT = "An attacker can drop binaries, modify configs, or stash payloads on disk."
    REMEDIATION = (
        "Set read_only: true and mount necessary write paths using tmpfs or "
        "explicit volumes."
    )
    FIX_CODE = '''read_only: true
tmpfs:
  - /tmp'''
    REFERENCE = _COMPOSE_SERVICES + "#read_only"

    def is_violated(self, service: ComposeService) -> bool:
        return checks.lacks_read_only(service.config)
