"""Tests for the rule engine and finding post-processing."""

import pytest

from compose_audit.engine import (
    RuleEngine,
    compute_score,
    count_by_severity,
    filter_by_severity,
    find_service_line,
    group_by_severity,
    group_findings,
    sort_findings,
)
from compose_audit.models import Severity, SeverityCounts
from compose_audit.parser import parse_compose
from compose_audit.rules.compose import PrivilegedModeRule, SeccompDisabledRule


PRIVILEGED_WITH_SOCKET = """services:
  web:
    image: nginx
    privileged: true
    volumes:
      - /var/run/docker.sock:/var/run/docker.sock
      - ./html:/usr/share/nginx/html
"""

TWO_SOCKET_SERVICES = """services:
  agent:
    image: agent
    user: "1000"
    read_only: true
    volumes:
      - /var/run/docker.sock:/var/run/docker.sock
  watcher:
    image: watcher
    user: "1000"
    read_only: true
    volumes:
      - /var/run/docker.sock:/var/run/docker.sock:ro
"""


def evaluate(text, **kwargs):
    document = parse_compose(text).document
    return RuleEngine(**kwargs).evaluate(document, text)


class TestRuleEngine:
    """Tests for RuleEngine.evaluate."""

    def test_privileged_and_socket_findings(self):
        """Test findings for a privileged service with a socket mount."""
        findings = evaluate(PRIVILEGED_WITH_SOCKET)

        assert [f.title for f in findings] == [
            "Privileged Mode Enabled",
            "Docker Socket Exposed",
            "Running as Root (No User Set)",
            "Root Filesystem Not Read-Only",
        ]
        assert [f.severity for f in findings] == [
            Severity.CRITICAL,
            Severity.CRITICAL,
            Severity.MEDIUM,
            Severity.LOW,
        ]
        assert all(f.service == "web" for f in findings)

    def test_line_numbers(self):
        """Test findings carry the line of the offending key."""
        findings = {f.rule_id: f for f in evaluate(PRIVILEGED_WITH_SOCKET)}

        assert findings["COMPOSE_001"].line_number == 4
        assert findings["COMPOSE_002"].line_number == 6
        # Absent fields have no line to point at
        assert findings["COMPOSE_009"].line_number is None
        assert findings["COMPOSE_011"].line_number is None

    def test_no_services_yields_nothing(self):
        """Test a document without services has no findings."""
        assert evaluate("version: '3.8'\n") == []
        assert RuleEngine().evaluate(None) == []
        assert RuleEngine().evaluate({"services": ["web"]}) == []

    def test_non_mapping_service_is_skipped(self):
        """Test services that are not mappings are skipped."""
        document = {
            "services": {
                "broken": "nginx",
                "ok": {"user": "app", "read_only": True},
            }
        }

        assert RuleEngine().evaluate(document) == []

    def test_hardened_service_is_clean(self):
        text = """services:
  web:
    image: nginx
    user: "1000:1000"
    read_only: true
    security_opt:
      - no-new-privileges:true
"""
        assert evaluate(text) == []

    def test_sorted_by_priority_with_stable_ties(self):
        text = """services:
  web:
    uts: host
    privileged: true
"""
        findings = evaluate(text)

        assert [f.rule_id for f in findings] == [
            "COMPOSE_001",
            "COMPOSE_009",
            "COMPOSE_010",
            "COMPOSE_011",
        ]

    def test_ties_keep_service_order(self):
        """Test equal priorities keep document order."""
        findings = evaluate(TWO_SOCKET_SERVICES)

        assert [(f.service, f.rule_id) for f in findings] == [
            ("agent", "COMPOSE_002"),
            ("watcher", "COMPOSE_002"),
        ]
        assert findings[0].line_number == 7
        assert findings[1].line_number == 13

    def test_disabled_rules_are_skipped(self):
        """Test disabled rules produce no findings."""
        findings = evaluate(
            PRIVILEGED_WITH_SOCKET, disabled_rules=["COMPOSE_009", "COMPOSE_011"]
        )

        assert [f.rule_id for f in findings] == ["COMPOSE_001", "COMPOSE_002"]

    def test_enabled_rules_only(self):
        """Test only enabled rules are evaluated."""
        engine = RuleEngine(enabled_rules=["COMPOSE_002"])

        assert [r.RULE_ID for r in engine.rules] == ["COMPOSE_002"]

    def test_flow_style_document_has_no_line_numbers(self):
        """Test flow-style documents leave line numbers unset."""
        findings = evaluate("services: {web: {privileged: true}}\n")

        assert findings[0].rule_id == "COMPOSE_001"
        assert findings[0].line_number is None


class TestFindServiceLine:
    """Tests for textual line attribution."""

    def test_search_stays_inside_service_block(self):
        lines = """services:
  app:
    image: app
  worker:
    image: worker
    privileged: true
""".split("\n")

        assert find_service_line(lines, "app", PrivilegedModeRule()) is None
        assert find_service_line(lines, "worker", PrivilegedModeRule()) == 6

    def test_comments_are_skipped(self):
        lines = """services:
  app:
    # privileged: true was needed once
    image: app
    privileged: true
""".split("\n")

        assert find_service_line(lines, "app", PrivilegedModeRule()) == 5

    def test_security_opt_line_is_normalized(self):
        lines = """services:
  app:
    security_opt:
      - "SECCOMP:Unconfined"
""".split("\n")

        assert find_service_line(lines, "app", SeccompDisabledRule()) == 4

    def test_unknown_service(self):
        """Test an unknown service has no header line."""
        assert find_service_line(["services:", "  app:"], "db", PrivilegedModeRule()) is None

    def test_long_form_depends_on_is_not_a_service_header(self):
        """Test a service named under depends_on keeps its own header line."""
        text = """services:
  web:
    image: web
    depends_on:
      db:
        condition: service_healthy
    privileged: true
  db:
    image: postgres
    user: postgres
    read_only: true
    privileged: true
"""
        findings = {(f.service, f.rule_id): f for f in evaluate(text)}

        assert findings[("web", "COMPOSE_001")].line_number == 7
        assert findings[("db", "COMPOSE_001")].line_number == 12

    def test_top_level_keys_are_not_service_headers(self):
        """Test keys of other top-level blocks are not service headers."""
        lines = """services:
  web:
    image: web
volumes:
  db:
    driver: local
""".split("\n")

        assert find_service_line(lines, "db", PrivilegedModeRule()) is None

    def test_no_services_key(self):
        """Test a document without a services block has no header line."""
        lines = ["  web:", "    privileged: true"]

        assert find_service_line(lines, "web", PrivilegedModeRule()) is None

    def test_host_root_line_skips_safe_mounts(self):
        """Test the host root finding points at the root mount only."""
        text = """services:
  app:
    user: app
    read_only: true
    volumes:
      - ./:/app
      - /srv/:/srv
      - "/:/host"
"""
        findings = evaluate(text)

        assert [f.rule_id for f in findings] == ["COMPOSE_003"]
        assert findings[0].line_number == 8


class TestPostProcessing:
    """Tests for grouping, counting and scoring."""

    def test_grouping_is_lossless(self):
        """Test grouping keeps every finding."""
        findings = evaluate(TWO_SOCKET_SERVICES + PRIVILEGED_WITH_SOCKET.replace("services:\n", ""))
        grouped = group_findings(findings)

        assert sum(len(g.occurrences) for g in grouped) == len(findings)

    def test_grouping_merges_by_title(self):
        """Test findings with one title share a group."""
        grouped = group_findings(evaluate(TWO_SOCKET_SERVICES))

        assert len(grouped) == 1
        assert grouped[0].title == "Docker Socket Exposed"
        assert grouped[0].services == ["agent", "watcher"]
        assert [o.line_number for o in grouped[0].occurrences] == [7, 13]

    def test_grouping_keeps_first_seen_order(self):
        """Test groups appear in first-seen order."""
        grouped = group_findings(evaluate(PRIVILEGED_WITH_SOCKET))

        assert [g.rule_id for g in grouped] == [
            "COMPOSE_001",
            "COMPOSE_002",
            "COMPOSE_009",
            "COMPOSE_011",
        ]

    def test_score(self):
        """Test scoring a list of findings."""
        findings = evaluate(PRIVILEGED_WITH_SOCKET)

        assert compute_score(findings) == 100 - 20 - 20 - 5 - 2

    def test_score_formula(self):
        """Test the score deduction per severity."""
        assert SeverityCounts().score == 100
        assert SeverityCounts(critical=1, high=1, medium=1, low=1).score == 63
        assert SeverityCounts(critical=6).score == 0

    def test_count_by_severity(self):
        """Test counting findings per severity."""
        counts = count_by_severity(evaluate(PRIVILEGED_WITH_SOCKET))

        assert counts.to_dict() == {"critical": 2, "high": 0, "medium": 1, "low": 1}
        assert counts.total == 4

    def test_group_by_severity(self):
        """Test grouping findings per severity."""
        buckets = group_by_severity(evaluate(PRIVILEGED_WITH_SOCKET))

        assert list(buckets) == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]
        assert len(buckets[Severity.CRITICAL]) == 2
        assert buckets[Severity.HIGH] == []

    @pytest.mark.parametrize(
        "threshold,expected",
        [
            (Severity.CRITICAL, 2),
            (Severity.HIGH, 2),
            (Severity.MEDIUM, 3),
            (Severity.LOW, 4),
        ],
    )
    def test_filter_by_severity(self, threshold, expected):
        """Test filtering findings below a threshold."""
        findings = evaluate(PRIVILEGED_WITH_SOCKET)

        assert len(filter_by_severity(findings, threshold)) == expected

    def test_sort_findings_is_stable(self):
        """Test sorting findings by priority is stable."""
        findings = evaluate(TWO_SOCKET_SERVICES)

        assert sort_findings(list(reversed(findings)))[0].service == "watcher"
