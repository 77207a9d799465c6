"""Tests for report generators."""

import json

import pytest

from compose_audit import analyze_compose
from compose_audit.models import AnalysisResult
from compose_audit.reporter import (
    JSONReporter,
    SARIFReporter,
    TableReporter,
    create_reporter,
    render_diff,
)


@pytest.fixture
def result():
    """Analysis of a service with two critical issues."""
    return analyze_compose(
        """services:
  web:
    image: nginx
    privileged: true
    volumes:
      - /var/run/docker.sock:/var/run/docker.sock
"""
    )


@pytest.fixture
def clean_result():
    """Analysis of a hardened service."""
    return analyze_compose(
        """services:
  web:
    image: nginx
    user: app
    read_only: true
"""
    )


class TestJSONReporter:
    """Tests for JSON reporter."""

    def test_generate(self, result):
        data = json.loads(JSONReporter().generate(result))

        assert data["score"] == 53
        assert data["counts"]["critical"] == 2
        assert len(data["findings"]) == 4
        assert data["findings"][0]["title"] == "Privileged Mode Enabled"
        assert "patched" in data

    def test_clean(self, clean_result):
        data = json.loads(JSONReporter().generate(clean_result))

        assert data["score"] == 100
        assert data["findings"] == []
        assert data["summary"]["total_issues"] == 0


class TestTableReporter:
    """Tests for the rich table reporter."""

    def test_generate(self, result):
        output = TableReporter().generate(result)

        assert "Compose Security Summary" in output
        assert "Security Score: 53/100" in output
        assert "Privileged Mode Enabled" in output
        assert "COMPOSE_002" in output
        assert "Patch Changes" in output

    def test_without_details(self, result):
        output = TableReporter(show_details=False).generate(result)

        assert "Exploitation:" not in output

    def test_with_details(self, result):
        output = TableReporter(show_details=True).generate(result)

        assert "Exploitation:" in output

    def test_clean(self, clean_result):
        output = TableReporter().generate(clean_result)

        assert "Security Score: 100/100" in output
        assert "Findings" not in output

    def test_parse_error(self):
        output = TableReporter().generate(AnalysisResult(parse_error="bad indentation"))

        assert "YAML Parse Error" in output
        assert "bad indentation" in output

    def test_generate_does_not_print(self, result, capsys):
        output = TableReporter().generate(result)

        assert "Compose Security Summary" in output
        assert capsys.readouterr().out == ""


class TestSARIFReporter:
    """Tests for SARIF reporter."""

    def test_generate(self, result):
        sarif = json.loads(SARIFReporter(file_path="compose.yml").generate(result))

        assert sarif["version"] == "2.1.0"
        run = sarif["runs"][0]
        assert run["tool"]["driver"]["name"] == "compose-audit"
        assert len(run["tool"]["driver"]["rules"]) == 4
        assert len(run["results"]) == 4

    def test_result_locations(self, result):
        sarif = json.loads(SARIFReporter(file_path="compose.yml").generate(result))
        results = {r["ruleId"]: r for r in sarif["runs"][0]["results"]}

        privileged = results["COMPOSE_001"]["locations"][0]
        assert privileged["physicalLocation"]["artifactLocation"]["uri"] == "compose.yml"
        assert privileged["physicalLocation"]["region"]["startLine"] == 4
        assert privileged["logicalLocations"][0]["fullyQualifiedName"] == "services.web.privileged"

        user = results["COMPOSE_009"]["locations"][0]
        assert "region" not in user["physicalLocation"]

    def test_levels(self, result):
        sarif = json.loads(SARIFReporter().generate(result))
        levels = {r["ruleId"]: r["level"] for r in sarif["runs"][0]["results"]}

        assert levels == {
            "COMPOSE_001": "error",
            "COMPOSE_002": "error",
            "COMPOSE_009": "warning",
            "COMPOSE_011": "note",
        }


class TestRenderDiff:
    """Tests for diff rendering."""

    def test_marks_problematic_rows(self, result):
        text = render_diff(result.diff).plain

        assert "   4 !     privileged: true" in text

    def test_only_changed(self, result):
        text = render_diff(result.diff, only_changed=True).plain

        assert "services:" not in text
        assert "privileged: true" in text


class TestCreateReporter:
    """Tests for create_reporter factory."""

    @pytest.mark.parametrize(
        "format,cls",
        [("json", JSONReporter), ("table", TableReporter), ("sarif", SARIFReporter)],
    )
    def test_formats(self, format, cls):
        assert isinstance(create_reporter(format), cls)

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            create_reporter("xml")
