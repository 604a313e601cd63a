from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from gatescan.core.config import FeatureFlags, workspace_root
from gatescan.core.errors import CommandError, ConfigurationError
from gatescan.core.loader import build_checks, build_rules, discover_rule_packs, select_rule_packs
from gatescan.core.models import (
    FULFILLED,
    REJECTED,
    CheckOutcome,
    CheckResult,
    CompactReport,
    Finding,
    Report,
    ScanRoot,
)


def test_finding_is_frozen_and_validated():
    finding = Finding(file="a.ts", line=3, issue="Eval usage", snippet="eval(x)")
    with pytest.raises(FrozenInstanceError):
        finding.line = 4
    with pytest.raises(ValueError):
        Finding(file="a.ts", line=0, issue="Eval usage")
    with pytest.raises(ValueError):
        Finding(file="", line=1, issue="Eval usage")


def test_finding_wire_record():
    finding = Finding(file="a.ts", line=3, issue="Eval usage", snippet="x" * 150)
    assert finding.to_dict(truncate=100) == {"file": "a.ts", "line": 3, "issue": "Eval usage", "code": "x" * 100}
    assert "code" not in Finding(file="a.ts", line=1, issue="Eval usage").to_dict()
    assert finding.describe() == "a.ts:3 Eval usage"


def test_scan_root_needs_absolute_path():
    with pytest.raises(ConfigurationError):
        ScanRoot(Path("relative"))
    root = ScanRoot(Path("/abs"), include_extensions={"TS", ".js"})
    assert root.include_extensions == frozenset({".ts", ".js"})


def test_check_outcome_coerce():
    outcome = CheckOutcome.coerce({"success": False, "errors": "one", "files": 2})
    assert outcome.errors == ("one",)
    assert outcome.files == 2
    assert CheckOutcome.coerce(outcome) is outcome
    with pytest.raises(TypeError):
        CheckOutcome.coerce({"errors": []})
    with pytest.raises(TypeError):
        CheckOutcome.coerce(None)
    with pytest.raises(TypeError):
        CheckOutcome(success="yes")


def test_check_result_requires_matching_payload():
    with pytest.raises(ValueError):
        CheckResult("lint", FULFILLED)
    with pytest.raises(ValueError):
        CheckResult("lint", REJECTED)
    with pytest.raises(ValueError):
        CheckResult("lint", "maybe", error="x")


def test_failed_check_result_dict_carries_error():
    result = CheckResult("build", FULFILLED, CheckOutcome(success=False), duration=1.5)
    data = result.to_dict()
    assert data["success"] is False
    assert data["error"] == "check failed"
    assert data["duration_ms"] == 1500


def test_report_cannot_claim_success_over_failed_check():
    failed = CheckResult("lint", REJECTED, error="crashed")
    with pytest.raises(ValueError):
        Report(mission_type="full", checks={"lint": failed}, success=True)


def test_empty_report_succeeds():
    report = Report.from_results("minimal", [])
    assert report.success
    assert report.to_dict()["checks"] == {}


def test_compact_report_status_is_validated():
    with pytest.raises(ValueError):
        CompactReport(v="1.0", t="x", s=5, e=(), f=0, c=0)


def test_command_error_message():
    err = CommandError("npm run lint", 2, stderr="boom\n")
    assert str(err) == "`npm run lint` exited with code 2: boom"


def test_unknown_flag_raises():
    with pytest.raises(ConfigurationError):
        FeatureFlags().is_enabled("telepathy")


def test_workspace_root_resolution(tmp_path: Path, monkeypatch):
    assert workspace_root(tmp_path) == tmp_path.resolve()
    assert workspace_root(environ={"GATESCAN_WORKSPACE_ROOT": str(tmp_path)}) == tmp_path.resolve()
    monkeypatch.chdir(tmp_path)
    assert workspace_root(environ={}) == tmp_path.resolve()
    with pytest.raises(ConfigurationError):
        workspace_root(tmp_path / "missing")


def test_rule_pack_discovery_and_selection():
    packs = discover_rule_packs()
    assert list(packs) == ["secrets", "dangerous", "injection"]
    selected = select_rule_packs(packs, "injection,secrets")
    assert list(selected) == ["secrets", "injection"]
    names = [rule.name for rule in build_rules(selected)]
    assert names[0] == "Hardcoded Secret/Token"
    with pytest.raises(ConfigurationError):
        select_rule_packs(packs, "secrets,nonsense")
    with pytest.raises(ConfigurationError):
        build_rules({})


def test_build_checks_selection():
    assert [c.name for c in build_checks("default")] == ["lint", "build", "readiness", "security"]
    assert [c.name for c in build_checks("security,lint")] == ["security", "lint"]
    names = [c.name for c in build_checks("all")]
    assert names[:4] == ["lint", "build", "readiness", "security"]
    assert set(names[4:]) == {"infrastructure", "quality"}
    with pytest.raises(ConfigurationError):
        build_checks("lint,telepathy")
