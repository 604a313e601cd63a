import json
from pathlib import Path

from .conftest import run_cli, assert_exit_code, assert_exit_ok


def test_expand_file(tmp_path: Path):
    compact = {"v": "1.0", "t": "mission", "s": 2, "e": [], "w": ["lint: skipped"], "f": 7, "c": 0}
    path = tmp_path / "compact.json"
    path.write_text(json.dumps(compact))
    proc = run_cli(["expand", path])
    assert_exit_ok(proc)
    assert json.loads(proc.stdout) == {
        "version": "1.0",
        "type": "mission",
        "status": "warning",
        "errors": [],
        "warnings": ["lint: skipped"],
        "files": 7,
        "commits": 0,
        "metadata": None,
    }


def test_expand_stdin_roundtrip(workspace: Path):
    verify = run_cli(["verify", "--workspace", workspace, "--checks", "security"])
    proc = run_cli(["expand", "-"], stdin=verify.stdout)
    assert_exit_ok(proc)
    expanded = json.loads(proc.stdout)
    assert expanded["status"] == "error"
    assert expanded["files"] == 5
    assert len(expanded["errors"]) == 1


def test_expand_rejects_bad_input(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    assert_exit_code(run_cli(["expand", bad]), 2)
    assert_exit_code(run_cli(["expand", tmp_path / "missing.json"]), 2)
