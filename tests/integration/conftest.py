import os
import sys
import json
import subprocess
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[2]


def run_cli(args, cwd=None, env=None, timeout=60, stdin=None):
    """
    Run the CLI as a subprocess: python -m gatescan.cli <args>
    Returns CompletedProcess with stdout/stderr text captured.
    """
    cmd = [sys.executable, "-m", "gatescan.cli"] + list(map(str, args))
    merged = dict(os.environ)
    merged["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), merged.get("PYTHONPATH")]))
    merged.pop("GATESCAN_WORKSPACE_ROOT", None)
    merged.pop("GATESCAN_COMPACT_OUTPUT", None)
    merged.update(env or {})
    return subprocess.run(cmd, cwd=cwd, env=merged, input=stdin, capture_output=True, text=True, timeout=timeout)


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """
    A small project with one secret, one eval and a leftover TODO in frontend/,
    a clean backend/, and noise that must never be scanned.
    """
    root = tmp_path / "workspace"
    files = {
        "frontend/src/config.ts": 'export const password = "abcdef12";\n',
        "frontend/src/render.tsx": "// TODO: sanitize\nconst html = eval(input);\n",
        "frontend/src/env.ts": 'export const apiKey = process.env.API_KEY || "abcdefghijk";\n',
        "frontend/src/__tests__/config.test.ts": 'const password = "testpass123";\n',
        "frontend/node_modules/lib/index.js": "eval(x)\n",
        "backend/server.ts": "export const port = 3000;\n",
        "docs/readme.ts": "eval(y)\n",
    }
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    return root


@pytest.fixture()
def out_dir(tmp_path: Path) -> Path:
    d = tmp_path / "out"
    d.mkdir(parents=True, exist_ok=True)
    return d


def load_json(p: Path):
    with p.open("r") as f:
        return json.load(f)


def assert_exit_ok(proc):
    assert proc.returncode == 0, f"Non-zero exit:\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"


def assert_exit_code(proc, code):
    assert proc.returncode == code, f"Expected exit {code}, got {proc.returncode}:\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"


def assert_file(p: Path):
    assert p.exists(), f"Expected file missing: {p}"
    return p
