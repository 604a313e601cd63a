import sys
from pathlib import Path

import pytest

from gatescan.checks.base import CheckSettings
from gatescan.checks.build import BuildCheck, typecheck_errors
from gatescan.checks.infrastructure import InfrastructureCheck, parse_probe
from gatescan.checks.lint import LintCheck, parse_lint_counts
from gatescan.checks.quality import QualityCheck
from gatescan.checks.readiness import ReadinessCheck
from gatescan.checks.security import SecurityCheck
from gatescan.core.compact import compactify_checks
from gatescan.core.errors import CommandError, ConfigurationError
from gatescan.core.models import CheckOutcome
from gatescan.core.orchestrator import CheckOrchestrator
from gatescan.core.process import TIMEOUT_EXIT_CODE, CommandResult, ShellCommandRunner


class FakeRunner:
    """Returns canned results keyed by the directory a command runs in."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def run(self, cmd, cwd, env=None, timeout=None, check=False):
        self.calls.append((tuple(cmd), Path(cwd)))
        return self.results[Path(cwd).name]


def test_parse_lint_counts():
    assert parse_lint_counts("✖ 5 problems (3 errors, 2 warnings)") == (3, 2)
    assert parse_lint_counts("1 error") == (1, 0)
    assert parse_lint_counts("All good") == (0, 0)


def test_lint_runs_in_each_product_dir(tmp_path: Path, tree):
    tree({"frontend/package.json": "{}", "backend/package.json": "{}"})
    runner = FakeRunner({
        "frontend": CommandResult("0 errors, 0 warnings", "", 0),
        "backend": CommandResult("2 errors, 1 warning", "", 1),
    })
    outcome = LintCheck(CheckSettings(runner=runner)).run(tmp_path)
    assert [cwd.name for _, cwd in runner.calls] == ["frontend", "backend"]
    assert outcome.success is False
    assert outcome.errors == ("[backend] 2 error(s), 1 warning(s)",)
    assert outcome.details["error_count"] == 2
    assert outcome.details["warning_count"] == 1


def test_lint_totals_survive_compaction(tmp_path: Path, tree):
    tree({"frontend/package.json": "{}"})
    runner = FakeRunner({"frontend": CommandResult("37 errors, 2 warnings", "", 1)})
    report = CheckOrchestrator([LintCheck(CheckSettings(runner=runner))]).run(tmp_path)
    compact = compactify_checks(report.checks)["lint"]
    assert (compact.s, compact.e, compact.w) == (1, 37, 2)


def test_lint_fails_when_linter_dies_silently(tmp_path: Path, tree):
    tree({"package.json": "{}"})
    runner = FakeRunner({tmp_path.name: CommandResult("", "npm ERR! missing script: lint", 1)})
    outcome = LintCheck(CheckSettings(runner=runner)).run(tmp_path)
    assert outcome.success is False
    assert "exited with code 1" in outcome.errors[0]


def test_lint_without_projects_is_skipped(tmp_path: Path):
    outcome = LintCheck(CheckSettings(runner=FakeRunner({}))).run(tmp_path)
    assert outcome.success
    assert outcome.warnings[0].startswith("lint skipped")


def test_typecheck_errors():
    out = "src/a.ts(1,5): error TS2322: Type 'string' is not assignable.\nFound 1 error."
    assert typecheck_errors(out) == ["src/a.ts(1,5): error TS2322: Type 'string' is not assignable."]
    assert typecheck_errors("Found 0 errors.") == []
    assert typecheck_errors("Found 4 errors in 2 files.") == ["Found 4 errors"]


def test_build_check(tmp_path: Path, tree):
    tree({"frontend/tsconfig.json": "{}"})
    clean = FakeRunner({"frontend": CommandResult("", "", 0)})
    assert BuildCheck(CheckSettings(runner=clean)).run(tmp_path).success

    broken = FakeRunner({"frontend": CommandResult("a.ts(2,1): error TS1005: ';' expected.", "", 2)})
    outcome = BuildCheck(CheckSettings(runner=broken)).run(tmp_path)
    assert outcome.success is False
    assert outcome.details["error_count"] == 1

    crashed = FakeRunner({"frontend": CommandResult("", "sh: npx: not found", 127)})
    outcome = BuildCheck(CheckSettings(runner=crashed)).run(tmp_path)
    assert outcome.errors == ("npx tsc --noEmit --pretty false exited with code 127",)


def test_build_without_project_is_skipped(tmp_path: Path):
    outcome = BuildCheck(CheckSettings(runner=FakeRunner({}))).run(tmp_path)
    assert outcome.success
    assert "tsconfig.json" in outcome.warnings[0]


def test_security_check(tmp_path: Path, tree):
    tree({
        "frontend/app.ts": 'const password = "abcdef12";\n',
        "frontend/page.tsx": "el.innerHTML = html;\n",
        "docs/notes.ts": "eval(x)\n",
    })
    outcome = SecurityCheck().run(tmp_path)
    assert outcome.success is False
    assert outcome.errors == (
        "frontend/app.ts:1 Hardcoded Secret/Token",
        "frontend/page.tsx:1 innerHTML assignment",
    )
    assert outcome.files == 2
    assert outcome.details["count"] == 2


def test_security_check_scans_config_files(tmp_path: Path, tree):
    tree({
        "config/settings.yml": 'password: "abcdef1234"\n',
        ".env/lib/leak.yml": 'token: "abcdef1234"\n',
    })
    outcome = SecurityCheck().run(tmp_path)
    assert outcome.success is False
    assert outcome.errors == ("config/settings.yml:1 Hardcoded Secret/Token",)
    assert outcome.files == 1


def test_security_check_clean_tree(tmp_path: Path, tree):
    tree({"src/ok.ts": "export const x = 1;\n"})
    outcome = SecurityCheck().run(tmp_path)
    assert outcome.success
    assert outcome.files == 1


def test_readiness_flags_unfinished_code(tmp_path: Path, tree):
    tree({
        "src/api.ts": "// TODO: wire up auth\nconst tempDir = '/tmp/x';\n",
        "src/form.tsx": '<input placeholder="Email" />\n',
        "src/contact.ts": 'const to = "sample.user@example.com";\n',
        "src/__tests__/api.test.ts": "// FIXME later\n",
        "src/__fixtures__/data.ts": "const mock = 1;\n",
    })
    outcome = ReadinessCheck().run(tmp_path)
    assert outcome.success is False
    assert outcome.errors == ("src/api.ts:1 Forbidden word: TODO",)
    assert outcome.details["found"] == ["TODO"]


def test_readiness_passes_clean_sources(tmp_path: Path, tree):
    tree({"src/app.ts": "export const total = items.length;\n"})
    assert ReadinessCheck().run(tmp_path).success


def test_parse_probe():
    assert parse_probe("db = pg_isready -h localhost") == ("db", "pg_isready -h localhost")
    with pytest.raises(ConfigurationError):
        parse_probe("no-command")


def test_infrastructure_probes(tmp_path: Path):
    settings = CheckSettings(probes={
        "up": f'"{sys.executable}" -c "pass"',
        "down": f'"{sys.executable}" -c "raise SystemExit(3)"',
    })
    outcome = InfrastructureCheck(settings).run(tmp_path)
    assert outcome.success is False
    assert outcome.errors == ("down: exited with code 3",)
    assert outcome.details["summary"] == "up: OK, down: FAIL"


def test_infrastructure_missing_executable_is_a_failed_probe(tmp_path: Path):
    settings = CheckSettings(probes={"ghost": "definitely-not-a-real-binary-4711 --ping"})
    outcome = InfrastructureCheck(settings).run(tmp_path)
    assert outcome.success is False
    assert outcome.errors[0].startswith("ghost: ")


def test_infrastructure_without_probes_is_skipped(tmp_path: Path):
    outcome = InfrastructureCheck().run(tmp_path)
    assert outcome.success
    assert outcome.warnings


def test_quality_composite_settles_all_parts(tmp_path: Path):
    class Part:
        def __init__(self, name, result):
            self.name = name
            self.result = result

        def __call__(self, path):
            if isinstance(self.result, Exception):
                raise self.result
            return self.result

    parts = [
        Part("lint", CheckOutcome(success=True, warnings=["lint skipped"], files=3)),
        Part("build", RuntimeError("tsc exploded")),
        Part("readiness", CheckOutcome(success=False, errors=["a.ts:1 Forbidden word: TODO"])),
    ]
    outcome = QualityCheck(parts=parts).run(tmp_path)
    assert outcome.success is False
    assert outcome.errors == ("build: tsc exploded", "readiness: a.ts:1 Forbidden word: TODO")
    assert outcome.warnings == ("lint: lint skipped",)
    assert outcome.files == 3
    assert outcome.details["summary"] == "lint: PASS, build: ERROR, readiness: FAIL"


def test_checks_plug_into_the_orchestrator(tmp_path: Path, tree):
    tree({"src/app.ts": "eval(userInput)\n"})
    runner = FakeRunner({})
    settings = CheckSettings(runner=runner)
    report = CheckOrchestrator([LintCheck(settings), SecurityCheck(settings)]).run(tmp_path)
    assert list(report.checks) == ["lint", "security"]
    assert report.checks["lint"].success
    assert report.errors == ("security: src/app.ts:1 Eval usage",)


def test_shell_runner(tmp_path: Path):
    runner = ShellCommandRunner()
    result = runner.run([sys.executable, "-c", "print('hi')"], cwd=tmp_path)
    assert result.ok
    assert result.stdout.strip() == "hi"

    with pytest.raises(CommandError):
        runner.run([sys.executable, "-c", "raise SystemExit(2)"], cwd=tmp_path, check=True)

    slow = runner.run([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.5)
    assert slow.exit_code == TIMEOUT_EXIT_CODE
