from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Tuple

from ..core.collector import DEFAULT_PRODUCT_DIRS
from ..core.models import CheckOutcome
from ..core.utils import truncate
from .base import Check


# Settings
LINT_COMMAND = ("npm", "run", "lint")
LINT_DIRS = tuple(d for d in DEFAULT_PRODUCT_DIRS if d != "prisma")
ERROR_COUNT_RE = re.compile(r"(\d+)\s+errors?\b", re.IGNORECASE)
WARNING_COUNT_RE = re.compile(r"(\d+)\s+warnings?\b", re.IGNORECASE)
OUTPUT_EXCERPT_LENGTH = 500


def parse_lint_counts(output: str) -> Tuple[int, int]:
    """Read the ``N errors`` / ``N warnings`` summary a linter prints."""
    errors = ERROR_COUNT_RE.search(output)
    warnings = WARNING_COUNT_RE.search(output)
    return (int(errors.group(1)) if errors else 0, int(warnings.group(1)) if warnings else 0)


class LintCheck(Check):
    """Runs the project linter in each product directory. Zero errors and zero warnings pass."""
    NAME = "lint"
    COMMAND = LINT_COMMAND

    def lint_targets(self, path: Path) -> List[Path]:
        targets = [path / d for d in LINT_DIRS if (path / d / "package.json").is_file()]
        if not targets and (path / "package.json").is_file():
            targets = [path]
        return targets

    def run(self, path: Path) -> CheckOutcome:
        targets = self.lint_targets(path)
        if not targets:
            return CheckOutcome(success=True, warnings=[f"lint skipped: no package.json under {path}"])

        errors: List[str] = []
        total_errors = total_warnings = 0
        per_target: Dict[str, Dict[str, object]] = {}
        for target in targets:
            label = target.name if target != path else "."
            result = self.runner.run(self.COMMAND, cwd=target)
            output = result.combined_output
            error_count, warning_count = parse_lint_counts(output)
            if not result.ok and error_count == 0 and warning_count == 0:
                # the linter died before printing a summary
                error_count = 1
                errors.append(f"[{label}] {' '.join(self.COMMAND)} exited with code {result.exit_code}")
            elif error_count or warning_count:
                errors.append(f"[{label}] {error_count} error(s), {warning_count} warning(s)")
            total_errors += error_count
            total_warnings += warning_count
            per_target[label] = {
                "errors": error_count,
                "warnings": warning_count,
                "exit_code": result.exit_code,
                "output": truncate(output, OUTPUT_EXCERPT_LENGTH),
            }
            self.logger.info("Lint %s: %d error(s), %d warning(s)", label, error_count, warning_count)

        return CheckOutcome(
            success=total_errors == 0 and total_warnings == 0,
            errors=errors,
            details={"error_count": total_errors, "warning_count": total_warnings, "targets": per_target},
        )
