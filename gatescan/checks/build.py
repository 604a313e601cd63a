from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from ..core.models import CheckOutcome
from ..core.utils import truncate
from .base import Check


# Settings
TYPECHECK_COMMAND = ("npx", "tsc", "--noEmit", "--pretty", "false")
PROJECT_FILE = "tsconfig.json"
BUILD_DIRS = ("frontend", "backend")
TS_ERROR_RE = re.compile(r"error TS\d+:", re.IGNORECASE)
FOUND_ERRORS_RE = re.compile(r"Found\s+(\d+)\s+errors?", re.IGNORECASE)
MAX_REPORTED_ERRORS = 20
OUTPUT_EXCERPT_LENGTH = 1000


def typecheck_errors(output: str) -> List[str]:
    """Error lines from compiler output; ``Found 0 errors`` alone is not a failure."""
    lines = [line.strip() for line in output.splitlines() if TS_ERROR_RE.search(line)]
    if not lines:
        found = FOUND_ERRORS_RE.search(output)
        if found and int(found.group(1)) > 0:
            lines.append(found.group(0))
    return lines


class BuildCheck(Check):
    NAME = "build"
    COMMAND = TYPECHECK_COMMAND

    def project_dir(self, path: Path) -> Optional[Path]:
        for candidate in [path / d for d in BUILD_DIRS] + [path]:
            if (candidate / PROJECT_FILE).is_file():
                return candidate
        return None

    def run(self, path: Path) -> CheckOutcome:
        project = self.project_dir(path)
        if project is None:
            return CheckOutcome(success=True, warnings=[f"build skipped: no {PROJECT_FILE} under {path}"])

        result = self.runner.run(self.COMMAND, cwd=project)
        output = result.combined_output
        errors = typecheck_errors(output)
        if not errors and not result.ok:
            errors.append(f"{' '.join(self.COMMAND)} exited with code {result.exit_code}")

        self.logger.info("Type check in %s: exit=%d, %d error line(s)", project, result.exit_code, len(errors))
        return CheckOutcome(
            success=not errors,
            errors=errors[:MAX_REPORTED_ERRORS],
            details={
                "error_count": len(errors),
                "exit_code": result.exit_code,
                "project": str(project),
                "output": truncate(output, OUTPUT_EXCERPT_LENGTH),
            },
        )
