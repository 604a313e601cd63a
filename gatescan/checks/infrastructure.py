from __future__ import annotations

import shlex
from pathlib import Path
from typing import Callable, Dict, List, Tuple

from ..core.errors import ConfigurationError
from ..core.models import CheckOutcome
from ..core.orchestrator import settle_all
from ..core.utils import truncate
from .base import Check


OUTPUT_EXCERPT_LENGTH = 300


def parse_probe(spec: str) -> Tuple[str, str]:
    """``name=command line`` as given on the command line."""
    name, sep, command = spec.partition("=")
    name, command = name.strip(), command.strip()
    if not sep or not name or not command:
        raise ConfigurationError(f"Probe must look like NAME=COMMAND, got {spec!r}")
    return name, command


class InfrastructureCheck(Check):
    """Runs the configured probe commands concurrently; any non-zero exit fails the check."""
    NAME = "infrastructure"

    def _probe(self, name: str, command: str) -> Callable[[Path], CheckOutcome]:
        argv = shlex.split(command)
        if not argv:
            raise ConfigurationError(f"Probe '{name}' has an empty command")

        def probe(path: Path) -> CheckOutcome:
            result = self.runner.run(argv, cwd=path)
            errors = [] if result.ok else [f"exited with code {result.exit_code}"]
            return CheckOutcome(
                success=result.ok,
                errors=errors,
                details={"exit_code": result.exit_code, "output": truncate(result.combined_output, OUTPUT_EXCERPT_LENGTH)},
            )

        return probe

    def run(self, path: Path) -> CheckOutcome:
        probes = dict(self.settings.probes)
        if not probes:
            return CheckOutcome(success=True, warnings=["infrastructure skipped: no probes configured"])

        results = settle_all(
            [(name, self._probe(name, command)) for name, command in probes.items()],
            path,
            logger=self.logger,
        )
        summary: List[str] = []
        errors: List[str] = []
        details: Dict[str, object] = {}
        for result in results:
            details[result.name] = result.to_dict()
            summary.append(f"{result.name}: {'OK' if result.success else 'FAIL'}")
            if not result.success:
                errors.append(result.failure_message())
        return CheckOutcome(
            success=not errors,
            errors=errors,
            details={"summary": ", ".join(summary), "probes": details},
        )
