from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..core.models import CheckOutcome
from ..core.orchestrator import settle_all
from .base import Check, CheckSettings
from .build import BuildCheck
from .lint import LintCheck
from .readiness import ReadinessCheck


class QualityCheck(Check):
    """Composite gate: lint, build and readiness settled together, all must pass."""
    NAME = "quality"

    def __init__(self, settings: Optional[CheckSettings] = None, *, parts: Optional[Sequence[Check]] = None) -> None:
        super().__init__(settings)
        if parts is None:
            parts = [LintCheck(self.settings), BuildCheck(self.settings), ReadinessCheck(self.settings)]
        self.parts = list(parts)

    def run(self, path: Path) -> CheckOutcome:
        results = settle_all(self.parts, path, logger=self.logger)

        errors: List[str] = []
        warnings: List[str] = []
        summary: List[str] = []
        details: Dict[str, object] = {}
        for result in results:
            details[result.name] = result.to_dict()
            if result.success:
                summary.append(f"{result.name}: PASS")
            else:
                summary.append(f"{result.name}: {'ERROR' if result.outcome is None else 'FAIL'}")
                errors.append(result.failure_message())
            warnings.extend(f"{result.name}: {w}" for w in result.warnings)

        return CheckOutcome(
            success=not errors,
            errors=errors,
            warnings=warnings,
            files=sum(r.files for r in results),
            details={"summary": ", ".join(summary), "parts": details},
        )
