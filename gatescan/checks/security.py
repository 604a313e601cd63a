from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..core.collector import DEFAULT_EXCLUDE_DIRS, DEFAULT_INCLUDE_EXTENSIONS, FileCollector, resolve_scan_roots
from ..core.loader import default_rules
from ..core.models import CODE_TRUNCATE_LENGTH, CheckOutcome
from ..core.scanner import PatternScanner
from .base import Check, CheckSettings


# config files are scanned for credentials too
SECURITY_EXTENSIONS = DEFAULT_INCLUDE_EXTENSIONS | {".json", ".yml", ".yaml"}
SECURITY_EXCLUDE_DIRS = DEFAULT_EXCLUDE_DIRS | {".env"}


class SecurityCheck(Check):
    """Pattern scan for secrets, dangerous calls and injection-prone code.

    Any finding fails the check. Errors read ``file:line issue``.
    """
    NAME = "security"

    def __init__(self, settings: Optional[CheckSettings] = None, *, collector: Optional[FileCollector] = None) -> None:
        super().__init__(settings)
        self.rules = list(self.settings.rules) if self.settings.rules else default_rules()
        self.collector = collector or FileCollector(
            SECURITY_EXCLUDE_DIRS, SECURITY_EXTENSIONS, logger=self.logger
        )

    def run(self, path: Path) -> CheckOutcome:
        root = Path(path).resolve()
        files = self.collector.collect(resolve_scan_roots(root), workspace_root=root)
        scanner = PatternScanner(
            self.rules,
            self.settings.max_findings,
            workers=self.settings.scan_workers,
            logger=self.logger,
        )
        result = scanner.scan(files)

        warnings: List[str] = []
        if result.truncated:
            warnings.append(f"stopped at {result.max_findings} findings; more may exist")
        return CheckOutcome(
            success=not result.findings,
            errors=[f.describe() for f in result.findings],
            warnings=warnings,
            files=result.files_scanned,
            details={
                "count": result.count,
                "findings": [f.to_dict(truncate=CODE_TRUNCATE_LENGTH) for f in result.findings],
                "skipped": [{"file": p, "reason": r} for p, r in result.skipped],
            },
        )
