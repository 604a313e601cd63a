from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..core.collector import FileCollector, resolve_scan_roots
from ..core.models import CODE_TRUNCATE_LENGTH, CheckOutcome, SourceFile
from ..core.scanner import PatternScanner
from ..patterns.base import TEST_PATH_MARKERS, RulePack
from .base import Check, CheckSettings


# Paths where placeholders and TODOs are legitimate.
EXEMPT_PATH_MARKERS = TEST_PATH_MARKERS + ("/__fixtures__/", "/__mocks__/", "/_snapshot/", "/backups/")


def is_exempt_source(source: SourceFile) -> bool:
    path = "/" + source.relative_path.replace("\\", "/")
    return any(marker in path for marker in EXEMPT_PATH_MARKERS)


class ReadinessPack(RulePack):
    """Words that mark unfinished code.

    Matching is whole-word, so ``tempDir`` or ``mockingbird`` never trip it.
    ``placeholder="..."`` attributes and ``sample...@`` addresses are not
    flagged.
    """
    NAME = "readiness"
    PRIORITY = 90
    RULES: List[Tuple[str, str]] = [
        ("Forbidden word: mock", r"\bmock\b"),
        ("Forbidden word: placeholder", r"\bplaceholder\b(?!\s*=\s*[\"'`{])"),
        ("Forbidden word: TODO", r"\bTODO\b"),
        ("Forbidden word: FIXME", r"\bFIXME\b"),
        ("Forbidden word: coming soon", r"\bcoming\s+soon\b"),
        ("Forbidden word: later", r"\blater\b"),
        ("Forbidden word: fake", r"\bfake\b"),
        ("Forbidden word: dummy", r"\bdummy\b"),
        ("Forbidden word: stub", r"\bstub\b"),
        ("Forbidden word: temp", r"\btemp\b"),
        ("Forbidden word: sample", r"\bsample\b(?![\w.\-]*@)"),
        ("Forbidden word: will implement", r"\bwill\s+implement\b"),
        ("Forbidden word: test-only", r"\btest-only\b"),
    ]

    def suppressor_for(self, issue: str) -> Optional[Callable[[SourceFile], bool]]:
        return is_exempt_source


class ReadinessCheck(Check):
    """Fails when production sources still contain placeholder or unfinished-work markers."""
    NAME = "readiness"

    def __init__(self, settings: Optional[CheckSettings] = None, *, collector: Optional[FileCollector] = None) -> None:
        super().__init__(settings)
        self.rules = ReadinessPack().rules()
        self.collector = collector or FileCollector(logger=self.logger)

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

        words: List[str] = []
        for finding in result.findings:
            word = finding.issue.split(": ", 1)[-1]
            if word not in words:
                words.append(word)
        return CheckOutcome(
            success=not result.findings,
            errors=[f.describe() for f in result.findings],
            files=result.files_scanned,
            details={
                "found": words,
                "count": result.count,
                "findings": [f.to_dict(truncate=CODE_TRUNCATE_LENGTH) for f in result.findings],
            },
        )
