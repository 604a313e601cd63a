from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from tqdm import tqdm

from .errors import ConfigurationError
from .models import SNIPPET_MAX_LENGTH, Finding, PatternRule, SourceFile
from .utils import LineIndex


DEFAULT_LOGGER_NAME = "gatescan"
DEFAULT_MAX_FINDINGS = 200
SLOW_SCAN_THRESHOLD_SECONDS = 2.0
FILE_TIME_BUDGET_SECONDS = 10.0

# Lines mentioning these read their value from the environment, not a literal.
ENV_REFERENCE_MARKERS = ("process.env", "import.meta.env", "os.environ", "os.getenv", "Deno.env")
IMPORT_LINE_RE = re.compile(r"^(?:import\s|from\s+\S+\s+import\s|export\s+\*\s+from\s)")


def configure_logging(verbose: bool = False, logger_name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Configure and return the package logger.

    Makes sure library use from scripts still gets output even when
    ``logging.basicConfig`` was never called. ``verbose`` raises the level
    from WARNING to INFO.
    """

    logger = logging.getLogger(logger_name)
    level = logging.INFO if verbose else logging.WARNING
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")
        )
        logger.addHandler(handler)

    return logger


def is_suppressed_line(line: str) -> bool:
    stripped = line.strip()
    if any(marker in stripped for marker in ENV_REFERENCE_MARKERS):
        return True
    return bool(IMPORT_LINE_RE.match(stripped))


def iter_matches(pattern: "re.Pattern[str]", text: str) -> "Iterator[re.Match[str]]":
    """Non-overlapping matches, left to right.

    An empty match moves the search position forward by one character, so a
    pattern that can match zero-width never stalls the loop.
    """
    pos = 0
    end = len(text)
    while pos <= end:
        m = pattern.search(text, pos)
        if m is None:
            return
        yield m
        pos = m.end() if m.end() > m.start() else m.start() + 1


@dataclass(frozen=True)
class ScanResult:
    findings: Tuple[Finding, ...]
    count: int
    max_findings: int
    files_scanned: int
    skipped: Tuple[Tuple[str, str], ...] = ()

    @property
    def truncated(self) -> bool:
        return self.count >= self.max_findings

    def to_dict(self, truncate: Optional[int] = None) -> dict:
        return {
            "findings": [f.to_dict(truncate=truncate) for f in self.findings],
            "count": self.count,
            "files_scanned": self.files_scanned,
            "skipped": [{"file": path, "reason": reason} for path, reason in self.skipped],
        }


@dataclass(frozen=True)
class _FileScan:
    source: SourceFile
    findings: Tuple[Finding, ...]
    skipped: Optional[str] = None


class PatternScanner:
    def __init__(
        self,
        rules: Sequence[PatternRule],
        max_findings: int = DEFAULT_MAX_FINDINGS,
        *,
        workers: int = 1,
        time_budget: float = FILE_TIME_BUDGET_SECONDS,
        logger: Optional[logging.Logger] = None,
        verbose: bool = False,
        show_progress: bool = False,
        progress_desc: str = "Scanning files",
    ) -> None:
        if not rules:
            raise ConfigurationError("PatternScanner needs at least one rule")
        for rule in rules:
            if not isinstance(rule, PatternRule):
                raise ConfigurationError(f"Expected PatternRule, got {type(rule).__name__}")
        if max_findings < 1:
            raise ConfigurationError(f"max_findings must be positive, got {max_findings}")
        self.rules = tuple(rules)
        self.max_findings = max_findings
        self.workers = max(1, workers)
        self.time_budget = time_budget
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())
        self.verbose = verbose
        if verbose:
            self.logger.setLevel(logging.INFO)
        self.show_progress = bool(show_progress)
        self.progress_desc = progress_desc
        self._progress_lock = threading.Lock()

    def scan(self, files: Sequence[SourceFile]) -> ScanResult:
        total_files = len(files)
        if self.verbose:
            self.logger.info("Scanning %d file(s) with %d rule(s)", total_files, len(self.rules))

        findings: List[Finding] = []
        skipped: List[Tuple[str, str]] = []
        scanned = 0

        progress_bar = None
        if self.show_progress and total_files:
            progress_bar = tqdm(total=total_files, desc=self.progress_desc, unit="file")
        scans = self._iter_file_scans(files, progress_bar)
        try:
            for result in scans:
                scanned += 1
                if result.skipped is not None:
                    skipped.append((result.source.relative_path, result.skipped))
                    continue
                room = self.max_findings - len(findings)
                findings.extend(result.findings[:room])
                if len(findings) >= self.max_findings:
                    self.logger.info(
                        "Finding cap of %d reached after %d file(s); stopping", self.max_findings, scanned
                    )
                    break
        finally:
            scans.close()
            if progress_bar is not None:
                progress_bar.close()

        return ScanResult(
            findings=tuple(findings),
            count=len(findings),
            max_findings=self.max_findings,
            files_scanned=scanned,
            skipped=tuple(skipped),
        )

    def _iter_file_scans(self, files: Sequence[SourceFile], progress_bar) -> Iterator[_FileScan]:
        # Per-file results are yielded in input order, whichever mode runs them.
        if self.workers == 1 or len(files) < 2:
            for source in files:
                result = self.scan_file(source, self.max_findings)
                self._tick(progress_bar)
                yield result
            return

        executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            futures = [executor.submit(self.scan_file, source, self.max_findings) for source in files]
            for future in futures:
                result = future.result()
                self._tick(progress_bar)
                yield result
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _tick(self, progress_bar) -> None:
        if progress_bar is not None:
            with self._progress_lock:
                progress_bar.update(1)

    def scan_file(self, source: SourceFile, limit: Optional[int] = None) -> _FileScan:
        limit = self.max_findings if limit is None else limit
        text, reason = source.read()
        if text is None:
            self.logger.warning("Skipping %s: %s", source.relative_path, reason)
            return _FileScan(source=source, findings=(), skipped=reason)

        start_time = time.perf_counter()
        found = self._scan_text(source, text, limit, start_time + self.time_budget)
        self._maybe_log_slow_file(source, time.perf_counter() - start_time, len(text), len(found))
        return _FileScan(source=source, findings=tuple(found))

    def _scan_text(self, source: SourceFile, text: str, limit: int, deadline: float) -> List[Finding]:
        if not text:
            return []
        index = LineIndex(text)
        found: List[Finding] = []
        for position, rule in enumerate(self.rules):
            if position and time.perf_counter() > deadline:
                self._log_budget_exceeded(source, rule.name)
                return found
            if rule.suppresses(source):
                continue
            for m in iter_matches(rule.pattern, text):
                line, line_text = index.locate(m.start())
                if not is_suppressed_line(line_text):
                    found.append(
                        Finding(
                            file=source.relative_path,
                            line=line,
                            issue=rule.name,
                            snippet=line_text.strip()[:SNIPPET_MAX_LENGTH],
                        )
                    )
                    if len(found) >= limit:
                        return found
                if time.perf_counter() > deadline:
                    self._log_budget_exceeded(source, rule.name)
                    return found
        return found

    def _log_budget_exceeded(self, source: SourceFile, rule_name: str) -> None:
        self.logger.warning(
            "Time budget of %.1fs exceeded in %s at rule '%s'; remaining rules skipped",
            self.time_budget,
            source.relative_path,
            rule_name,
        )

    def _maybe_log_slow_file(self, source: SourceFile, duration: float, size: int, findings: int) -> None:
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        if duration < SLOW_SCAN_THRESHOLD_SECONDS:
            return

        reasons: List[str] = []
        if size >= 1_000_000:
            reasons.append("large file")
        if findings >= 50:
            reasons.append("many findings")
        if len(self.rules) > 10:
            reasons.append("many rules")
        if not reasons:
            reasons.append("regex workload")

        self.logger.debug(
            "Slow scan for %s took %.2fs (%s). size=%s chars, findings=%d, rules=%d",
            source.relative_path,
            duration,
            ", ".join(reasons),
            f"{size:,}",
            findings,
            len(self.rules),
        )
