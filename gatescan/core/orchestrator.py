from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import CheckTimeoutError, ConfigurationError
from .models import FULFILLED, REJECTED, CheckOutcome, CheckResult, Report
from .utils import flatten_message


DEFAULT_LOGGER_NAME = "gatescan"

MINIMAL = "minimal"
SECURITY = "security"
FULL = "full"
MISSION_TYPES = (MINIMAL, SECURITY, FULL)

CheckFn = Callable[[Path], Any]
CheckSpec = Union[Mapping[str, CheckFn], Iterable[Any], Iterable[Tuple[str, CheckFn]]]


def _named_checks(checks: CheckSpec) -> List[Tuple[str, CheckFn]]:
    """Normalise a mapping, ``(name, fn)`` pairs or objects with ``name`` into ordered pairs."""
    if isinstance(checks, Mapping):
        items = list(checks.items())
    else:
        items = []
        for entry in checks:
            if isinstance(entry, tuple) and len(entry) == 2:
                items.append(entry)
                continue
            name = getattr(entry, "name", None)
            if not name:
                raise ConfigurationError(f"Check {entry!r} has no name")
            items.append((name, entry))

    seen = set()
    for name, fn in items:
        if not callable(fn):
            raise ConfigurationError(f"Check '{name}' is not callable")
        if name in seen:
            raise ConfigurationError(f"Duplicate check name: {name}")
        seen.add(name)
    return items


def run_check(name: str, check: CheckFn, path: Path, logger: logging.Logger) -> CheckResult:
    """Invoke one check and classify it; never raises for the check's own failures."""
    started = time.perf_counter()
    try:
        outcome = CheckOutcome.coerce(check(path))
    except (Exception, SystemExit) as exc:
        duration = time.perf_counter() - started
        if isinstance(exc, SystemExit):
            message = f"check exited with status {exc.code}"
        else:
            message = flatten_message(exc) or exc.__class__.__name__
        logger.warning("Check '%s' rejected after %.2fs: %s", name, duration, message)
        return CheckResult(name=name, status=REJECTED, error=message, duration=duration)

    duration = time.perf_counter() - started
    logger.info("Check '%s' %s in %.2fs", name, "passed" if outcome.success else "failed", duration)
    return CheckResult(name=name, status=FULFILLED, outcome=outcome, duration=duration)


def settle_all(
    checks: CheckSpec,
    path: Path,
    *,
    workers: Optional[int] = None,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> List[CheckResult]:
    """Run every check concurrently and wait for all of them to settle.

    Results come back in the order the checks were given, whatever order they
    finished in. With ``timeout`` set, checks still running when it expires
    are reported as rejected; they are not interrupted, only abandoned.
    """
    logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
    items = _named_checks(checks)
    if not items:
        return []

    settled: Dict[str, CheckResult] = {}
    started = time.perf_counter()
    executor = ThreadPoolExecutor(max_workers=workers or len(items), thread_name_prefix="gatescan-check")
    try:
        futures = {executor.submit(run_check, name, fn, path, logger): name for name, fn in items}
        try:
            for future in as_completed(futures, timeout=timeout):
                settled[futures[future]] = future.result()
        except FutureTimeoutError:
            pending = [name for name, _ in items if name not in settled]
            logger.warning("Timed out after %ss waiting for: %s", timeout, ", ".join(pending))
    finally:
        executor.shutdown(wait=timeout is None, cancel_futures=True)

    elapsed = time.perf_counter() - started
    results: List[CheckResult] = []
    for name, _ in items:
        result = settled.get(name)
        if result is None:
            result = CheckResult(
                name=name,
                status=REJECTED,
                error=str(CheckTimeoutError(name, timeout)),
                duration=elapsed,
            )
        results.append(result)
    return results


class CheckOrchestrator:
    """Fans a mission's checks out on a thread pool and folds them into a Report.

    ``minimal`` missions leave out the checks named in ``security_checks``;
    ``security`` and ``full`` missions run everything configured.
    """

    def __init__(
        self,
        checks: CheckSpec,
        *,
        security_checks: Sequence[str] = ("security",),
        workers: Optional[int] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        verbose: bool = False,
    ) -> None:
        self.checks = _named_checks(checks)
        self.security_checks = frozenset(security_checks)
        if workers is not None and workers < 1:
            raise ConfigurationError(f"workers must be positive, got {workers}")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")
        self.workers = workers
        self.timeout = timeout
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())
        if verbose:
            self.logger.setLevel(logging.INFO)

    @property
    def check_names(self) -> List[str]:
        return [name for name, _ in self.checks]

    def checks_for(self, mission_type: str) -> List[Tuple[str, CheckFn]]:
        if mission_type not in MISSION_TYPES:
            raise ConfigurationError(
                f"Unknown mission type: {mission_type!r}. Available: {', '.join(MISSION_TYPES)}"
            )
        if mission_type == MINIMAL:
            return [(name, fn) for name, fn in self.checks if name not in self.security_checks]
        return list(self.checks)

    def run(self, path: Path, mission_type: str = FULL) -> Report:
        selected = self.checks_for(mission_type)
        path = Path(path)
        self.logger.info(
            "Running %s mission on %s: %s",
            mission_type,
            path,
            ", ".join(name for name, _ in selected) or "no checks",
        )
        results = settle_all(
            selected,
            path,
            workers=self.workers,
            timeout=self.timeout,
            logger=self.logger,
        )
        report = Report.from_results(mission_type, results)
        if report.success:
            self.logger.info("Mission %s passed (%d check(s))", mission_type, len(results))
        else:
            self.logger.warning(
                "Mission %s failed: %d of %d check(s) unsuccessful",
                mission_type,
                len(report.errors),
                len(results),
            )
        return report
