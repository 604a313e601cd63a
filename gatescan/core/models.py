from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .utils import flatten_message, read_source


FULFILLED = "fulfilled"
REJECTED = "rejected"
CHECK_STATUSES = (FULFILLED, REJECTED)

COMPACT_VERSION = "1.0"
STATUS_OK = 0
STATUS_ERROR = 1
STATUS_WARNING = 2

SNIPPET_MAX_LENGTH = 200
CODE_TRUNCATE_LENGTH = 100


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def _as_tuple(value: Any, field_name: str) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, Mapping)):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(value)
    raise TypeError(f"{field_name} must be a list, got {type(value).__name__}")


@dataclass(frozen=True)
class ScanRoot:
    path: Path
    exclude_dirs: FrozenSet[str] = frozenset()
    include_extensions: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        path = Path(self.path)
        if not path.is_absolute():
            raise ConfigurationError(f"Scan root must be absolute: {path}")
        object.__setattr__(self, "path", path)
        object.__setattr__(self, "exclude_dirs", frozenset(self.exclude_dirs))
        object.__setattr__(
            self,
            "include_extensions",
            frozenset(_normalize_extension(e) for e in self.include_extensions),
        )


@dataclass(frozen=True)
class SourceFile:
    path: Path
    relative_path: str

    def __post_init__(self) -> None:
        if not self.relative_path:
            raise ValueError("SourceFile.relative_path is required")
        object.__setattr__(self, "path", Path(self.path))

    def read(self) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(text, None)`` or ``(None, reason)`` when the file is unreadable."""
        return read_source(self.path)


@dataclass(frozen=True)
class PatternRule:
    name: str
    pattern: "re.Pattern[str]"
    suppress: Optional[Callable[[SourceFile], bool]] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ConfigurationError("Pattern rule needs a name")
        pattern = self.pattern
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise ConfigurationError(f"Rule '{self.name}' has an invalid pattern: {exc}") from exc
        if not isinstance(pattern, re.Pattern):
            raise ConfigurationError(f"Rule '{self.name}' pattern must be a regex, got {type(pattern).__name__}")
        object.__setattr__(self, "pattern", pattern)
        if self.suppress is not None and not callable(self.suppress):
            raise ConfigurationError(f"Rule '{self.name}' suppression must be callable")

    def suppresses(self, source: SourceFile) -> bool:
        return self.suppress is not None and bool(self.suppress(source))


@dataclass(frozen=True)
class Finding:
    file: str
    line: int
    issue: str
    snippet: str = ""

    def __post_init__(self) -> None:
        if not self.file:
            raise ValueError("Finding.file is required")
        if not self.issue:
            raise ValueError("Finding.issue is required")
        if not isinstance(self.line, int) or self.line < 1:
            raise ValueError(f"Finding.line must be a 1-based int, got {self.line!r}")

    def to_dict(self, truncate: Optional[int] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {"file": self.file, "line": self.line, "issue": self.issue}
        if self.snippet:
            data["code"] = self.snippet[:truncate] if truncate else self.snippet
        return data

    def describe(self) -> str:
        return f"{self.file}:{self.line} {self.issue}"


@dataclass(frozen=True)
class CheckOutcome:
    """What a check returns when it ran to completion."""

    success: bool
    errors: Tuple[Any, ...] = ()
    warnings: Tuple[Any, ...] = ()
    files: int = 0
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.success, bool):
            raise TypeError(f"CheckOutcome.success must be a bool, got {type(self.success).__name__}")
        object.__setattr__(self, "errors", _as_tuple(self.errors, "errors"))
        object.__setattr__(self, "warnings", _as_tuple(self.warnings, "warnings"))
        object.__setattr__(self, "files", int(self.files or 0))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details or {})))

    @classmethod
    def coerce(cls, value: Any) -> "CheckOutcome":
        if isinstance(value, CheckOutcome):
            return value
        if isinstance(value, Mapping):
            if "success" not in value:
                raise TypeError("check result is missing 'success'")
            return cls(
                success=value["success"],
                errors=value.get("errors"),
                warnings=value.get("warnings"),
                files=value.get("files") or 0,
                details=value.get("details") or {},
            )
        raise TypeError(f"check returned {type(value).__name__}, expected a result with 'success'")

    def error_summary(self) -> str:
        messages = [flatten_message(e) for e in self.errors]
        return "; ".join(m for m in messages if m) or "check failed"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: str
    outcome: Optional[CheckOutcome] = None
    error: Optional[str] = None
    duration: float = 0.0

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("CheckResult.name is required")
        if self.status not in CHECK_STATUSES:
            raise ValueError(f"CheckResult.status must be one of {CHECK_STATUSES}, got {self.status!r}")
        if self.status == FULFILLED and self.outcome is None:
            raise ValueError("a fulfilled CheckResult needs an outcome")
        if self.status == REJECTED and not self.error:
            raise ValueError("a rejected CheckResult needs an error message")

    @property
    def success(self) -> bool:
        return self.status == FULFILLED and self.outcome is not None and self.outcome.success

    @property
    def errors(self) -> Tuple[Any, ...]:
        if self.outcome is None:
            return (self.error,)
        return self.outcome.errors

    @property
    def warnings(self) -> Tuple[Any, ...]:
        return self.outcome.warnings if self.outcome is not None else ()

    @property
    def files(self) -> int:
        return self.outcome.files if self.outcome is not None else 0

    def failure_message(self) -> Optional[str]:
        if self.success:
            return None
        if self.outcome is None:
            return f"{self.name}: {self.error}"
        return f"{self.name}: {self.outcome.error_summary()}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "success": self.success,
            "errors": [flatten_message(e) for e in self.errors],
            "warnings": [flatten_message(w) for w in self.warnings],
            "files": self.files,
            "duration_ms": int(self.duration * 1000),
        }
        if not self.success:
            data["error"] = self.error if self.outcome is None else self.outcome.error_summary()
        if self.outcome is not None and self.outcome.details:
            data["details"] = dict(self.outcome.details)
            # checks that parse tool output report their true totals here
            for key in ("error_count", "warning_count"):
                count = self.outcome.details.get(key)
                if isinstance(count, int) and not isinstance(count, bool):
                    data[key] = count
        return data


@dataclass(frozen=True)
class Report:
    mission_type: str
    checks: Mapping[str, CheckResult]
    success: bool
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.mission_type:
            raise ValueError("Report.mission_type is required")
        object.__setattr__(self, "checks", MappingProxyType(dict(self.checks)))
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        folded = all(result.success for result in self.checks.values())
        if self.success and not folded:
            raise ValueError("Report.success cannot be true while an invoked check failed")

    @classmethod
    def from_results(cls, mission_type: str, results: Iterable[CheckResult]) -> "Report":
        checks: Dict[str, CheckResult] = {}
        errors: List[str] = []
        warnings: List[str] = []
        for result in results:
            checks[result.name] = result
            message = result.failure_message()
            if message is not None:
                errors.append(message)
            warnings.extend(f"{result.name}: {flatten_message(w)}" for w in result.warnings)
        return cls(
            mission_type=mission_type,
            checks=checks,
            success=all(r.success for r in checks.values()),
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "mission",
            "mission_type": self.mission_type,
            "success": self.success,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
        }


@dataclass(frozen=True)
class CompactReport:
    v: str
    t: str
    s: int
    e: Tuple[str, ...]
    f: int
    c: int
    w: Optional[Tuple[str, ...]] = None
    m: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.s not in (STATUS_OK, STATUS_ERROR, STATUS_WARNING):
            raise ValueError(f"CompactReport.s must be 0, 1 or 2, got {self.s!r}")
        object.__setattr__(self, "e", tuple(self.e))
        if self.w is not None:
            object.__setattr__(self, "w", tuple(self.w))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"v": self.v, "t": self.t, "s": self.s, "e": list(self.e)}
        if self.w is not None:
            data["w"] = list(self.w)
        data["f"] = self.f
        data["c"] = self.c
        if self.m is not None:
            data["m"] = self.m
        return data


@dataclass(frozen=True)
class CompactCheck:
    s: int
    e: Optional[int] = None
    w: Optional[int] = None
    d: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"s": self.s}
        for key in ("e", "w", "d"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data
