"""
Compact wire format for reports and check results.

A report becomes ``{"v":"1.0","t":"verification","s":0,"e":[],"f":5,"c":2}``
(optional ``w`` and ``m``). With the ``compact_output`` flag off the same
fields are emitted, uncapped, and the full input rides along under ``m`` so
consumers see one shape in both modes.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .config import FeatureFlags
from .metrics import MetricsRecorder
from .models import (
    COMPACT_VERSION,
    STATUS_ERROR,
    STATUS_OK,
    STATUS_WARNING,
    CompactCheck,
    CompactReport,
    Report,
)
from .utils import flatten_message, truncate

DEFAULT_LOGGER_NAME = "gatescan"
COMPACT_FLAG = "compact_output"
MAX_COMPACT_ITEMS = 10
ERROR_DETAIL_LIMIT = 100
DEFAULT_TYPE = "verification"


def serialized_size(value: Any) -> int:
    return len(json.dumps(value, separators=(",", ":"), default=str, ensure_ascii=False).encode("utf-8"))


def _as_mapping(data: Any) -> Dict[str, Any]:
    if isinstance(data, Mapping):
        return dict(data)
    to_dict = getattr(data, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    raise TypeError(f"Cannot compactify {type(data).__name__}; expected a mapping or a report")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _int_field(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _status_for(errors: Sequence[str], warnings: Sequence[str]) -> int:
    if errors:
        return STATUS_ERROR
    if warnings:
        return STATUS_WARNING
    return STATUS_OK


def _file_count(data: Mapping[str, Any]) -> int:
    # A non-zero sum over per-check breakdowns overrides the top-level field.
    files = _int_field(data.get("files"))
    checks = data.get("checks")
    if isinstance(checks, Mapping):
        from_checks = sum(_int_field(_field(c, "files")) for c in checks.values())
        if from_checks > 0:
            files = from_checks
    return files


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _report_type(data: Mapping[str, Any]) -> str:
    return str(data.get("type") or data.get("operation_type") or data.get("operationType") or DEFAULT_TYPE)


class ResultCompactor:
    def __init__(
        self,
        flags: Optional[FeatureFlags] = None,
        metrics: Optional[MetricsRecorder] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.flags = flags if flags is not None else FeatureFlags()
        self.metrics = metrics
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())

    def compactify(self, data: Union[Report, Mapping[str, Any]]) -> CompactReport:
        enabled = self.flags.is_enabled(COMPACT_FLAG)
        source = _as_mapping(data)

        errors = [flatten_message(e) for e in _as_list(source.get("errors"))]
        warnings = [flatten_message(w) for w in _as_list(source.get("warnings"))]
        status = _status_for(errors, warnings)
        files = _file_count(source)
        commits = _int_field(source.get("commits"))

        if not enabled:
            result = CompactReport(
                v=COMPACT_VERSION,
                t=_report_type(source),
                s=status,
                e=errors,
                w=warnings or None,
                f=files,
                c=commits,
                m=source,
            )
        else:
            result = CompactReport(
                v=COMPACT_VERSION,
                t=_report_type(source),
                s=status,
                e=errors[:MAX_COMPACT_ITEMS],
                w=warnings[:MAX_COMPACT_ITEMS] or None,
                f=files,
                c=commits,
                m={"ts": int(time.time() * 1000)} if source.get("metadata") else None,
            )

        self._record(source, result)
        return result

    def compactify_check(self, check: Any) -> CompactCheck:
        return compactify_check(check)

    def compactify_checks(self, checks: Mapping[str, Any]) -> Dict[str, CompactCheck]:
        return compactify_checks(checks)

    def _record(self, source: Mapping[str, Any], result: CompactReport) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record_compact_output(serialized_size(source), serialized_size(result.to_dict()))
        except Exception as exc:
            self.logger.warning("Unable to record compact output metrics: %s", exc)


def _count(data: Mapping[str, Any], explicit_keys: Sequence[str], list_key: str) -> Optional[int]:
    for key in explicit_keys:
        value = data.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    items = data.get(list_key)
    if isinstance(items, (list, tuple)):
        return len(items)
    return None


def compactify_check(check: Any) -> CompactCheck:
    """Status 0 only when the check is not marked failed and has exactly zero errors."""
    data = _as_mapping(check)
    failed = data.get("passed") is False or data.get("success") is False
    error_count = _count(data, ("error_count", "errorCount"), "errors")
    warning_count = _count(data, ("warning_count", "warningCount"), "warnings")
    status = STATUS_OK if not failed and error_count == 0 else STATUS_ERROR

    detail = None
    error = data.get("error")
    if status == STATUS_ERROR and isinstance(error, str) and error:
        detail = {"err": truncate(error, ERROR_DETAIL_LIMIT)}
    return CompactCheck(s=status, e=error_count, w=warning_count, d=detail)


def compactify_checks(checks: Mapping[str, Any]) -> Dict[str, CompactCheck]:
    return {name: compactify_check(check) for name, check in checks.items()}


def expand(compact: Union[CompactReport, Mapping[str, Any]]) -> Dict[str, Any]:
    """Readable form of a compact report, for debugging. Dropped data stays dropped."""
    data = compact.to_dict() if isinstance(compact, CompactReport) else compact
    s = data.get("s")
    if s == STATUS_OK:
        label = "ok"
    elif s == STATUS_ERROR:
        label = "error"
    else:
        label = "warning"
    return {
        "version": data.get("v"),
        "type": data.get("t"),
        "status": label,
        "errors": list(data.get("e") or []),
        "warnings": list(data.get("w") or []),
        "files": data.get("f", 0),
        "commits": data.get("c", 0),
        "metadata": data.get("m"),
    }
