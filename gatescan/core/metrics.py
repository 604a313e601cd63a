"""In-memory recorder for compact-output size savings."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class CompactSample:
    timestamp: float
    original_size: int
    compact_size: int

    @property
    def saved(self) -> int:
        return self.original_size - self.compact_size


class MetricsRecorder:
    def __init__(self) -> None:
        self._samples: List[CompactSample] = []
        self._lock = threading.Lock()

    def record_compact_output(self, original_size: int, compact_size: int) -> None:
        with self._lock:
            self._samples.append(CompactSample(time.time(), int(original_size), int(compact_size)))

    @property
    def samples(self) -> List[CompactSample]:
        with self._lock:
            return list(self._samples)

    def summary(self) -> Dict[str, float]:
        samples = self.samples
        original = sum(s.original_size for s in samples)
        compact = sum(s.compact_size for s in samples)
        return {
            "calls": len(samples),
            "original_bytes": original,
            "compact_bytes": compact,
            "saved_bytes": original - compact,
            "saved_ratio": round((original - compact) / original, 4) if original else 0.0,
        }

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
