from __future__ import annotations

import json
from bisect import bisect_left
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

import chardet  # type: ignore

BINARY_BYTES = bytes(range(0, 32)) + b"\x7f"
UTF8_BOM = b"\xef\xbb\xbf"
MAX_READ_BYTES = 20_000_000


def is_likely_binary(data: bytes, control_threshold: float = 0.30) -> bool:
    if not data:
        return False
    if 0 in data:
        return True
    control = sum(1 for b in data if b in BINARY_BYTES and b not in (9, 10, 12, 13))
    return (control / len(data)) > control_threshold


def _guess_encoding(data: bytes) -> str:
    guess = chardet.detect(data[:65536])
    enc = guess.get("encoding")
    if not enc:
        return "unknown encoding"
    return f"looks like {enc} ({guess.get('confidence', 0):.0%})"


def read_source(path: Path, max_bytes: int = MAX_READ_BYTES) -> Tuple[Optional[str], Optional[str]]:
    """Read a source file as UTF-8.

    Returns ``(text, None)`` on success. Binary, non-UTF-8 or unreadable files
    give ``(None, reason)``; the reason is meant for logs and skip lists.
    """
    try:
        with path.open("rb") as f:
            head = f.read(min(4096, max_bytes))
            if is_likely_binary(head):
                return None, "binary content"
            data = head + f.read(max_bytes - len(head))
    except OSError as exc:
        return None, f"unreadable: {exc.strerror or exc}"
    if data.startswith(UTF8_BOM):
        data = data[len(UTF8_BOM):]
    try:
        return data.decode("utf-8", errors="strict"), None
    except UnicodeDecodeError:
        return None, f"not UTF-8, {_guess_encoding(data)}"


class LineIndex:
    """Offset to line mapping for one file's text.

    Newline offsets are collected once, so each lookup is a binary search
    and every rule applied to the file shares the same index.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        newlines: List[int] = []
        pos = text.find("\n")
        while pos != -1:
            newlines.append(pos)
            pos = text.find("\n", pos + 1)
        self._newlines = newlines

    @property
    def line_count(self) -> int:
        return len(self._newlines) + 1

    def line_of(self, offset: int) -> int:
        return bisect_left(self._newlines, offset) + 1

    def line_text(self, line: int) -> str:
        start = self._newlines[line - 2] + 1 if line > 1 else 0
        end = self._newlines[line - 1] if line - 1 < len(self._newlines) else len(self.text)
        return self.text[start:end].rstrip("\r")

    def locate(self, offset: int) -> Tuple[int, str]:
        line = self.line_of(offset)
        return line, self.line_text(line)


def flatten_message(entry: Any) -> str:
    """Plain-string form of an error/warning entry (str, or object with a message)."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, BaseException):
        return str(entry) or entry.__class__.__name__
    if isinstance(entry, Mapping):
        message = entry.get("message")
        if isinstance(message, str) and message:
            return message
    else:
        message = getattr(entry, "message", None)
        if isinstance(message, str) and message:
            return message
    try:
        return json.dumps(entry, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return str(entry)


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]
