"""Error taxonomy: only configuration failures escape to callers."""

from __future__ import annotations

from typing import Optional


class GatescanError(Exception):
    """Base class for errors raised by gatescan."""


class ConfigurationError(GatescanError):
    """The operation cannot run: bad root, malformed rule, unknown mission."""


class CommandError(GatescanError):
    """An external command exited non-zero while its exit code was checked."""

    def __init__(self, cmd: str, exit_code: int, stderr: str = "", stdout: str = "") -> None:
        self.cmd = cmd
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        detail = (stderr or stdout).strip()
        message = f"`{cmd}` exited with code {exit_code}"
        if detail:
            message = f"{message}: {detail[:200]}"
        super().__init__(message)


class CheckTimeoutError(GatescanError):
    def __init__(self, name: str, timeout: Optional[float]) -> None:
        self.name = name
        self.timeout = timeout
        super().__init__(f"check '{name}' did not finish within {timeout}s")
