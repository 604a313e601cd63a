from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .errors import CommandError

DEFAULT_LOGGER_NAME = "gatescan"
TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int = 0

    @property
    def combined_output(self) -> str:
        return (self.stdout + self.stderr).strip()

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ShellCommandRunner:
    """Runs external tools for the checks that need them.

    A missing executable raises ``FileNotFoundError``; with ``check=True`` a
    non-zero exit raises :class:`CommandError`. Both surface as a rejected
    check in the orchestrator.
    """

    def __init__(self, default_timeout: Optional[float] = None, *, logger: Optional[logging.Logger] = None) -> None:
        self.default_timeout = default_timeout
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())

    def run(
        self,
        cmd: Sequence[str],
        cwd: Path,
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        check: bool = False,
    ) -> CommandResult:
        timeout = self.default_timeout if timeout is None else timeout
        merged_env = None
        if env is not None:
            merged_env = dict(os.environ)
            merged_env.update(env)

        started = time.monotonic()
        try:
            proc = subprocess.run(
                list(cmd),
                cwd=str(cwd),
                env=merged_env,
                text=True,
                capture_output=True,
                check=False,
                timeout=timeout,
            )
            result = CommandResult(
                stdout=proc.stdout or "",
                stderr=proc.stderr or "",
                exit_code=proc.returncode,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
        except subprocess.TimeoutExpired as exc:
            result = CommandResult(
                stdout=_as_text(exc.stdout),
                stderr=(_as_text(exc.stderr) + f"\ncommand timed out after {timeout}s").strip(),
                exit_code=TIMEOUT_EXIT_CODE,
                duration_ms=int((time.monotonic() - started) * 1000),
            )

        self.logger.debug(
            "Ran %s in %s: exit=%d (%dms)", " ".join(cmd), cwd, result.exit_code, result.duration_ms
        )
        if check and not result.ok:
            raise CommandError(" ".join(cmd), result.exit_code, result.stderr, result.stdout)
        return result


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
