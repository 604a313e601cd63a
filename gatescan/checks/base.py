from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..core.models import CheckOutcome, PatternRule
from ..core.process import ShellCommandRunner
from ..core.scanner import DEFAULT_MAX_FINDINGS


DEFAULT_LOGGER_NAME = "gatescan"
DEFAULT_COMMAND_TIMEOUT = 300.0


@dataclass
class CheckSettings:
    """Shared knobs handed to every check when the registry builds them."""

    runner: Optional[ShellCommandRunner] = None
    command_timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT
    rules: Optional[Sequence[PatternRule]] = None
    max_findings: int = DEFAULT_MAX_FINDINGS
    scan_workers: int = 1
    # probe name -> command line
    probes: Mapping[str, str] = field(default_factory=dict)
    logger: Optional[logging.Logger] = None


class Check:
    """
    Base class for checks. Subclasses set NAME at the top and implement
    ``run(path)`` returning a :class:`CheckOutcome`. Raising is fine: the
    orchestrator turns it into a rejected result.
    """
    NAME: str = "base"

    def __init__(self, settings: Optional[CheckSettings] = None) -> None:
        self.settings = settings or CheckSettings()
        base_logger = self.settings.logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.NAME)
        self.runner = self.settings.runner or ShellCommandRunner(self.settings.command_timeout, logger=base_logger)

    @property
    def name(self) -> str:
        return self.NAME

    def __call__(self, path: Path) -> CheckOutcome:
        return self.run(Path(path))

    def run(self, path: Path) -> CheckOutcome:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.NAME}>"
