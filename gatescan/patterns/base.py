from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from ..core.models import PatternRule, SourceFile


TEST_PATH_MARKERS = (".test.", ".spec.", "__tests__")


def is_test_source(source: SourceFile) -> bool:
    path = source.relative_path.replace("\\", "/")
    return any(marker in path for marker in TEST_PATH_MARKERS)


class RulePack:
    """
    Base class for rule packs. Subclasses set NAME, PRIORITY and RULES at the
    top: RULES is an ordered list of ``(issue name, regex source)`` pairs.
    Packs are applied in PRIORITY order, rules in the order listed.
    Patterns must keep their quantifiers bounded or line-local; they run over
    whole files.
    """
    NAME: str = "base"
    PRIORITY: int = 100
    FLAGS: int = re.IGNORECASE
    # Settings (override in subclasses)
    RULES: List[Tuple[str, str]] = []

    def suppressor_for(self, issue: str) -> Optional[Callable[[SourceFile], bool]]:
        return None

    def rules(self) -> List[PatternRule]:
        return [
            PatternRule(name=issue, pattern=re.compile(source, self.FLAGS), suppress=self.suppressor_for(issue))
            for issue, source in self.RULES
        ]
