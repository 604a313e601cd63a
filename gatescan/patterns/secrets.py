from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from ..core.models import SourceFile
from .base import RulePack, is_test_source


class SecretsPack(RulePack):
    # Settings up top
    NAME = "secrets"
    PRIORITY = 10
    RULES: List[Tuple[str, str]] = [
        (
            "Hardcoded Secret/Token",
            r"(?:password|passwd|pwd|secret|token|api_?key|access_?key|auth_?key)\s*[:=]\s*[\"'][a-zA-Z0-9_\-]{8,}[\"']",
        ),
        ("OpenAI Secret Key", r"sk-[a-zA-Z0-9]{20,}"),
        ("GitHub Token", r"(?:ghp|gho|ghu|ghs|ghr)_[a-zA-Z0-9]{30,}"),
        ("Slack Token", r"xox[baprs]-[a-zA-Z0-9]{20,}"),
    ]
    # Test fixtures are full of fake credentials; these issues are not reported there.
    TEST_SUPPRESSED_MARKERS = ("Hardcoded", "Token")

    def suppressor_for(self, issue: str) -> Optional[Callable[[SourceFile], bool]]:
        if any(marker in issue for marker in self.TEST_SUPPRESSED_MARKERS):
            return is_test_source
        return None
