from __future__ import annotations

from typing import List, Tuple

from .base import RulePack


class DangerousCallsPack(RulePack):
    NAME = "dangerous"
    PRIORITY = 20
    # Settings
    RULES: List[Tuple[str, str]] = [
        ("Eval usage", r"\beval\s*\("),
        ("Dangerous HTML", r"dangerouslySetInnerHTML"),
        ("innerHTML assignment", r"\.innerHTML\s*=(?!=)"),
        ("Document write", r"\bdocument\.write(?:ln)?\s*\("),
    ]
