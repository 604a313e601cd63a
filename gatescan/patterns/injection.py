from __future__ import annotations

from typing import List, Tuple

from .base import RulePack


class InjectionPack(RulePack):
    NAME = "injection"
    PRIORITY = 30
    # Settings. [^\n]{0,400} keeps each attempt on one line and bounded.
    RULES: List[Tuple[str, str]] = [
        ("SQL Injection Risk (Concatenation)", r"execute\s*\(\s*[\"'`]SELECT [^\n]{0,400}? \+ "),
        ("Raw Query Risk", r"\$query(?:RawUnsafe)?\s*\("),
        ("Command Injection Risk", r"\bexec\s*\(\s*[\"'`][^\n]{0,400}?\$\{"),
        ("Command Injection Risk", r"\bspawn\s*\(\s*[\"'`][^\n]{0,400}?\$\{"),
        ("Shell Command Risk", r"\bsubprocess\.(?:call|run|Popen|check_output)\s*\([^\n]{0,300}?shell\s*=\s*True"),
    ]
