from __future__ import annotations

import importlib
import pkgutil
from typing import Dict, List, Type

from ..patterns.base import RulePack
from .errors import ConfigurationError
from .models import PatternRule


def _discover_package_classes(pkg, base_cls) -> Dict[str, Type]:
    discovered: Dict[str, Type] = {}
    for m in pkgutil.iter_modules(pkg.__path__, pkg.__name__ + "."):
        module = importlib.import_module(m.name)
        for attr_name in dir(module):
            obj = getattr(module, attr_name)
            if isinstance(obj, type) and issubclass(obj, base_cls) and obj is not base_cls:
                name = getattr(obj, "NAME", obj.__name__).lower()
                discovered[name] = obj
    return discovered


def discover_rule_packs() -> Dict[str, RulePack]:
    """All rule packs under ``gatescan.patterns``, ordered by PRIORITY."""
    from .. import patterns as patterns_pkg  # lazy import
    classes = _discover_package_classes(patterns_pkg, RulePack)
    ordered = sorted(classes.items(), key=lambda item: (item[1].PRIORITY, item[0]))
    return {name: cls() for name, cls in ordered}


def select_rule_packs(all_packs: Dict[str, RulePack], selector: str) -> Dict[str, RulePack]:
    selector = (selector or "").strip().lower()
    if selector == "all" or selector == "*":
        return dict(all_packs)
    wanted = {t.strip() for t in selector.split(",") if t.strip()}
    unknown = wanted - set(all_packs)
    if unknown:
        raise ConfigurationError(
            f"Unknown rule pack(s): {', '.join(sorted(unknown))}. Available: {', '.join(all_packs)}"
        )
    # keep discovery order so rule order never depends on how the selector was typed
    return {name: pack for name, pack in all_packs.items() if name in wanted}


def build_rules(packs: Dict[str, RulePack]) -> List[PatternRule]:
    rules: List[PatternRule] = []
    for pack in packs.values():
        rules.extend(pack.rules())
    if not rules:
        raise ConfigurationError("No pattern rules selected")
    return rules


def default_rules() -> List[PatternRule]:
    return build_rules(discover_rule_packs())


# Checks run by default, in report order. "quality" and "infrastructure" are opt-in.
DEFAULT_CHECKS = ("lint", "build", "readiness", "security")


def discover_checks() -> Dict[str, Type]:
    """Check classes under ``gatescan.checks`` keyed by NAME."""
    from .. import checks as checks_pkg  # lazy import
    from ..checks.base import Check
    return _discover_package_classes(checks_pkg, Check)


def build_checks(selector: str, settings=None) -> List:
    """Instantiate the checks named in ``selector`` ("default", "all" or a comma list)."""
    available = discover_checks()
    selector = (selector or "default").strip().lower()
    if selector == "default":
        names = list(DEFAULT_CHECKS)
    elif selector in ("all", "*"):
        names = list(DEFAULT_CHECKS) + sorted(n for n in available if n not in DEFAULT_CHECKS)
    else:
        names = []
        for name in (t.strip() for t in selector.split(",")):
            if name and name not in names:
                names.append(name)
    unknown = [n for n in names if n not in available]
    if unknown or not names:
        raise ConfigurationError(
            f"Unknown check(s): {', '.join(unknown) or selector!r}. Available: {', '.join(sorted(available))}"
        )
    return [available[name](settings) for name in names]
