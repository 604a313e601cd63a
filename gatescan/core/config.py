"""Runtime configuration: feature flags and the workspace root."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError

WORKSPACE_ROOT_ENV = "GATESCAN_WORKSPACE_ROOT"

# flag name -> env var
FLAG_ENV_VARS = {
    "compact_output": "GATESCAN_COMPACT_OUTPUT",
}


@dataclass(frozen=True)
class FeatureFlags:
    compact_output: bool = True

    def is_enabled(self, name: str) -> bool:
        if name not in {f.name for f in fields(self)}:
            raise ConfigurationError(f"Unknown feature flag: {name}")
        return bool(getattr(self, name))

    def with_overrides(self, **overrides: bool) -> "FeatureFlags":
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FeatureFlags":
        environ = os.environ if environ is None else environ
        overrides = {}
        for name, var in FLAG_ENV_VARS.items():
            raw = environ.get(var)
            if raw is not None:
                overrides[name] = raw.strip().lower() in ("1", "true", "yes", "on")
        return cls(**overrides)


def workspace_root(explicit: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Path:
    """Resolve the project root: explicit path, then GATESCAN_WORKSPACE_ROOT, then cwd."""
    environ = os.environ if environ is None else environ
    candidate = explicit or (Path(environ[WORKSPACE_ROOT_ENV]) if environ.get(WORKSPACE_ROOT_ENV) else Path.cwd())
    root = Path(candidate).expanduser().resolve()
    if not root.is_dir():
        raise ConfigurationError(f"Workspace root does not exist or is not a directory: {root}")
    return root
