from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from .errors import ConfigurationError
from .models import ScanRoot, SourceFile


DEFAULT_LOGGER_NAME = "gatescan"
DEFAULT_PRODUCT_DIRS = ("frontend", "backend", "prisma")
DEFAULT_EXCLUDE_DIRS = frozenset({
    "node_modules",
    ".next",
    ".next-dev",
    ".next-cache",
    "dist",
    "build",
    "out",
    "coverage",
    ".git",
    ".hg",
    ".svn",
    ".cursor",
    ".cursor-server",
    ".vscode",
    ".idea",
    ".turbo",
    ".cache",
    ".venv",
    "venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    "_snapshot",
})
DEFAULT_INCLUDE_EXTENSIONS = frozenset({".ts", ".tsx", ".js", ".jsx"})
DEFAULT_MAX_FILES = 50_000
# build artifacts come in many flavours: .next, .next-dev, .next-prod...
EXCLUDE_DIR_PREFIXES = (".next",)


def resolve_scan_roots(workspace_root: Path, target: Optional[Path] = None) -> List[Path]:
    """Pick the directories to scan.

    An explicit target wins. Otherwise the product directories that exist
    under the workspace root are used, falling back to the root itself.
    """
    if target is not None:
        target = Path(target)
        if not target.is_absolute():
            target = workspace_root / target
        target = target.resolve()
        if not target.is_dir():
            raise ConfigurationError(f"Scan target does not exist or is not a directory: {target}")
        return [target]

    roots = [workspace_root / d for d in DEFAULT_PRODUCT_DIRS if (workspace_root / d).is_dir()]
    return roots or [workspace_root]


def to_workspace_relative(workspace_root: Path, path: Path) -> str:
    try:
        return Path(path).relative_to(workspace_root).as_posix()
    except ValueError:
        return str(path)


class FileCollector:
    """Deterministic, bounded enumeration of source files.

    Entries are visited in sorted order at every level, so the output is
    lexicographic by path components and a truncated run always yields a
    prefix of the full run.
    """

    def __init__(
        self,
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
        include_extensions: Iterable[str] = DEFAULT_INCLUDE_EXTENSIONS,
        max_files: int = DEFAULT_MAX_FILES,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_files < 1:
            raise ConfigurationError(f"max_files must be positive, got {max_files}")
        self.exclude_dirs = frozenset(exclude_dirs)
        self.include_extensions = frozenset(include_extensions)
        self.max_files = max_files
        base_logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)
        self.logger = base_logger.getChild(self.__class__.__name__.lower())

    def scan_roots(self, roots: Sequence[Path]) -> List[ScanRoot]:
        return [
            ScanRoot(
                path=Path(r).resolve(),
                exclude_dirs=self.exclude_dirs,
                include_extensions=self.include_extensions,
            )
            for r in roots
        ]

    def collect(self, roots: Sequence[Path], workspace_root: Optional[Path] = None) -> List[SourceFile]:
        files: List[SourceFile] = []
        seen: Set[str] = set()
        for root in self.scan_roots(roots):
            if not root.path.is_dir():
                raise ConfigurationError(f"Scan root does not exist or is not a directory: {root.path}")
            base = Path(workspace_root).resolve() if workspace_root else root.path
            if not self._walk(root.path, root, base, seen, files):
                self.logger.info("File limit of %d reached; collection stopped early", self.max_files)
                break
        self.logger.debug("Collected %d file(s) from %d root(s)", len(files), len(roots))
        return files

    def _walk(
        self,
        directory: Path,
        root: ScanRoot,
        base: Path,
        seen: Set[str],
        out: List[SourceFile],
    ) -> bool:
        # returns False once the file limit is hit
        real = os.path.realpath(directory)
        if real in seen:
            self.logger.debug("Skipping already visited directory %s", directory)
            return True
        seen.add(real)

        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            self.logger.debug("Unable to list %s: %s", directory, exc)
            return True

        for entry in entries:
            if len(out) >= self.max_files:
                return False
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError:
                continue
            if is_dir:
                if entry.name in root.exclude_dirs or entry.name.startswith(EXCLUDE_DIR_PREFIXES):
                    continue
                if not self._walk(Path(entry.path), root, base, seen, out):
                    return False
                continue
            if not is_file:
                continue
            if os.path.splitext(entry.name)[1].lower() not in root.include_extensions:
                continue
            path = Path(entry.path)
            out.append(SourceFile(path=path, relative_path=to_workspace_relative(base, path)))
        return len(out) < self.max_files


def collect_source_files(
    roots: Sequence[Path],
    *,
    workspace_root: Optional[Path] = None,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    include_extensions: Iterable[str] = DEFAULT_INCLUDE_EXTENSIONS,
    max_files: int = DEFAULT_MAX_FILES,
    logger: Optional[logging.Logger] = None,
) -> List[SourceFile]:
    collector = FileCollector(exclude_dirs, include_extensions, max_files, logger=logger)
    return collector.collect(roots, workspace_root=workspace_root)
