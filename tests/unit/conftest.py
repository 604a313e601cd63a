from pathlib import Path
from typing import Dict, Union

import pytest

from gatescan.core.models import SourceFile


def write_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")
    return root


def source(root: Path, rel: str) -> SourceFile:
    return SourceFile(path=root / rel, relative_path=rel)


@pytest.fixture()
def tree(tmp_path: Path):
    def _make(files: Dict[str, Union[str, bytes]]) -> Path:
        return write_tree(tmp_path, files)
    return _make
