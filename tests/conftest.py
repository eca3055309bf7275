from pathlib import Path
from typing import Dict

import pytest


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Materializes {relative path: content} under root."""
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path):
    def _make(files: Dict[str, str]) -> Path:
        return write_tree(tmp_path, files)
    return _make
