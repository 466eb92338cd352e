"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import Any, Dict, Iterator

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from chdfs.identity import get_identity_context  # noqa: E402


@pytest.fixture(autouse=True)
def reset_identity(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Give every test a fresh process identity resolved to a known user."""
    monkeypatch.setenv("HADOOP_USER_NAME", "tester")
    context = get_identity_context()
    context.reset()
    yield
    context.reset()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Provide a cache directory path that does not exist yet."""
    return tmp_path / "chdfs-cache"


@pytest.fixture
def ofs_config(cache_dir: Path) -> Dict[str, Any]:
    """Provide a minimal valid bootstrap configuration."""
    return {
        "fs.ofs.user.appid": 1250000000,
        "fs.ofs.tmp.cache.dir": str(cache_dir),
    }
