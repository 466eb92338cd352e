from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FileStatus:
    path: str
    length: int
    is_dir: bool
    modification_time: float
    access_time: float = 0.0
    permission: Optional[int] = None
    owner: Optional[str] = None
    group: Optional[str] = None
    is_symlink: bool = False


@dataclass(frozen=True)
class ContentSummary:
    length: int
    file_count: int
    directory_count: int


@dataclass(frozen=True)
class FileChecksum:
    algorithm: str
    value: str
    length: int
