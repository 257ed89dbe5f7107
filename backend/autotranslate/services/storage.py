"""Durable storage collaborator used by the persistent cache.

All persistence goes through the ``Storage`` interface so the cache never
touches the filesystem directly.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path


class Storage(ABC):
    """Text storage addressed by relative, slash-separated paths."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return True if a file exists at ``path``."""
        pass

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        """Create a directory (and parents). Must be idempotent."""
        pass

    @abstractmethod
    async def read(self, path: str) -> str:
        """Read the full text stored at ``path``."""
        pass

    @abstractmethod
    async def write(self, path: str, text: str) -> None:
        """Replace the text stored at ``path``."""
        pass


class LocalStorage(Storage):
    """Filesystem storage rooted at a directory.

    Blocking file I/O runs in a worker thread so the event loop never stalls on disk.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.root / candidate

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_file)

    async def mkdir(self, path: str) -> None:
        await asyncio.to_thread(self.resolve(path).mkdir, parents=True, exist_ok=True)

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self.resolve(path).read_text, encoding="utf-8")

    async def write(self, path: str, text: str) -> None:
        await asyncio.to_thread(self._write_atomic, self.resolve(path), text)

    @staticmethod
    def _write_atomic(target: Path, text: str) -> None:
        # One temp file per write; overlapping writers to the same path must not share it
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp.write(text)
        try:
            os.replace(tmp.name, target)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise
