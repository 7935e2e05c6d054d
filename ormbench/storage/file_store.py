"""
File Store Adapter

Implements the IFileStore port for the local filesystem.

Every call is dispatched to a worker thread with ``asyncio.to_thread`` so a
caller suspends on disk I/O without blocking other tasks on the event loop.
Writes go to a temporary sibling first and are moved into place with
``os.replace``; a reader never observes a half-written document.
"""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ormbench.core.interfaces import IFileStore


class LocalFileStore(IFileStore):
    """
    Local filesystem implementation of IFileStore.

    Documents are UTF-8 JSON with two-space indentation. Key order is kept as
    produced by the caller, so identical inputs yield identical bytes.
    """

    # ------------------------------------------------------------------
    # Synchronous primitives (run in worker threads)
    # ------------------------------------------------------------------

    @staticmethod
    def _read_json(path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _atomic_write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        return path

    @staticmethod
    def _list(path: Path, dirs: bool, suffix: str = "") -> List[str]:
        if not path.is_dir():
            return []
        names = []
        for entry in path.iterdir():
            if entry.name.startswith("."):
                continue
            if dirs and entry.is_dir():
                names.append(entry.name)
            elif not dirs and entry.is_file() and entry.name.endswith(suffix):
                names.append(entry.name)
        return sorted(names)

    @staticmethod
    def _dump(data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=2, default=str) + "\n"

    # ------------------------------------------------------------------
    # Async API
    # ------------------------------------------------------------------

    async def read_json(self, path: Path) -> Dict[str, Any]:
        """Read JSON file and return parsed content."""
        return await asyncio.to_thread(self._read_json, Path(path))

    async def read_json_optional(self, path: Path) -> Optional[Dict[str, Any]]:
        """Read JSON file, or None when it does not exist."""
        try:
            return await self.read_json(path)
        except FileNotFoundError:
            return None

    async def write_json(self, path: Path, data: Dict[str, Any]) -> Path:
        """Write data as JSON, replacing the file in full. Returns the path."""
        return await asyncio.to_thread(self._atomic_write, Path(path), self._dump(data))

    async def write_text(self, path: Path, content: str) -> Path:
        """Write text content to file. Returns the written path."""
        return await asyncio.to_thread(self._atomic_write, Path(path), content)

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def list_dirs(self, path: Path) -> List[str]:
        return await asyncio.to_thread(self._list, Path(path), True)

    async def list_files(self, path: Path, suffix: str = ".json") -> List[str]:
        return await asyncio.to_thread(self._list, Path(path), False, suffix)

    async def makedirs(self, path: Path) -> None:
        """Create directory and parents if they don't exist."""
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)

    async def remove_tree(self, path: Path) -> None:
        if await self.exists(path):
            await asyncio.to_thread(shutil.rmtree, path)

    async def make_archive(self, source_dir: Path, archive_base: Path) -> Path:
        """Zip *source_dir* to ``<archive_base>.zip`` and return the archive path."""
        Path(archive_base).parent.mkdir(parents=True, exist_ok=True)
        archive = await asyncio.to_thread(
            shutil.make_archive,
            str(archive_base),
            "zip",
            str(Path(source_dir).parent),
            Path(source_dir).name,
        )
        return Path(archive)

    async def disk_usage(self, path: Path) -> int:
        """Total size in bytes of all files below *path*."""

        def _walk() -> int:
            total = 0
            for root, _dirs, files in os.walk(path):
                for name in files:
                    try:
                        total += os.path.getsize(os.path.join(root, name))
                    except OSError:
                        continue
            return total

        return await asyncio.to_thread(_walk)

    async def count_files(self, path: Path, suffix: str = ".json") -> int:
        def _count() -> int:
            return sum(
                1
                for _root, _dirs, files in os.walk(path)
                for name in files
                if name.endswith(suffix)
            )

        return await asyncio.to_thread(_count)
