"""
Ports

Defines the Protocols that the storage core and the benchmark runner depend
on rather than concrete implementations:

* ``IFileStore``: async document persistence (implemented by
  ``ormbench.storage.file_store.LocalFileStore``).
* ``LibraryAdapter``: connection lifecycle plus a uniform set of data-access
  verbs that every library under test implements. Scenarios are expressed
  only through these verbs, so nothing downstream ever needs to know which
  concrete library produced a measurement.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class IFileStore(Protocol):
    """Port for JSON document persistence."""

    async def read_json(self, path: Path) -> Dict[str, Any]:
        """Read a document. Raises FileNotFoundError when it does not exist."""
        ...

    async def read_json_optional(self, path: Path) -> Optional[Dict[str, Any]]:
        """Read a document, returning None when it does not exist."""
        ...

    async def write_json(self, path: Path, data: Dict[str, Any]) -> Path:
        """Replace the document at *path* in full."""
        ...

    async def write_text(self, path: Path, content: str) -> Path:
        ...

    async def exists(self, path: Path) -> bool:
        ...

    async def list_dirs(self, path: Path) -> List[str]:
        """Names of sub-directories, sorted ascending; empty when missing."""
        ...

    async def list_files(self, path: Path, suffix: str = ".json") -> List[str]:
        """Names of files with *suffix*, sorted ascending; empty when missing."""
        ...

    async def makedirs(self, path: Path) -> None:
        ...

    async def remove_tree(self, path: Path) -> None:
        ...

    async def make_archive(self, source_dir: Path, archive_base: Path) -> Path:
        """Zip a directory; returns the archive path."""
        ...

    async def disk_usage(self, path: Path) -> int:
        """Total bytes below *path*."""
        ...

    async def count_files(self, path: Path, suffix: str = ".json") -> int:
        ...


@runtime_checkable
class LibraryAdapter(Protocol):
    """
    Port for a database-access library under test.

    Any class implementing these members satisfies this protocol via
    structural subtyping.
    """

    id: str
    name: str
    version: str

    async def connect(self) -> None:
        ...

    async def disconnect(self) -> None:
        ...

    async def health_check(self) -> bool:
        ...

    async def select_by_id(self, record_id: int) -> Optional[Dict[str, Any]]:
        ...

    async def select_by_indexed_field(self, prefix: str) -> Optional[Dict[str, Any]]:
        ...

    async def select_page(self, offset: int, limit: int) -> List[Dict[str, Any]]:
        ...

    async def insert_one(self, record: Dict[str, Any]) -> int:
        """Insert a record and return its primary key."""
        ...

    async def insert_many(self, records: Sequence[Dict[str, Any]]) -> int:
        """Insert records and return how many were written."""
        ...

    async def update_one(self, record_id: int, changes: Dict[str, Any]) -> bool:
        ...

    async def delete_one(self, record_id: int) -> bool:
        ...
