"""The conversation index: ``index.json``, an ordered list of live filenames.

A filename absent from the index is treated as deleted even if its file is
still on disk. Every mutation is a load-modify-store round trip, so the file
always reflects the last completed operation.
"""

import logging
from pathlib import Path
from typing import Optional

from ..errors import NotFoundError, StorageIOError
from ..storage import FileStore

logger = logging.getLogger(__name__)

INDEX_FILENAME = "index.json"


class ConversationIndex:
    def __init__(self, path: Path, store: Optional[FileStore] = None):
        self.path = path
        self.store = store or FileStore()

    def ensure(self) -> bool:
        return self.store.ensure(self.path, [])

    def load(self) -> list[str]:
        try:
            data = self.store.read(self.path)
        except NotFoundError:
            return []
        if not isinstance(data, list) or not all(isinstance(f, str) for f in data):
            raise StorageIOError(f"{self.path.name} is not a list of filenames")
        return data

    def _store(self, filenames: list[str]) -> None:
        self.store.write(self.path, filenames)

    def add(self, filename: str) -> bool:
        """Append *filename* unless already present. Returns True if it was added."""
        filenames = self.load()
        if filename in filenames:
            return False
        filenames.append(filename)
        self._store(filenames)
        return True

    def remove(self, filename: str) -> bool:
        """Drop every occurrence of *filename*. Returns True if anything was removed."""
        filenames = self.load()
        kept = [f for f in filenames if f != filename]
        self._store(kept)
        removed = len(kept) < len(filenames)
        if removed:
            logger.debug("Removed %s from index (%d -> %d)", filename, len(filenames), len(kept))
        return removed

    def reset(self) -> None:
        self._store([])
