"""Conversation files plus the index that says which of them exist."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..errors import InvalidFilenameError, StorageIOError
from ..storage import FileStore
from .index import INDEX_FILENAME, ConversationIndex
from .models import Conversation

logger = logging.getLogger(__name__)


@dataclass
class ConsistencyReport:
    orphan_files: list[str] = field(default_factory=list)  # on disk, not indexed
    dangling_entries: list[str] = field(default_factory=list)  # indexed, no file

    @property
    def consistent(self) -> bool:
        return not self.orphan_files and not self.dangling_entries


def validate_filename(filename: str) -> str:
    if (
        not filename
        or filename != Path(filename).name
        or filename in (".", "..")
        or "\\" in filename
        or not filename.endswith(".json")
        or filename == INDEX_FILENAME
    ):
        raise InvalidFilenameError(f"Invalid conversation filename: {filename!r}")
    return filename


class ConversationRepository:
    """Maps conversations to ``<directory>/<filename>`` and keeps the index in step."""

    def __init__(self, directory: Path, store: Optional[FileStore] = None):
        self.directory = directory
        self.store = store or FileStore()
        self.index = ConversationIndex(directory / INDEX_FILENAME, self.store)

    def _path(self, filename: str) -> Path:
        return self.directory / validate_filename(filename)

    def ensure(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create {self.directory}: {e}") from e
        self.index.ensure()

    def list_filenames(self) -> list[str]:
        return self.index.load()

    def get(self, filename: str) -> Conversation:
        """Read a conversation file. The index is not consulted."""
        data = self.store.read(self._path(filename))
        try:
            return Conversation.model_validate(data)
        except ValueError as e:
            raise StorageIOError(f"Malformed conversation {filename}: {e}") from e

    def save(self, filename: str, conversation: Conversation) -> None:
        # File first, index second: a crash in between leaves an orphan file,
        # never an index entry pointing at nothing.
        self.store.write(self._path(filename), conversation.to_json())
        if self.index.add(filename):
            logger.info("Indexed new conversation file %s", filename)

    def delete(self, filename: str) -> bool:
        """Delete a conversation; deleting an absent one still succeeds.

        Returns True if a file was removed from disk.
        """
        existed = self.store.delete(self._path(filename))
        if not existed:
            logger.info("Conversation file %s already gone", filename)
        self.index.remove(filename)
        return existed

    def clear_all(self) -> int:
        """Delete every indexed file, then empty the index.

        Any failure other than a missing file aborts before the index is
        reset. Returns the number of files removed.
        """
        removed = 0
        for filename in self.index.load():
            try:
                path = self._path(filename)
            except InvalidFilenameError:
                logger.warning("Skipping invalid index entry %r", filename)
                continue
            if self.store.delete(path):
                removed += 1
        self.index.reset()
        logger.info("Cleared %d conversation files", removed)
        return removed

    def find_inconsistencies(self) -> ConsistencyReport:
        """Compare the index with the directory listing. Nothing is repaired."""
        indexed = self.index.load()
        try:
            on_disk = {
                p.name for p in self.directory.glob("*.json") if p.name != INDEX_FILENAME
            }
        except OSError as e:
            raise StorageIOError(f"Failed to list {self.directory}: {e}") from e
        indexed_set = set(indexed)
        return ConsistencyReport(
            orphan_files=sorted(on_disk - indexed_set),
            dangling_entries=[f for f in indexed if f not in on_disk],
        )
