"""JSON documents on disk.

Every document managed by the sidecar (conversation files, the conversation
index, models/appearance/prompts) goes through :class:`FileStore`, so
directory creation, encoding and error translation happen in one place.
"""

import json
import logging
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, StorageIOError

logger = logging.getLogger(__name__)


class FileStore:
    """Read, write and delete JSON documents at arbitrary paths."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def read(self, path: Path) -> Any:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(f"{path.name} not found") from None
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageIOError(f"Invalid JSON in {path}: {e}") from e

    def write(self, path: Path, content: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(content, indent=self.indent, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageIOError(f"Failed to write {path}: {e}") from e

    def delete(self, path: Path) -> bool:
        """Remove *path*; an absent file is not an error.

        Returns True if a file was actually removed.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Delete of missing file %s ignored", path)
            return False
        except OSError as e:
            raise StorageIOError(f"Failed to delete {path}: {e}") from e
        return True

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def ensure(self, path: Path, default: Any) -> bool:
        """Write *default* to *path* unless a file is already there.

        Safe to call on every startup. Returns True when the file was created.
        """
        if self.exists(path):
            return False
        logger.info("Creating %s with default content", path.name)
        self.write(path, default)
        return True
