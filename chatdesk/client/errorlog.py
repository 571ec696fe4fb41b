import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import NotFoundError, StorageError
from ..storage import FileStore

logger = logging.getLogger(__name__)


@dataclass
class ErrorEntry:
    timestamp: str
    error_type: str
    message: str
    component: Optional[str] = None
    info: dict[str, Any] = field(default_factory=dict)


class ErrorLog:
    """Bounded record of client-side failures, newest first.

    With a *path*, entries are reloaded from that file on creation and
    written back after every change.
    """

    def __init__(
        self,
        capacity: int = 100,
        path: Optional[Path] = None,
        store: Optional[FileStore] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.path = path
        self.store = store or FileStore()
        self._entries: deque[ErrorEntry] = deque(maxlen=capacity)
        if path is not None:
            self._entries.extend(self._load())

    def _load(self) -> list[ErrorEntry]:
        try:
            data = self.store.read(self.path)
        except NotFoundError:
            return []
        except StorageError as e:
            logger.warning("Ignoring unreadable error log %s: %s", self.path, e)
            return []
        try:
            return [ErrorEntry(**item) for item in data]
        except TypeError as e:
            logger.warning("Ignoring malformed error log %s: %s", self.path, e)
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.store.write(self.path, [asdict(e) for e in self._entries])
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("Failed to save error log: %s", e)

    def log_error(
        self, error: BaseException, component: Optional[str] = None, **info: Any
    ) -> ErrorEntry:
        entry = ErrorEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            error_type=type(error).__name__,
            message=str(error),
            component=component,
            info=info,
        )
        logger.error("[%s] %s: %s %s", component or "-", entry.error_type, entry.message, info)
        self._entries.appendleft(entry)
        self._save()
        return entry

    def entries(self) -> list[ErrorEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        if self.path is not None:
            try:
                self.store.delete(self.path)
            except StorageError as e:
                logger.warning("Failed to remove error log: %s", e)

    def __len__(self) -> int:
        return len(self._entries)
