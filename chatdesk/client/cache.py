"""In-memory mirror of the most recent conversations, as the UI sees them.

Mutations are applied to the cache first and persisted in the background
(optimistic writes). Reads that fail are skipped rather than failing the
whole load.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from ..config import AppConfig
from ..conversation.models import Conversation, Message, conversation_filename, new_conversation
from ..errors import StorageError
from .errorlog import ErrorLog
from .stores import ConversationStore, HttpConversationStore

logger = logging.getLogger(__name__)


class DeleteState(str, Enum):
    PENDING = "pending"
    FAILED = "failed"


class ConversationCache:
    def __init__(
        self,
        store: ConversationStore,
        *,
        recent_limit: int = 10,
        error_log: Optional[ErrorLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        filename_for: Callable[[Conversation], str] = conversation_filename,
    ):
        self.store = store
        self.recent_limit = recent_limit
        self.error_log = error_log if error_log is not None else ErrorLog()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._filename_for = filename_for

        self.conversations: list[Conversation] = []
        self.current_id: Optional[str] = None
        # Conversations removed locally whose deletion is unconfirmed or failed.
        self.delete_states: dict[str, DeleteState] = {}

        self._filenames: dict[str, str] = {}  # id -> filename last persisted under
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()
        # Cleared while a clear_all is in flight; background persists wait on it.
        self._writes_open = asyncio.Event()
        self._writes_open.set()

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConversationCache":
        """Cache talking to the sidecar described by *config*."""
        client = config.client
        store = HttpConversationStore(client.base_url, timeout=client.request_timeout)
        error_log = ErrorLog(client.error_log_capacity, path=config.error_log_file)
        return cls(store, recent_limit=client.recent_limit, error_log=error_log)

    # ---- Lookup ----

    def find(self, conversation_id: str) -> Optional[Conversation]:
        for c in self.conversations:
            if c.id == conversation_id:
                return c
        return None

    @property
    def current(self) -> Optional[Conversation]:
        if self.current_id is None:
            return None
        return self.find(self.current_id)

    def select(self, conversation_id: str) -> bool:
        if self.find(conversation_id) is None:
            return False
        self.current_id = conversation_id
        return True

    def filename_of(self, conversation: Conversation) -> str:
        return self._filenames.get(conversation.id) or self._filename_for(conversation)

    def _sort(self) -> None:
        self.conversations.sort(key=lambda c: c.last_response_time, reverse=True)

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    # ---- Operations ----

    async def load(self) -> list[Conversation]:
        try:
            filenames = await self.store.list_filenames()
        except StorageError as e:
            self.error_log.log_error(e, "ConversationCache.load")
            self.conversations.clear()
            return self.conversations

        recent = filenames[: self.recent_limit]
        results = await asyncio.gather(
            *(self.store.get(f) for f in recent), return_exceptions=True
        )

        latest: dict[str, tuple[str, Conversation]] = {}
        for filename, result in zip(recent, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                self.error_log.log_error(result, "ConversationCache.load", filename=filename)
                continue
            seen = latest.get(result.id)
            if seen is None or result.last_response_time > seen[1].last_response_time:
                latest[result.id] = (filename, result)

        self._filenames = {cid: filename for cid, (filename, _) in latest.items()}
        self.conversations[:] = [c for _, c in latest.values()]
        self._sort()
        if self.current_id is not None and self.find(self.current_id) is None:
            self.current_id = None
        logger.info("Loaded %d of %d conversations", len(self.conversations), len(filenames))
        return self.conversations

    def create(self, system_message: Message, model: str) -> Conversation:
        """Start a conversation, make it current, and persist it in the background.

        Must be called from a running event loop.
        """
        conversation = new_conversation(system_message, model, now=self._clock())
        self.conversations.insert(0, conversation)
        self.current_id = conversation.id
        self._schedule_persist(conversation)
        return conversation

    def append(self, conversation_id: str, message: Message) -> Optional[Conversation]:
        conversation = self.find(conversation_id)
        if conversation is None:
            logger.debug("append to unknown conversation %s ignored", conversation_id)
            return None
        conversation.append(message, now=self._clock())
        self._sort()
        self._schedule_persist(conversation)
        return conversation

    async def delete(self, conversation: Conversation) -> bool:
        """Remove *conversation* locally, then from storage.

        The local removal is not rolled back when storage fails; the id is
        left in :attr:`delete_states` as ``FAILED`` instead.
        """
        cid = conversation.id
        self.conversations[:] = [c for c in self.conversations if c.id != cid]
        if self.current_id == cid:
            self.current_id = self.conversations[0].id if self.conversations else None
        self.delete_states[cid] = DeleteState.PENDING

        async with self._lock_for(cid):
            filename = self.filename_of(conversation)
            try:
                await self.store.delete(filename)
            except StorageError as e:
                self.delete_states[cid] = DeleteState.FAILED
                self.error_log.log_error(
                    e, "ConversationCache.delete", id=cid, filename=filename
                )
                return False

        self.delete_states.pop(cid, None)
        self._filenames.pop(cid, None)
        lock = self._locks.get(cid)
        if lock is not None and not lock.locked():
            del self._locks[cid]
        return True

    async def clear_all(self) -> bool:
        """Delete everything in storage; the cache is emptied only on success.

        Persists scheduled while the clear is in flight wait for it, and are
        dropped if the clear succeeded.
        """
        await self.wait_idle()
        self._writes_open.clear()
        try:
            await self.store.clear_all()
        except StorageError as e:
            self.error_log.log_error(e, "ConversationCache.clear_all")
            return False
        else:
            self.conversations.clear()
            self.current_id = None
            self.delete_states.clear()
            self._filenames.clear()
            self._locks.clear()
            return True
        finally:
            self._writes_open.set()

    async def wait_idle(self) -> None:
        """Wait for every background persist scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ---- Persistence ----

    def _schedule_persist(self, conversation: Conversation) -> None:
        snapshot = conversation.model_copy(deep=True)
        filename = self._filename_for(snapshot)
        task = asyncio.get_running_loop().create_task(self._persist(snapshot, filename))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _shared_with_other(self, conversation_id: str, filename: str) -> bool:
        return any(
            cid != conversation_id and name == filename
            for cid, name in self._filenames.items()
        )

    async def _persist(self, snapshot: Conversation, filename: str) -> None:
        await self._writes_open.wait()
        if self.find(snapshot.id) is None:
            return
        # Persists of one conversation run one at a time, in scheduling order.
        async with self._lock_for(snapshot.id):
            if self.find(snapshot.id) is None:
                logger.debug("Skipping persist of removed conversation %s", snapshot.id)
                return
            try:
                await self.store.save(filename, snapshot)
            except StorageError as e:
                self.error_log.log_error(
                    e, "ConversationCache.save", id=snapshot.id, filename=filename
                )
                return

            previous = self._filenames.get(snapshot.id)
            self._filenames[snapshot.id] = filename
            if not previous or previous == filename:
                return
            if self._shared_with_other(snapshot.id, previous):
                # Another conversation was saved under the same second.
                logger.info("Keeping %s, still used by another conversation", previous)
                return
            # The new file is written and indexed; retire the old one.
            try:
                await self.store.delete(previous)
            except StorageError as e:
                self.error_log.log_error(
                    e, "ConversationCache.save", id=snapshot.id, filename=previous
                )
