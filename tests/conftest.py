from datetime import datetime, timedelta, timezone

import pytest

from chatdesk import config
from chatdesk.client.stores import ConversationStore
from chatdesk.conversation import Conversation, ConversationRepository, Message
from chatdesk.errors import NotFoundError, StorageIOError


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("CHATDESK_DATA_DIR", str(tmp_path / "data"))
    config.reset_config()
    yield tmp_path / "data"
    config.reset_config()


@pytest.fixture
def repo(tmp_path):
    repository = ConversationRepository(tmp_path / "chat_conversations")
    repository.ensure()
    return repository


def make_conversation(when: datetime, **kwargs) -> Conversation:
    kwargs.setdefault("messages", [Message(role="system", content="You are X")])
    kwargs.setdefault("model", "m1")
    kwargs.setdefault("system_prompt", "You are X")
    return Conversation(last_response_time=when, **kwargs)


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class MemoryStore(ConversationStore):
    """In-memory store with switchable failures."""

    def __init__(self):
        self.files: dict[str, dict] = {}
        self.index: list[str] = []
        self.fail_get: set[str] = set()
        self.fail_save = False
        self.fail_delete = False
        self.fail_clear = False
        self.fail_list = False

    async def list_filenames(self):
        if self.fail_list:
            raise StorageIOError("index unavailable")
        return list(self.index)

    async def get(self, filename):
        if filename in self.fail_get:
            raise StorageIOError(f"cannot read {filename}")
        if filename not in self.files:
            raise NotFoundError(filename)
        return Conversation.model_validate(self.files[filename])

    async def save(self, filename, conversation):
        if self.fail_save:
            raise StorageIOError("disk full")
        self.files[filename] = conversation.to_json()
        if filename not in self.index:
            self.index.append(filename)

    async def delete(self, filename):
        if self.fail_delete:
            raise StorageIOError("permission denied")
        self.files.pop(filename, None)
        self.index = [f for f in self.index if f != filename]

    async def clear_all(self):
        if self.fail_clear:
            raise StorageIOError("permission denied")
        self.files.clear()
        self.index = []


@pytest.fixture
def memory_store():
    return MemoryStore()
