import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 30
TITLE_MIN_MESSAGES = 3  # system + user + assistant


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class Conversation(BaseModel):
    """A chat as stored on disk (camelCase keys on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = DEFAULT_TITLE
    messages: list[Message] = []
    last_response_time: datetime = Field(default_factory=_now, alias="lastResponseTime")
    model: str = ""
    system_prompt: str = Field("", alias="systemPrompt")

    @field_validator("last_response_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def append(self, message: Message, now: datetime | None = None) -> None:
        """Append *message* and apply the recency and title rules.

        Only assistant replies move ``last_response_time``; it never goes
        backwards. The title is derived once, from the first user message,
        on the first assistant reply that leaves three or more messages.
        """
        self.messages.append(message)
        if message.role != "assistant":
            return
        now = now or _now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.last_response_time = max(self.last_response_time, now)
        if self.title == DEFAULT_TITLE and len(self.messages) >= TITLE_MIN_MESSAGES:
            title = derive_title(self.messages)
            if title:
                self.title = title


def new_conversation(
    system_message: Message, model: str, now: datetime | None = None
) -> Conversation:
    return Conversation(
        title=DEFAULT_TITLE,
        messages=[system_message],
        last_response_time=now or _now(),
        model=model,
        system_prompt=system_message.content,
    )


def derive_title(messages: list[Message]) -> str | None:
    for m in messages:
        if m.role == "user":
            if len(m.content) > TITLE_MAX_LENGTH:
                return m.content[:TITLE_MAX_LENGTH] + "..."
            return m.content
    return None


def conversation_filename(conversation: Conversation) -> str:
    """Storage name for *conversation*: its last response time, local, to the second."""
    local = conversation.last_response_time.astimezone()
    return local.strftime("%Y-%m-%d_%H-%M-%S") + ".json"
