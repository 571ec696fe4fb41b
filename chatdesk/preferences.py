"""Peer stores beside the conversations: models, appearance and prompts."""

import logging
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import AppConfig
from .errors import NotFoundError, StorageIOError
from .storage import FileStore

logger = logging.getLogger(__name__)

# display name -> model identifier
DEFAULT_MODELS: dict[str, str] = {
    "Grok 3": "x-ai/grok-3-beta",
    "DeepSeek R1": "deepseek/deepseek-r1",
    "Claude 3 Opus": "anthropic/claude-3-opus",
    "GPT-4 Turbo": "openai/gpt-4-turbo-preview",
    "Mixtral 8x7B": "mistral/mixtral-8x7b",
}


class Appearance(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scale: float = 1
    font_size: int = Field(14, alias="fontSize")


class Prompt(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    content: str


class PreferencesStore:
    def __init__(self, config: AppConfig, store: Optional[FileStore] = None):
        self.config = config
        self.store = store or FileStore()

    def ensure_defaults(self) -> None:
        self.store.ensure(self.config.models_file, DEFAULT_MODELS)
        self.store.ensure(
            self.config.appearance_file, Appearance().model_dump(by_alias=True)
        )
        self.store.ensure(self.config.prompts_file, [])

    def _read(self, path, default):
        try:
            return self.store.read(path)
        except NotFoundError:
            return default

    # ---- Models ----

    def get_models(self) -> dict[str, str]:
        data = self._read(self.config.models_file, dict(DEFAULT_MODELS))
        if not isinstance(data, dict):
            raise StorageIOError("models.json is not an object")
        return data

    def save_models(self, models: dict[str, str]) -> None:
        self.store.write(self.config.models_file, models)

    def delete_model(self, model_id: str) -> bool:
        """Drop every display name mapped to *model_id*."""
        models = self.get_models()
        kept = {name: mid for name, mid in models.items() if mid != model_id}
        self.save_models(kept)
        return len(kept) < len(models)

    # ---- Appearance ----

    def get_appearance(self) -> Appearance:
        data = self._read(self.config.appearance_file, {})
        try:
            return Appearance.model_validate(data)
        except ValueError as e:
            raise StorageIOError(f"Malformed appearance.json: {e}") from e

    def save_appearance(self, appearance: Appearance) -> None:
        self.store.write(self.config.appearance_file, appearance.model_dump(by_alias=True))

    # ---- Prompts ----

    def get_prompts(self) -> list[Prompt]:
        data = self._read(self.config.prompts_file, [])
        try:
            return [Prompt.model_validate(p) for p in data]
        except (ValueError, TypeError) as e:
            raise StorageIOError(f"Malformed prompts.json: {e}") from e

    def save_prompts(self, prompts: list[Prompt]) -> None:
        self.store.write(self.config.prompts_file, [p.model_dump() for p in prompts])

    def delete_prompt(self, prompt_id: str) -> bool:
        prompts = self.get_prompts()
        kept = [p for p in prompts if p.id != prompt_id]
        if len(kept) == len(prompts):
            logger.warning("Prompt %s not found", prompt_id)
            return False
        self.save_prompts(kept)
        return True
