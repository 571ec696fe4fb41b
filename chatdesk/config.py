import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


def _default_data_dir() -> Path:
    return Path(os.environ.get("CHATDESK_DATA_DIR", Path.home() / ".chatdesk"))


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = [
        "http://localhost:5173",     # Vite dev server
        "http://127.0.0.1:5173",
        "tauri://localhost",
        "null",                      # desktop shell file:// origin
    ]


class ClientConfig(BaseModel):
    base_url: str = "http://127.0.0.1:3000/api"
    recent_limit: int = 10  # conversations fetched eagerly on load
    request_timeout: Optional[float] = None  # None = wait forever
    error_log_capacity: int = 100


class AppConfig(BaseModel):
    data_dir: Path = Field(default_factory=_default_data_dir)
    server: ServerConfig = ServerConfig()
    client: ClientConfig = ClientConfig()
    log_level: str = "INFO"

    @property
    def conversations_dir(self) -> Path:
        return self.data_dir / "chat_conversations"

    @property
    def models_file(self) -> Path:
        return self.data_dir / "models.json"

    @property
    def appearance_file(self) -> Path:
        return self.data_dir / "appearance.json"

    @property
    def prompts_file(self) -> Path:
        return self.data_dir / "prompts.json"

    @property
    def error_log_file(self) -> Path:
        return self.data_dir / "error_logs.json"


def load_config() -> AppConfig:
    data_dir = _default_data_dir()
    config_file = data_dir / "config.json"
    if config_file.exists():
        try:
            data = json.loads(config_file.read_text(encoding="utf-8"))
            data.setdefault("data_dir", str(data_dir))
            return AppConfig(**data)
        except (json.JSONDecodeError, OSError, ValidationError, TypeError) as e:
            logger.warning("Ignoring unreadable %s: %s", config_file, e)
    return AppConfig(data_dir=data_dir)


_current_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _current_config
    if _current_config is None:
        _current_config = load_config()
    return _current_config


def reset_config() -> None:
    """Forget the cached config so the next get_config() re-reads the environment."""
    global _current_config
    _current_config = None
