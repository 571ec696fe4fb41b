from ..config import get_config
from ..conversation import ConversationRepository
from ..preferences import PreferencesStore


def get_repository() -> ConversationRepository:
    return ConversationRepository(get_config().conversations_dir)


def get_preferences() -> PreferencesStore:
    return PreferencesStore(get_config())
