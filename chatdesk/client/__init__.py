from .cache import ConversationCache, DeleteState
from .errorlog import ErrorEntry, ErrorLog
from .stores import ConversationStore, HttpConversationStore, LocalConversationStore

__all__ = [
    "ConversationCache",
    "ConversationStore",
    "DeleteState",
    "ErrorEntry",
    "ErrorLog",
    "HttpConversationStore",
    "LocalConversationStore",
]
