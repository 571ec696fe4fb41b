from .index import ConversationIndex
from .models import Conversation, Message, conversation_filename
from .repository import ConversationRepository

__all__ = [
    "Conversation",
    "ConversationIndex",
    "ConversationRepository",
    "Message",
    "conversation_filename",
]
