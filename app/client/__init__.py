from app.client.chat import ChatClient, ChatClientError
from app.client.transcript import AssistantAccumulator, ChatMessage, Transcript

__all__ = ["AssistantAccumulator", "ChatClient", "ChatClientError", "ChatMessage", "Transcript"]
