"""Chat domain exports."""

from .service import fetch_chat, list_chats, provision_for_match, send_message

__all__ = [
	"fetch_chat",
	"list_chats",
	"provision_for_match",
	"send_message",
]
