"""In-memory store of bounded conversation histories."""

from __future__ import annotations

from typing import Dict

from models.session_models import MAX_HISTORY_MESSAGES, ConversationHistory


class ConversationStore:
	"""Keep one bounded history per active conversation id.

	Every public method touches the mapping once, so interleaved session
	creation and teardown on the event loop never observe a partial update.
	"""

	def __init__(self, limit: int = MAX_HISTORY_MESSAGES) -> None:
		self.limit = limit
		self._histories: Dict[str, ConversationHistory] = {}

	def create(self, conversation_id: str) -> ConversationHistory:
		"""Start an empty history, replacing any left behind under the same id."""
		history = ConversationHistory(conversation_id, limit=self.limit)
		self._histories[conversation_id] = history
		return history

	def get(self, conversation_id: str) -> ConversationHistory:
		"""Return a history or raise KeyError if missing."""
		history = self._histories.get(conversation_id)
		if history is None:
			raise KeyError(f"Conversation {conversation_id} not found")
		return history

	def reset(self, conversation_id: str) -> ConversationHistory:
		"""Clear a conversation while keeping it registered."""
		history = self.get(conversation_id)
		history.clear()
		return history

	def discard(self, conversation_id: str) -> None:
		self._histories.pop(conversation_id, None)

	def __contains__(self, conversation_id: str) -> bool:
		return conversation_id in self._histories

	def __len__(self) -> int:
		return len(self._histories)
