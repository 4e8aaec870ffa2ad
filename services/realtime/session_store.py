"""Simple in-memory registry for live voice sessions."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional
from uuid import uuid4

from models.session_models import ConversationHistory, Session
from services.realtime.conversation_store import ConversationStore


class SessionStore:
	"""Create, look up and destroy sessions together with their histories."""

	def __init__(self, conversations: Optional[ConversationStore] = None) -> None:
		self.conversations = conversations if conversations is not None else ConversationStore()
		self._sessions: Dict[str, Session] = {}

	def create(self, session_id: Optional[str] = None) -> Session:
		"""Register a new session with an empty conversation history."""
		session_id = session_id or uuid4().hex
		session = Session(session_id=session_id, conversation_id=f"conv-{session_id}")
		self.conversations.create(session.conversation_id)
		self._sessions[session_id] = session
		logging.info("Session %s created", session_id)
		return session

	def get(self, session_id: str) -> Session:
		"""Return a session or raise KeyError if missing."""
		session = self._sessions.get(session_id)
		if session is None:
			raise KeyError(f"Session {session_id} not found")
		return session

	def history(self, session_id: str) -> ConversationHistory:
		return self.conversations.get(self.get(session_id).conversation_id)

	def destroy(self, session_id: str) -> None:
		"""Forget a session and discard its history in the same step."""
		session = self._sessions.pop(session_id, None)
		if session is None:
			return
		session.alive = False
		self.conversations.discard(session.conversation_id)
		logging.info("Session %s destroyed", session_id)

	def active_ids(self) -> List[str]:
		return list(self._sessions)

	def __len__(self) -> int:
		return len(self._sessions)
