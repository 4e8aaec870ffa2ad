"""Session domain models for realtime voice conversations."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

MAX_HISTORY_MESSAGES = 20

ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class Message:
	"""A single chat message; immutable once appended to a history."""

	role: str
	content: str
	created_at: float = field(default_factory=lambda: time.time(), compare=False)

	def __post_init__(self) -> None:
		if self.role not in ROLES:
			raise ValueError(f"Unsupported message role '{self.role}'.")

	def as_payload(self) -> dict:
		return {"role": self.role, "content": self.content}


class ConversationHistory:
	"""Ordered, bounded message log for one conversation (oldest first).

	When an append would push the log past ``limit`` entries, the two oldest
	entries (a user turn and its assistant reply) are evicted first so the log
	keeps its user/assistant alternation.
	"""

	def __init__(self, conversation_id: str, limit: int = MAX_HISTORY_MESSAGES) -> None:
		if limit < 2:
			raise ValueError("History limit must allow at least one user/assistant pair.")
		self.conversation_id = conversation_id
		self.limit = limit
		self._messages: List[Message] = []

	def append(self, role: str, content: str) -> Message:
		message = Message(role=role, content=content)
		if len(self._messages) + 1 > self.limit:
			del self._messages[:2]
		self._messages.append(message)
		return message

	def rollback(self, message: Message) -> bool:
		"""Drop ``message`` if it is still the newest entry (a turn that never got a reply)."""
		if self._messages and self._messages[-1] is message:
			self._messages.pop()
			return True
		return False

	def clear(self) -> None:
		self._messages.clear()

	def snapshot(self) -> List[Message]:
		"""Return a copy safe to hand to a provider while the turn continues."""
		return list(self._messages)

	def __len__(self) -> int:
		return len(self._messages)

	def __iter__(self) -> Iterator[Message]:
		return iter(list(self._messages))


@dataclass
class Session:
	"""Server-side state bound to one live websocket connection."""

	session_id: str
	conversation_id: str
	alive: bool = True
	created_at: float = field(default_factory=lambda: time.time())


class TurnState(str, Enum):
	IDLE = "idle"
	TRANSCRIBING = "transcribing"
	NO_SPEECH = "no_speech"
	ACKNOWLEDGING = "acknowledging"
	THINKING = "thinking"
	NORMALIZING = "normalizing"
	SYNTHESIZING = "synthesizing"
	DELIVERING = "delivering"
	ERRORED = "errored"


@dataclass
class TurnResult:
	"""Working state of a single turn; owned by the orchestrator call handling it."""

	audio_in: bytes
	transcript: str = ""
	acknowledgment: Optional[str] = None
	reply: Optional[str] = None
	spoken_text: Optional[str] = None
	audio_out: Optional[bytes] = None
	state: TurnState = TurnState.IDLE
	error: Optional[str] = None
