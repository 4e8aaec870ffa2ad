"""Chat completions for the conversation, via an OpenAI-compatible backend."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Sequence

from openai import APIError, APIStatusError, AsyncOpenAI

from models.session_models import Message
from services.providers.errors import CompletionFailed
from services.realtime.prompts import first_message_prompt, voice_system_prompt

SYSTEM_STRATEGY = "system"
FIRST_MESSAGE_STRATEGY = "first_message"


def extract_reply(response) -> str:
	"""Pull the first choice's message text out of a chat completion."""
	choices = getattr(response, "choices", None) or []
	if not choices:
		return ""
	message = getattr(choices[0], "message", None)
	return (getattr(message, "content", None) or "").strip()


class CompletionClient:
	"""Ask the language-model backend for the next assistant reply."""

	def __init__(
		self,
		client: AsyncOpenAI,
		*,
		model: str,
		max_tokens: int = 800,
		instruction: str | None = None,
		strategy: str = SYSTEM_STRATEGY,
	) -> None:
		if client is None:
			raise ValueError("AsyncOpenAI client is required.")
		if strategy not in (SYSTEM_STRATEGY, FIRST_MESSAGE_STRATEGY):
			raise ValueError(f"Unknown instruction strategy '{strategy}'.")
		self.client = client
		self.model = model
		self.max_tokens = max_tokens
		self.instruction = instruction if instruction is not None else voice_system_prompt()
		self.strategy = strategy

	def build_messages(self, history: Sequence[Message]) -> List[Dict[str, str]]:
		"""Return the outbound message list; ``history`` itself is never modified."""
		messages = [message.as_payload() for message in history]
		if not self.instruction:
			return messages
		if self.strategy == SYSTEM_STRATEGY:
			return [{"role": "system", "content": self.instruction}] + messages
		for payload in messages:
			if payload["role"] == "user":
				payload["content"] = first_message_prompt(self.instruction, payload["content"])
				break
		return messages

	async def complete(self, history: Sequence[Message]) -> str:
		"""Return the assistant reply for ``history``.

		Raises:
			CompletionFailed: on any API, transport or timeout error, or when the
				backend answers without text.
		"""
		messages = self.build_messages(history)
		start = time.time()
		try:
			response = await self.client.chat.completions.create(
				model=self.model,
				messages=messages,
				max_tokens=self.max_tokens,
			)
		except APIStatusError as exc:
			logging.error("Completion backend error: %s %s", exc.status_code, exc.message)
			raise CompletionFailed(f"Completion failed: {exc.status_code}", status_code=exc.status_code) from exc
		except APIError as exc:
			logging.error("Completion request failed: %s", exc)
			raise CompletionFailed(f"Completion request failed: {exc}") from exc

		reply = extract_reply(response)
		if not reply:
			raise CompletionFailed("Completion response did not include text.")
		logging.info("Completion latency: %.3fs (%d messages)", time.time() - start, len(messages))
		return reply
