"""Typed failures raised by the remote speech and language providers."""

from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
	"""A remote provider call failed; carries the upstream HTTP status if any."""

	stage = "provider"

	def __init__(self, message: str, status_code: Optional[int] = None) -> None:
		super().__init__(message)
		self.status_code = status_code

	@property
	def user_message(self) -> str:
		"""Short text suitable for the client-facing error frame."""
		if self.status_code is not None:
			return f"{self.stage.capitalize()} failed ({self.status_code})"
		return f"{self.stage.capitalize()} failed"


class TranscriptionFailed(ProviderError):
	stage = "transcription"


class CompletionFailed(ProviderError):
	stage = "completion"


class SynthesisFailed(ProviderError):
	stage = "synthesis"


class RewriteFailed(ProviderError):
	"""Never leaves the rewriter; the pre-cleaned text is used instead."""

	stage = "rewrite"


class NoSpeechDetected(Exception):
	"""The transcript came back empty. A normal outcome, not a provider failure."""
