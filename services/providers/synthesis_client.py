"""Text-to-speech calls against the ElevenLabs API."""

from __future__ import annotations

import logging
import re
import time
from typing import Dict

import httpx

from services.providers.errors import SynthesisFailed

LOGGER = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
TTS_MODEL = "eleven_multilingual_v2"
DEFAULT_MAX_CHARS = 2000
SENTENCE_LOOKBACK = 500

VOICE_SETTINGS: Dict[str, float] = {
	"stability": 0.5,
	"similarity_boost": 0.75,
}

_SENTENCE_END = re.compile(r"[.!?](?=\s)")


def truncate_for_speech(text: str, max_chars: int = DEFAULT_MAX_CHARS, lookback: int = SENTENCE_LOOKBACK) -> str:
	"""Cap ``text`` at ``max_chars``, preferring to end on a full sentence.

	The cut lands after the last sentence terminator inside the final
	``lookback`` characters before the cap. Without one the cut falls on the
	last space, and only text without any space is cut mid-word.
	A terminator only counts when whitespace follows it in the full text, so
	"74.000" is never split after the dot.
	"""
	text = text.strip()
	if len(text) <= max_chars:
		return text
	window = text[:max_chars]
	floor = max(0, max_chars - lookback)
	boundary = -1
	for match in _SENTENCE_END.finditer(text, 0, max_chars + 1):
		if floor < match.end() <= max_chars:
			boundary = match.end()
	if boundary > 0:
		return window[:boundary].strip()
	if not text[max_chars].isspace():
		space = window.rfind(" ")
		if space > 0:
			return window[:space].rstrip()
	return window.rstrip()


class SynthesisClient:
	"""Render text to audio bytes with a fixed voice."""

	def __init__(
		self,
		http_client: httpx.AsyncClient,
		api_key: str,
		voice_id: str,
		*,
		model: str = TTS_MODEL,
		max_chars: int = DEFAULT_MAX_CHARS,
		voice_settings: Dict[str, float] | None = None,
		base_url: str = ELEVENLABS_API_URL,
	) -> None:
		if http_client is None:
			raise ValueError("httpx AsyncClient is required.")
		if not api_key:
			raise ValueError("ElevenLabs API key is required for synthesis.")
		if not voice_id:
			raise ValueError("A voice id is required for synthesis.")
		self.http_client = http_client
		self.api_key = api_key
		self.voice_id = voice_id
		self.model = model
		self.max_chars = max_chars
		self.voice_settings = dict(voice_settings or VOICE_SETTINGS)
		self.base_url = base_url.rstrip("/")

	async def synthesize(self, text: str) -> bytes:
		"""Return MPEG audio for ``text``.

		Raises:
			SynthesisFailed: on empty input, a non-success status, a transport
				error or an empty audio body.
		"""
		source = (text or "").strip()
		speech_text = truncate_for_speech(source, self.max_chars)
		if not speech_text:
			raise SynthesisFailed("Nothing to synthesize.")
		if len(speech_text) < len(source):
			LOGGER.info("Truncated speech text from %d to %d chars", len(source), len(speech_text))

		start = time.time()
		try:
			response = await self.http_client.post(
				f"{self.base_url}/text-to-speech/{self.voice_id}",
				headers={"xi-api-key": self.api_key, "Content-Type": "application/json"},
				json={
					"text": speech_text,
					"model_id": self.model,
					"voice_settings": self.voice_settings,
				},
			)
		except httpx.HTTPError as exc:
			LOGGER.error("Synthesis request failed: %s", exc)
			raise SynthesisFailed(f"Synthesis request failed: {exc}") from exc

		if response.status_code >= 400:
			LOGGER.error("Synthesis failed: %s - %s", response.status_code, response.text[:500])
			raise SynthesisFailed(f"Synthesis failed: {response.status_code}", status_code=response.status_code)

		audio = response.content
		if not audio:
			raise SynthesisFailed("Synthesis returned no audio.", status_code=response.status_code)
		LOGGER.info("Synthesis latency: %.3fs (%d bytes)", time.time() - start, len(audio))
		return audio
