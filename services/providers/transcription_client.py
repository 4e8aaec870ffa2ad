"""Speech-to-text calls against the ElevenLabs Scribe API."""

from __future__ import annotations

import logging
import time

import httpx

from services.providers.errors import TranscriptionFailed
from utils.media_validation import detect_audio_type

LOGGER = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
TRANSCRIBE_MODEL = "scribe_v2"


class TranscriptionClient:
	"""Turn one utterance of captured audio into transcript text."""

	def __init__(
		self,
		http_client: httpx.AsyncClient,
		api_key: str,
		*,
		model: str = TRANSCRIBE_MODEL,
		base_url: str = ELEVENLABS_API_URL,
	) -> None:
		if http_client is None:
			raise ValueError("httpx AsyncClient is required.")
		if not api_key:
			raise ValueError("ElevenLabs API key is required for transcription.")
		self.http_client = http_client
		self.api_key = api_key
		self.model = model
		self.base_url = base_url.rstrip("/")

	async def transcribe(self, audio_bytes: bytes) -> str:
		"""Return the whitespace-trimmed transcript; an empty string means no speech.

		Raises:
			TranscriptionFailed: on a non-success status, a transport error or an
				undecodable payload.
		"""
		if not audio_bytes:
			return ""

		audio_type = detect_audio_type(audio_bytes)
		LOGGER.debug("Transcribing %d bytes labeled %s", len(audio_bytes), audio_type.mime)

		start = time.time()
		try:
			response = await self.http_client.post(
				f"{self.base_url}/speech-to-text",
				headers={"xi-api-key": self.api_key},
				data={"model_id": self.model},
				files={"file": (f"audio.{audio_type.extension}", audio_bytes, audio_type.mime)},
			)
		except httpx.HTTPError as exc:
			LOGGER.error("Transcription request failed: %s", exc)
			raise TranscriptionFailed(f"Transcription request failed: {exc}") from exc

		if response.status_code >= 400:
			LOGGER.error("Transcription failed: %s - %s", response.status_code, response.text[:500])
			raise TranscriptionFailed(
				f"Transcription failed: {response.status_code}", status_code=response.status_code
			)

		try:
			payload = response.json()
		except ValueError as exc:
			raise TranscriptionFailed(
				"Transcription response was not valid JSON.", status_code=response.status_code
			) from exc
		if not isinstance(payload, dict):
			raise TranscriptionFailed("Transcription response had an unexpected shape.")

		transcript = (payload.get("text") or "").strip()
		LOGGER.info("Transcription latency: %.3fs (%d chars)", time.time() - start, len(transcript))
		return transcript
