"""Spoken-password gate in front of the voice experience."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from fastapi import HTTPException, Request

from services.providers.errors import ProviderError

PASSWORD_PROMPT = "Welkom! Wat is het wachtwoord?"
WRONG_PASSWORD_PROMPT = "Verkeerd wachtwoord. Probeer het opnieuw."


def passphrase_matches(transcript: str, passphrase: str, aliases: Iterable[str] = ()) -> bool:
	"""Return True when the transcript contains the passphrase.

	Every word of the passphrase must occur somewhere in the transcript, so
	filler words and punctuation from the recognizer do not matter. Aliases
	cover known misrecognitions and are matched as plain substrings.
	"""
	spoken = " ".join((transcript or "").lower().replace(",", " ").replace(".", " ").split())
	if not spoken:
		return False
	words = passphrase.lower().split()
	if words and all(word in spoken for word in words):
		return True
	return any(alias.lower() in spoken for alias in aliases if alias.strip())


async def verify_password(request: Request, audio_bytes: bytes) -> Dict[str, Any]:
	"""Transcribe a spoken passphrase attempt and compare it to the configured one."""
	settings = request.app.state.settings
	if not settings.access_password:
		return {"success": True, "transcript": ""}

	transcriber = request.app.state.transcription_client
	try:
		transcript = (await transcriber.transcribe(audio_bytes)).lower().strip()
	except ProviderError as exc:
		logging.error("Password transcription failed: %s", exc)
		return {"success": False, "error": "Speech recognition failed"}

	matched = passphrase_matches(transcript, settings.access_password, settings.access_password_aliases)
	logging.info("Password attempt matched: %s", matched)
	return {"success": matched, "transcript": transcript}


async def prompt_audio(request: Request, text: str) -> bytes:
	"""Synthesize one of the fixed gate prompts."""
	synthesizer = request.app.state.synthesis_client
	try:
		return await synthesizer.synthesize(text)
	except ProviderError as exc:
		logging.error("Prompt synthesis failed: %s", exc)
		raise HTTPException(status_code=502, detail=exc.user_message) from exc
