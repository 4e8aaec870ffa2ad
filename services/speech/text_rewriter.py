"""Second-pass rewrite of normalized replies into fluent spoken prose."""

import logging
import re
from typing import Optional

from openai import APIError, AsyncOpenAI

from services.providers.completion_client import extract_reply
from services.providers.errors import RewriteFailed
from services.realtime.prompts import rewrite_system_prompt
from services.speech.text_normalizer import contains_emoji, normalize_for_speech, strip_residual_markup

LOGGER = logging.getLogger(__name__)

REWRITE_MODEL = "openai/gpt-4o-mini"

MARKUP_ARTIFACTS = re.compile(r"[#*_`~|]|^\s*[-+>]\s", re.M)
DIGITS = re.compile(r"\d")


def needs_rewrite(text: str) -> bool:
    """True when normalized text still holds markup, emoji or digits to spell out."""
    return bool(MARKUP_ARTIFACTS.search(text) or contains_emoji(text) or DIGITS.search(text))


class SpeechTextRewriter:
    """Make model output safe for speech synthesis, optionally with a model pass.

    The rule-based normalizer always runs first and its output is the fallback
    for every failure, so ``rewrite`` never raises and never returns worse text
    than the normalizer alone.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        *,
        model: str = REWRITE_MODEL,
        max_tokens: int = 800,
        temperature: float = 0.3,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def rewrite(self, text: str) -> str:
        """Return speakable text for ``text``."""
        pre_clean = normalize_for_speech(text)
        if not pre_clean:
            return pre_clean
        if self.client is None:
            return pre_clean
        if not needs_rewrite(pre_clean):
            LOGGER.debug("Text already speakable, skipping rewrite call")
            return pre_clean

        try:
            rewritten = await self._request_rewrite(pre_clean)
        except RewriteFailed as exc:
            LOGGER.warning("Speech rewrite failed, using normalized text: %s", exc)
            return pre_clean
        except Exception as exc:
            LOGGER.exception("Unexpected speech rewrite error, using normalized text: %s", exc)
            return pre_clean

        cleaned = strip_residual_markup(rewritten)
        return cleaned or pre_clean

    async def _request_rewrite(self, text: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": rewrite_system_prompt()},
                    {"role": "user", "content": text},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except APIError as exc:
            raise RewriteFailed(f"Rewrite request failed: {exc}", status_code=getattr(exc, "status_code", None)) from exc

        rewritten = extract_reply(response)
        if not rewritten:
            raise RewriteFailed("Rewrite response did not include text.")
        return rewritten
