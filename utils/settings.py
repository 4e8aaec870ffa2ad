"""Environment-driven configuration for the voice relay."""

import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv

INSTRUCTION_STRATEGIES = ("system", "first_message")

DEFAULT_HOLD_MUSIC_URL = (
    "https://ik.imagekit.io/wurk/solana/music/solana-music-90s-1770226631075_mo4R-Lc3j.mp3"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup."""

    elevenlabs_api_key: str
    completion_api_url: str = "http://localhost:18789/v1"
    completion_api_key: str = ""
    completion_model: str = "openclaw"
    completion_max_tokens: int = 800
    rewrite_api_url: str = "https://openrouter.ai/api/v1"
    rewrite_api_key: str = ""
    rewrite_model: str = "openai/gpt-4o-mini"
    voice_id: str = "TX3LPaxmHKxFdv7VOQHJ"
    stt_model: str = "scribe_v2"
    tts_model: str = "eleven_multilingual_v2"
    tts_max_chars: int = 2000
    hold_music_url: str = DEFAULT_HOLD_MUSIC_URL
    instruction_strategy: str = "system"
    assistant_name: str = "Craby"
    access_password: str = "broodje biefstuk"
    access_password_aliases: Tuple[str, ...] = field(
        default=("brootje biefstuk", "broodje beefstuk")
    )
    history_limit: int = 20
    max_queued_turns: int = 8
    provider_timeout_seconds: float = 30.0
    completion_timeout_seconds: float = 120.0

    def __post_init__(self) -> None:
        if self.instruction_strategy not in INSTRUCTION_STRATEGIES:
            raise RuntimeError(
                f"INSTRUCTION_STRATEGY must be one of {', '.join(INSTRUCTION_STRATEGIES)}; "
                f"got {self.instruction_strategy!r}"
            )

    @property
    def rewrite_enabled(self) -> bool:
        return bool(self.rewrite_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and a .env file if present)."""
        load_dotenv()

        elevenlabs_api_key = os.getenv("ELEVENLABS_API_KEY")
        if not elevenlabs_api_key:
            raise RuntimeError("ELEVENLABS_API_KEY environment variable is not set")

        defaults = cls(elevenlabs_api_key=elevenlabs_api_key)
        return cls(
            elevenlabs_api_key=elevenlabs_api_key,
            completion_api_url=os.getenv("COMPLETION_API_URL", defaults.completion_api_url),
            completion_api_key=os.getenv("COMPLETION_API_KEY", ""),
            completion_model=os.getenv("COMPLETION_MODEL", defaults.completion_model),
            completion_max_tokens=_env_int("COMPLETION_MAX_TOKENS", defaults.completion_max_tokens),
            rewrite_api_url=os.getenv("REWRITE_API_URL", defaults.rewrite_api_url),
            rewrite_api_key=os.getenv("REWRITE_API_KEY", ""),
            rewrite_model=os.getenv("REWRITE_MODEL", defaults.rewrite_model),
            voice_id=os.getenv("VOICE_ID", defaults.voice_id),
            stt_model=os.getenv("STT_MODEL", defaults.stt_model),
            tts_model=os.getenv("TTS_MODEL", defaults.tts_model),
            tts_max_chars=_env_int("TTS_MAX_CHARS", defaults.tts_max_chars),
            hold_music_url=os.getenv("HOLD_MUSIC_URL", defaults.hold_music_url),
            instruction_strategy=os.getenv("INSTRUCTION_STRATEGY", defaults.instruction_strategy).strip().lower(),
            assistant_name=os.getenv("ASSISTANT_NAME", defaults.assistant_name),
            access_password=os.getenv("ACCESS_PASSWORD", defaults.access_password),
            access_password_aliases=_env_list("ACCESS_PASSWORD_ALIASES", defaults.access_password_aliases),
            history_limit=_env_int("HISTORY_LIMIT", defaults.history_limit),
            max_queued_turns=_env_int("MAX_QUEUED_TURNS", defaults.max_queued_turns),
            provider_timeout_seconds=_env_float("PROVIDER_TIMEOUT_SECONDS", defaults.provider_timeout_seconds),
            completion_timeout_seconds=_env_float(
                "COMPLETION_TIMEOUT_SECONDS", defaults.completion_timeout_seconds
            ),
        )
