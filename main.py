import inspect
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from routes.password_route import router as password_router
from routes.realtime_ws import router as realtime_router
from services.providers.completion_client import CompletionClient
from services.providers.synthesis_client import SynthesisClient
from services.providers.transcription_client import TranscriptionClient
from services.realtime.acknowledgments import AcknowledgmentPicker
from services.realtime.conversation_store import ConversationStore
from services.realtime.prompts import voice_system_prompt
from services.realtime.session_store import SessionStore
from services.realtime.turn_orchestrator import TurnServices
from services.realtime.ws_session import SessionManager
from services.speech.text_rewriter import SpeechTextRewriter
from utils.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def _close_quietly(client) -> None:
    """Close an SDK/HTTP client that may expose a sync or async close method."""
    if client is None:
        return
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        # Shutdown errors must not mask the reason the app is stopping.
        logging.warning("Error while closing %s: %s", type(client).__name__, exc)


def build_services(app: FastAPI, settings: Settings) -> None:
    """Create the shared provider clients and session registry on `app.state`."""
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.provider_timeout_seconds))
    completion_openai = AsyncOpenAI(
        base_url=settings.completion_api_url,
        api_key=settings.completion_api_key or "unused",
        timeout=settings.completion_timeout_seconds,
    )
    rewrite_openai = None
    if settings.rewrite_enabled:
        rewrite_openai = AsyncOpenAI(
            base_url=settings.rewrite_api_url,
            api_key=settings.rewrite_api_key,
            timeout=settings.provider_timeout_seconds,
        )

    transcription_client = TranscriptionClient(
        http_client, settings.elevenlabs_api_key, model=settings.stt_model
    )
    synthesis_client = SynthesisClient(
        http_client,
        settings.elevenlabs_api_key,
        settings.voice_id,
        model=settings.tts_model,
        max_chars=settings.tts_max_chars,
    )
    completion_client = CompletionClient(
        completion_openai,
        model=settings.completion_model,
        max_tokens=settings.completion_max_tokens,
        instruction=voice_system_prompt(settings.assistant_name),
        strategy=settings.instruction_strategy,
    )
    rewriter = SpeechTextRewriter(rewrite_openai, model=settings.rewrite_model)

    services = TurnServices(
        transcriber=transcription_client,
        completer=completion_client,
        rewriter=rewriter,
        synthesizer=synthesis_client,
        acknowledgments=AcknowledgmentPicker(),
        hold_music_url=settings.hold_music_url,
        assistant_name=settings.assistant_name,
    )
    store = SessionStore(ConversationStore(limit=settings.history_limit))

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.openai_clients = [c for c in (completion_openai, rewrite_openai) if c is not None]
    app.state.transcription_client = transcription_client
    app.state.synthesis_client = synthesis_client
    app.state.session_store = store
    app.state.session_manager = SessionManager(store, services, max_queued_turns=settings.max_queued_turns)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - settings from the environment
      - the shared httpx client for ElevenLabs and the OpenAI-compatible clients
      - the session registry and manager
    and attach them to `app.state`. Anything already attached (for example by a
    test harness) is left untouched.
    """
    owns_services = getattr(app.state, "session_manager", None) is None
    if owns_services:
        build_services(app, Settings.from_env())
        settings = app.state.settings
        logging.info("Voice relay ready: completion backend %s", settings.completion_api_url)
        logging.info(
            "Speech rewrite: %s",
            settings.rewrite_model if settings.rewrite_enabled else "disabled (normalizer only)",
        )

    try:
        yield
    finally:
        if owns_services:
            for client in getattr(app.state, "openai_clients", []):
                await _close_quietly(client)
            await _close_quietly(getattr(app.state, "http_client", None))


def _page(name: str) -> FileResponse:
    page_path = PUBLIC_DIR / name
    if not page_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return FileResponse(page_path)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """Serve the landing page (password gate) from the public directory."""
        return _page("index.html")

    @app.get("/call", include_in_schema=False)
    async def serve_call():
        """Serve the real-time call experience."""
        return _page("call.html")

    @app.get("/voice", include_in_schema=False)
    async def serve_voice():
        """Serve the hold-to-record voice message experience."""
        return _page("voice.html")

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting provider wiring and live session count.
        """
        store = getattr(request.app.state, "session_store", None)
        settings = getattr(request.app.state, "settings", None)
        return {
            "ok": True,
            "active_sessions": len(store) if store is not None else 0,
            "rewrite_enabled": bool(settings and settings.rewrite_enabled),
        }

    # Register application routers
    app.include_router(password_router)
    app.include_router(realtime_router)

    return app


app = create_app()
