import json
import os
from typing import Any, Dict, List, Optional

import pytest
from starlette.websockets import WebSocketState

from models.session_models import Message
from services.providers.errors import CompletionFailed
from services.realtime.acknowledgments import AcknowledgmentPicker
from services.realtime.client_channel import ClientChannel
from services.realtime.conversation_store import ConversationStore
from services.realtime.session_store import SessionStore
from services.realtime.turn_orchestrator import TurnServices
from services.speech.text_rewriter import SpeechTextRewriter

ACK_PHRASE = "Momentje, ik zoek het even voor je op."


class FakeTranscriber:
    """Returns queued transcripts in order; the last one repeats."""

    def __init__(self, transcripts: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.transcripts = list(transcripts if transcripts is not None else ["hallo craby"])
        self.error = error
        self.calls: List[bytes] = []

    async def transcribe(self, audio_bytes: bytes) -> str:
        self.calls.append(audio_bytes)
        if self.error is not None:
            raise self.error
        if len(self.transcripts) > 1:
            return self.transcripts.pop(0)
        return self.transcripts[0] if self.transcripts else ""


class FakeCompleter:
    """Records every history it is asked to complete."""

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.replies = list(replies if replies is not None else ["Dat is 50 procent meer."])
        self.error = error
        self.calls: List[List[Message]] = []

    async def complete(self, history) -> str:
        self.calls.append(list(history))
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


class FakeSynthesizer:
    def __init__(self, fail_on: Optional[str] = None, error: Optional[Exception] = None):
        self.fail_on = fail_on
        self.error = error
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.error is not None and (self.fail_on is None or self.fail_on == text):
            raise self.error
        return b"audio:" + text.encode("utf-8")


class FakeWebSocket:
    """Captures outbound frames the way the orchestrator would put them on the wire."""

    def __init__(self):
        self.application_state = WebSocketState.CONNECTED
        self.sent: List[Any] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def send_bytes(self, data: bytes) -> None:
        self.sent.append(data)

    def events(self) -> List[Dict[str, Any]]:
        return [frame for frame in self.sent if isinstance(frame, dict)]


class FailingCompletions:
    """Stands in for `client.chat.completions` and always fails."""

    def __init__(self):
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        raise CompletionFailed("upstream unavailable", status_code=503)


class StubChat:
    def __init__(self, completions):
        self.completions = completions


class StubOpenAI:
    def __init__(self, completions):
        self.chat = StubChat(completions)


@pytest.fixture(autouse=True)
def setup_test_env():
    """Keep provider keys out of the real environment during tests."""
    original_env = dict(os.environ)
    os.environ["ELEVENLABS_API_KEY"] = "test_key"
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def completer() -> FakeCompleter:
    return FakeCompleter()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def turn_services(transcriber, completer, synthesizer) -> TurnServices:
    return TurnServices(
        transcriber=transcriber,
        completer=completer,
        rewriter=SpeechTextRewriter(None),
        synthesizer=synthesizer,
        acknowledgments=AcknowledgmentPicker([ACK_PHRASE]),
        hold_music_url="https://example.com/hold.mp3",
        assistant_name="Craby",
    )


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore(ConversationStore(limit=20))


@pytest.fixture
def fake_websocket() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def channel(fake_websocket) -> ClientChannel:
    return ClientChannel(fake_websocket)


@pytest.fixture
def app(turn_services, session_store, transcriber, synthesizer):
    """App with fake providers attached up front, so the lifespan builds nothing."""
    from main import create_app
    from services.realtime.ws_session import SessionManager
    from utils.settings import Settings

    application = create_app()
    application.state.settings = Settings(elevenlabs_api_key="test_key")
    application.state.transcription_client = transcriber
    application.state.synthesis_client = synthesizer
    application.state.session_store = session_store
    application.state.session_manager = SessionManager(session_store, turn_services, max_queued_turns=4)
    return application


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client
