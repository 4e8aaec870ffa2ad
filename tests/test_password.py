import pytest

from controllers.password_controller import PASSWORD_PROMPT, WRONG_PASSWORD_PROMPT, passphrase_matches
from services.providers.errors import SynthesisFailed, TranscriptionFailed
from tests.conftest import FakeSynthesizer, FakeTranscriber
from utils.settings import Settings

WAV_BYTES = b"RIFF" + bytes(64)


@pytest.mark.parametrize(
    "transcript, expected",
    [
        ("Broodje biefstuk.", True),
        ("Het is broodje, eh, biefstuk", True),
        ("brootje biefstuk", True),
        ("broodje kaas", False),
        ("", False),
    ],
)
def test_passphrase_matches(transcript, expected):
    aliases = ("brootje biefstuk", "broodje beefstuk")
    assert passphrase_matches(transcript, "broodje biefstuk", aliases) is expected


def test_verify_password_accepts_spoken_passphrase(client, app):
    app.state.transcription_client = FakeTranscriber(transcripts=["Broodje Biefstuk!"])

    response = client.post("/api/verify-password", content=WAV_BYTES, headers={"content-type": "audio/wav"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "transcript": "broodje biefstuk!"}


def test_verify_password_rejects_wrong_phrase(client, app):
    app.state.transcription_client = FakeTranscriber(transcripts=["hallo daar"])

    response = client.post("/api/verify-password", content=WAV_BYTES, headers={"content-type": "audio/webm"})

    assert response.json() == {"success": False, "transcript": "hallo daar"}


def test_verify_password_reports_recognition_failure(client, app):
    app.state.transcription_client = FakeTranscriber(error=TranscriptionFailed("Transcription failed: 500", 500))

    response = client.post("/api/verify-password", content=WAV_BYTES, headers={"content-type": "audio/wav"})

    assert response.json() == {"success": False, "error": "Speech recognition failed"}


def test_verify_password_requires_audio(client):
    response = client.post("/api/verify-password", content=b"", headers={"content-type": "audio/wav"})

    assert response.json() == {"success": False, "error": "No audio received"}


def test_verify_password_rejects_non_audio_upload(client):
    response = client.post("/api/verify-password", content=b"{}", headers={"content-type": "application/json"})

    body = response.json()
    assert body["success"] is False
    assert "Unsupported audio content type" in body["error"]


def test_gate_disabled_always_succeeds(client, app):
    app.state.settings = Settings(elevenlabs_api_key="test_key", access_password="")
    transcriber = FakeTranscriber()
    app.state.transcription_client = transcriber

    response = client.post("/api/verify-password", content=WAV_BYTES, headers={"content-type": "audio/wav"})

    assert response.json()["success"] is True
    assert transcriber.calls == []


def test_prompt_routes_return_synthesized_audio(client, synthesizer):
    prompt = client.get("/api/password-prompt")
    wrong = client.get("/api/wrong-password")

    assert prompt.status_code == 200
    assert prompt.headers["content-type"] == "audio/mpeg"
    assert prompt.content == b"audio:" + PASSWORD_PROMPT.encode("utf-8")
    assert wrong.content == b"audio:" + WRONG_PASSWORD_PROMPT.encode("utf-8")
    assert synthesizer.calls == [PASSWORD_PROMPT, WRONG_PASSWORD_PROMPT]


def test_prompt_synthesis_failure_is_bad_gateway(client, app):
    app.state.synthesis_client = FakeSynthesizer(error=SynthesisFailed("Synthesis failed: 401", 401))

    response = client.get("/api/password-prompt")

    assert response.status_code == 502
    assert response.json() == {"detail": "Synthesis failed (401)"}
