"""Validation and labeling helpers for uploaded audio content."""

from typing import NamedTuple

from fastapi import HTTPException, Request

RIFF_MAGIC = b"RIFF"
EBML_MAGIC = b"\x1a\x45\xdf\xa3"

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class AudioType(NamedTuple):
    mime: str
    extension: str


WAV = AudioType("audio/wav", "wav")
WEBM = AudioType("audio/webm", "webm")


def detect_audio_type(buffer: bytes) -> AudioType:
    """Classify an audio blob by its container magic bytes.

    Browsers record WebM/Opus by default, so anything that is not clearly a
    RIFF/WAV file (including buffers too short to sniff) is labeled WebM.
    """
    head = bytes(buffer[:4]) if buffer else b""
    if head == RIFF_MAGIC:
        return WAV
    if head == EBML_MAGIC:
        return WEBM
    return WEBM


async def read_audio_body(request: Request) -> bytes:
    """Read a raw audio request body, rejecting empty or oversized uploads."""
    content_type = (request.headers.get("content-type") or "").lower().split(";", 1)[0].strip()
    if content_type and not content_type.startswith("audio/") and content_type != "application/octet-stream":
        raise HTTPException(status_code=415, detail=f"Unsupported audio content type: {content_type}")
    audio_bytes = await request.body()
    if not audio_bytes:
        raise HTTPException(status_code=400, detail="No audio received")
    if len(audio_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Audio upload is too large.")
    return audio_bytes
