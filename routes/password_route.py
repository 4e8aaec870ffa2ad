"""FastAPI routes for the spoken-password gate."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

from controllers.password_controller import (
	PASSWORD_PROMPT,
	WRONG_PASSWORD_PROMPT,
	prompt_audio,
	verify_password,
)
from utils.media_validation import read_audio_body

router = APIRouter(prefix="/api", tags=["password"])


class PasswordResult(BaseModel):
	success: bool
	transcript: Optional[str] = None
	error: Optional[str] = None


@router.post("/verify-password", response_model=PasswordResult, response_model_exclude_none=True)
async def verify_password_route(request: Request):
	try:
		audio_bytes = await read_audio_body(request)
	except HTTPException as exc:
		return PasswordResult(success=False, error=exc.detail)
	try:
		return PasswordResult(**await verify_password(request, audio_bytes))
	except HTTPException:
		raise
	except Exception as exc:
		return PasswordResult(success=False, error=str(exc))


@router.get("/password-prompt")
async def password_prompt_route(request: Request):
	try:
		audio = await prompt_audio(request, PASSWORD_PROMPT)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
	return Response(content=audio, media_type="audio/mpeg")


@router.get("/wrong-password")
async def wrong_password_route(request: Request):
	try:
		audio = await prompt_audio(request, WRONG_PASSWORD_PROMPT)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
	return Response(content=audio, media_type="audio/mpeg")
