"""WebSocket endpoint for realtime voice conversations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketException, status
from starlette.websockets import WebSocketDisconnect

from services.realtime.ws_session import SessionManager

router = APIRouter()


def _require_session_manager(websocket: WebSocket) -> SessionManager:
	manager = getattr(websocket.app.state, "session_manager", None)
	if manager is None:
		raise WebSocketException(code=status.WS_1011_INTERNAL_ERROR, reason="Session manager unavailable")
	return manager


@router.websocket("/")
@router.websocket("/ws")
async def voice_socket(websocket: WebSocket, manager: SessionManager = Depends(_require_session_manager)):
	"""Stream audio turns in, and status events plus reply audio out, over one websocket."""
	await websocket.accept()
	runtime = manager.open(websocket)
	try:
		while True:
			message = await websocket.receive()
			if message["type"] == "websocket.disconnect":
				break
			await manager.dispatch(runtime, message)
	except WebSocketDisconnect:
		pass
	finally:
		await manager.close(runtime)
