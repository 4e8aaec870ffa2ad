"""Outbound event stream for one voice websocket."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

LOGGER = logging.getLogger(__name__)


class ChannelClosed(Exception):
	"""The client went away; nothing more can be delivered for this session."""


class ClientChannel:
	"""Serialize status/event frames and audio onto a websocket, in call order."""

	def __init__(self, websocket: WebSocket) -> None:
		self.websocket = websocket
		self.closed = False

	def close(self) -> None:
		self.closed = True

	async def pong(self) -> None:
		await self.send_event("pong")

	async def status(self, message: str) -> None:
		await self.send_event("status", message=message)

	async def transcript(self, text: str) -> None:
		await self.send_event("transcript", text=text)

	async def acknowledgment(self, text: str) -> None:
		await self.send_event("acknowledgment", text=text)

	async def hold_music_start(self, url: Optional[str]) -> None:
		if url:
			await self.send_event("hold_music", action="start", url=url)
		else:
			await self.send_event("hold_music", action="start")

	async def hold_music_stop(self) -> None:
		await self.send_event("hold_music", action="stop")

	async def response(self, text: str) -> None:
		await self.send_event("response", text=text)

	async def error(self, message: str) -> None:
		await self.send_event("error", message=message)

	async def send_event(self, event_type: str, **fields: Any) -> None:
		payload: Dict[str, Any] = {"type": event_type, **fields}
		await self._deliver(text=json.dumps(payload))

	async def send_audio(self, audio: bytes) -> None:
		await self._deliver(data=audio)

	async def _deliver(self, *, text: Optional[str] = None, data: Optional[bytes] = None) -> None:
		if self.closed or self.websocket.application_state == WebSocketState.DISCONNECTED:
			self.closed = True
			raise ChannelClosed("Client connection is closed.")
		try:
			if data is not None:
				await self.websocket.send_bytes(data)
			else:
				await self.websocket.send_text(text or "")
		except (WebSocketDisconnect, RuntimeError) as exc:
			self.closed = True
			LOGGER.info("Dropping outbound frame, client disconnected: %s", exc)
			raise ChannelClosed("Client connection is closed.") from exc
