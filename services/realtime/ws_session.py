"""Own the lifecycle of voice websocket sessions and route their frames."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from fastapi import WebSocket

from models.session_models import Session
from services.realtime.client_channel import ChannelClosed, ClientChannel
from services.realtime.session_store import SessionStore
from services.realtime.turn_orchestrator import TurnOrchestrator, TurnServices

LOGGER = logging.getLogger(__name__)

PING = "ping"
RESET = "reset"
BUSY_STATUS = "Busy, message dropped"


class _ResetRequest:
	"""Queue marker: clear history once the turns ahead of it are done."""


_RESET = _ResetRequest()

QueueItem = Union[bytes, _ResetRequest]


@dataclass
class SessionRuntime:
	"""Everything bound to one open connection."""

	session: Session
	channel: ClientChannel
	orchestrator: TurnOrchestrator
	queue: "asyncio.Queue[QueueItem]"
	worker: Optional[asyncio.Task] = field(default=None, repr=False)


class SessionManager:
	"""Create sessions on connect, route inbound frames, tear down on close.

	Audio frames are processed strictly one at a time per connection: a frame
	that arrives while a turn is running waits in a bounded queue, and a frame
	that finds the queue full is dropped with a busy status. Error events are
	reserved for the end of a failed turn. ``reset`` goes through the same
	queue so it never clears history in the middle of a turn; ``ping`` is
	answered immediately.
	"""

	def __init__(self, store: SessionStore, services: TurnServices, *, max_queued_turns: int = 8) -> None:
		if store is None:
			raise ValueError("Session store is required.")
		self.store = store
		self.services = services
		self.max_queued_turns = max_queued_turns
		self._runtimes: Dict[str, SessionRuntime] = {}

	def open(self, websocket: WebSocket, session_id: Optional[str] = None) -> SessionRuntime:
		"""Allocate a session, its empty history and its turn worker."""
		session = self.store.create(session_id)
		channel = ClientChannel(websocket)
		orchestrator = self.services.orchestrator_for(session, self.store.conversations, channel)
		runtime = SessionRuntime(
			session=session,
			channel=channel,
			orchestrator=orchestrator,
			queue=asyncio.Queue(maxsize=self.max_queued_turns),
		)
		runtime.worker = asyncio.create_task(self._drain(runtime))
		self._runtimes[session.session_id] = runtime
		LOGGER.info("Client connected: session %s", session.session_id)
		return runtime

	def get(self, session_id: str) -> SessionRuntime:
		runtime = self._runtimes.get(session_id)
		if runtime is None:
			raise KeyError(f"Session {session_id} not found")
		return runtime

	async def dispatch(self, runtime: SessionRuntime, message: Dict[str, Any]) -> None:
		"""Route one raw ASGI websocket receive message."""
		try:
			data = message.get("bytes")
			if data is not None:
				await self._enqueue(runtime, bytes(data))
				return
			text = (message.get("text") or "").strip()
			if text == PING:
				await runtime.channel.pong()
			elif text == RESET:
				await self._enqueue(runtime, _RESET)
			else:
				LOGGER.debug("Session %s ignoring text frame %r", runtime.session.session_id, text[:80])
		except ChannelClosed:
			LOGGER.debug("Session %s: frame arrived after close", runtime.session.session_id)

	async def wait_idle(self, runtime: SessionRuntime) -> None:
		"""Block until every queued turn and reset has been processed."""
		await runtime.queue.join()

	async def close(self, runtime: SessionRuntime) -> None:
		"""Stop the worker and drop the session together with its history."""
		runtime.session.alive = False
		runtime.channel.close()
		self._runtimes.pop(runtime.session.session_id, None)
		self.store.destroy(runtime.session.session_id)
		LOGGER.info("Client disconnected: session %s", runtime.session.session_id)
		worker = runtime.worker
		if worker is not None and not worker.done():
			worker.cancel()
			with contextlib.suppress(asyncio.CancelledError):
				await worker

	async def _enqueue(self, runtime: SessionRuntime, item: QueueItem) -> None:
		try:
			runtime.queue.put_nowait(item)
		except asyncio.QueueFull:
			LOGGER.warning("Session %s queue full, rejecting frame", runtime.session.session_id)
			await runtime.channel.status(BUSY_STATUS)

	async def _reset(self, runtime: SessionRuntime) -> None:
		self.store.conversations.reset(runtime.session.conversation_id)
		LOGGER.info("Session %s history reset", runtime.session.session_id)
		await runtime.channel.status("Session reset")

	async def _drain(self, runtime: SessionRuntime) -> None:
		while True:
			item = await runtime.queue.get()
			try:
				if not runtime.session.alive:
					LOGGER.debug("Session %s closed, skipping queued frame", runtime.session.session_id)
				elif isinstance(item, _ResetRequest):
					await self._reset(runtime)
				else:
					await runtime.orchestrator.run_turn(item)
			except ChannelClosed:
				LOGGER.debug("Session %s: client gone while draining queue", runtime.session.session_id)
			except Exception:
				LOGGER.exception("Session %s: unexpected error while draining queue", runtime.session.session_id)
			finally:
				runtime.queue.task_done()
