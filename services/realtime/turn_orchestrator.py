"""Drive one conversation turn from inbound audio to delivered reply audio."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from models.session_models import Session, TurnResult, TurnState
from services.providers.completion_client import CompletionClient
from services.providers.errors import NoSpeechDetected, ProviderError
from services.providers.synthesis_client import SynthesisClient
from services.providers.transcription_client import TranscriptionClient
from services.realtime.acknowledgments import AcknowledgmentPicker
from services.realtime.client_channel import ChannelClosed, ClientChannel
from services.realtime.conversation_store import ConversationStore
from services.speech.text_rewriter import SpeechTextRewriter

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong while handling your message."


class TurnOrchestrator:
	"""State machine for the turns of a single session.

	A turn moves Idle -> Transcribing -> (NoSpeech | Acknowledging -> Thinking ->
	Normalizing -> Synthesizing -> Delivering) -> Idle. Any failure moves it to
	Errored, emits exactly one error frame and returns to Idle; the session stays
	usable. The acknowledgment clip and the hold-music cue are sent before the
	completion call so the client has something to play while the model thinks,
	and the stop cue always immediately precedes the reply audio.
	"""

	def __init__(
		self,
		session: Session,
		conversations: ConversationStore,
		channel: ClientChannel,
		*,
		transcriber: TranscriptionClient,
		completer: CompletionClient,
		rewriter: SpeechTextRewriter,
		synthesizer: SynthesisClient,
		acknowledgments: Optional[AcknowledgmentPicker] = None,
		hold_music_url: Optional[str] = None,
		assistant_name: str = "Craby",
	) -> None:
		self.session = session
		self.conversations = conversations
		self.channel = channel
		self.transcriber = transcriber
		self.completer = completer
		self.rewriter = rewriter
		self.synthesizer = synthesizer
		self.acknowledgments = acknowledgments or AcknowledgmentPicker()
		self.hold_music_url = hold_music_url
		self.assistant_name = assistant_name
		self.state = TurnState.IDLE

	def _enter(self, state: TurnState, result: Optional[TurnResult] = None) -> None:
		if state != self.state:
			LOGGER.debug("Session %s: %s -> %s", self.session.session_id, self.state.value, state.value)
		self.state = state
		if result is not None and state != TurnState.IDLE:
			result.state = state

	async def run_turn(self, audio: bytes) -> TurnResult:
		"""Process one utterance end to end. Never raises for provider failures."""
		result = TurnResult(audio_in=audio)
		start = time.time()
		try:
			await self._transcribe(result)
			await self._acknowledge(result)
			await self._think(result)
			await self._normalize(result)
			await self._synthesize(result)
			await self._deliver(result)
			LOGGER.info("Session %s turn completed in %.3fs", self.session.session_id, time.time() - start)
		except NoSpeechDetected:
			self._enter(TurnState.NO_SPEECH, result)
			await self._quietly(self.channel.status("No speech detected"))
		except ChannelClosed:
			LOGGER.info("Session %s closed during %s; abandoning turn", self.session.session_id, self.state.value)
			self._enter(TurnState.ERRORED, result)
			result.error = "Client disconnected"
		except ProviderError as exc:
			LOGGER.error("Session %s turn failed while %s: %s", self.session.session_id, self.state.value, exc)
			await self._fail(result, exc.user_message)
		except Exception as exc:
			LOGGER.exception("Session %s turn crashed while %s: %s", self.session.session_id, self.state.value, exc)
			await self._fail(result, GENERIC_ERROR)
		finally:
			self._enter(TurnState.IDLE)
		return result

	async def _transcribe(self, result: TurnResult) -> None:
		self._enter(TurnState.TRANSCRIBING, result)
		LOGGER.info("Session %s received audio: %d bytes", self.session.session_id, len(result.audio_in))
		await self.channel.status("Transcribing...")
		transcript = (await self.transcriber.transcribe(result.audio_in) or "").strip()
		if not transcript:
			raise NoSpeechDetected()
		result.transcript = transcript
		LOGGER.info("Session %s transcript: %s", self.session.session_id, transcript)
		await self.channel.transcript(transcript)

	async def _acknowledge(self, result: TurnResult) -> None:
		self._enter(TurnState.ACKNOWLEDGING, result)
		ack = self.acknowledgments.pick()
		result.acknowledgment = ack
		await self.channel.status("Quick response...")
		ack_audio = await self.synthesizer.synthesize(ack)
		await self.channel.acknowledgment(ack)
		await self.channel.send_audio(ack_audio)
		await self.channel.hold_music_start(self.hold_music_url)

	async def _think(self, result: TurnResult) -> None:
		self._enter(TurnState.THINKING, result)
		conversation_id = self.session.conversation_id
		history = self.conversations.get(conversation_id)
		user_turn = history.append("user", result.transcript)
		await self.channel.status(f"{self.assistant_name} is thinking...")
		try:
			reply = await self.completer.complete(history.snapshot())
		except BaseException:
			history.rollback(user_turn)
			raise
		history.append("assistant", reply)
		result.reply = reply
		LOGGER.info("Session %s reply: %d chars, history %d", self.session.session_id, len(reply), len(history))
		await self.channel.response(reply)

	async def _normalize(self, result: TurnResult) -> None:
		self._enter(TurnState.NORMALIZING, result)
		await self.channel.status("Formatting for voice...")
		result.spoken_text = await self.rewriter.rewrite(result.reply or "")
		LOGGER.debug("Session %s speech text: %s", self.session.session_id, result.spoken_text)

	async def _synthesize(self, result: TurnResult) -> None:
		self._enter(TurnState.SYNTHESIZING, result)
		await self.channel.status("Generating voice...")
		result.audio_out = await self.synthesizer.synthesize(result.spoken_text or "")

	async def _deliver(self, result: TurnResult) -> None:
		self._enter(TurnState.DELIVERING, result)
		await self.channel.hold_music_stop()
		await self.channel.send_audio(result.audio_out or b"")
		await self.channel.status("Ready")

	async def _fail(self, result: TurnResult, message: str) -> None:
		self._enter(TurnState.ERRORED, result)
		result.error = message
		await self._quietly(self.channel.error(message))

	async def _quietly(self, send) -> None:
		try:
			await send
		except ChannelClosed:
			LOGGER.debug("Session %s: client gone before final frame", self.session.session_id)


@dataclass
class TurnServices:
	"""Shared provider clients from which per-session orchestrators are built."""

	transcriber: TranscriptionClient
	completer: CompletionClient
	rewriter: SpeechTextRewriter
	synthesizer: SynthesisClient
	acknowledgments: AcknowledgmentPicker = field(default_factory=AcknowledgmentPicker)
	hold_music_url: Optional[str] = None
	assistant_name: str = "Craby"

	def orchestrator_for(
		self, session: Session, conversations: ConversationStore, channel: ClientChannel
	) -> TurnOrchestrator:
		return TurnOrchestrator(
			session,
			conversations,
			channel,
			transcriber=self.transcriber,
			completer=self.completer,
			rewriter=self.rewriter,
			synthesizer=self.synthesizer,
			acknowledgments=self.acknowledgments,
			hold_music_url=self.hold_music_url,
			assistant_name=self.assistant_name,
		)
