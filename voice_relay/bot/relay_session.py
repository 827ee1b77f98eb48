"""
Relay session connecting one Twilio call to one ElevenLabs conversation.

This module provides the per-call bridge between the Twilio Media Streams protocol
and the ElevenLabs Conversational AI protocol. A session owns exactly one adapter of
each kind, tracks the call identifiers, translates events in both directions and
tears both connections down together.
"""

import asyncio
import enum
import logging
from typing import Dict, Optional

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.bot.telephony_adapter import TelephonyAdapter
from voice_relay.config.constants import DEFAULT_FIRST_MESSAGE, DEFAULT_PROMPT, LOGGER_NAME
from voice_relay.errors import AgentConnectionError, RoutingError
from voice_relay.models.agent_events import (
    AgentEvent,
    AgentResponseEvent,
    AudioChunkEvent,
    InitiationMetadataEvent,
    InterruptionEvent,
    PingEvent,
    UnknownAgentEvent,
    UserTranscriptEvent,
)
from voice_relay.models.telephony_events import (
    MediaEvent,
    StartEvent,
    StopEvent,
    TelephonyEvent,
    UnknownTelephonyEvent,
)

logger = logging.getLogger(LOGGER_NAME)


class SessionState(str, enum.Enum):
    """Lifecycle of a relay session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


ALLOWED_TRANSITIONS = {
    SessionState.IDLE: {SessionState.CONNECTING, SessionState.CLOSING},
    SessionState.CONNECTING: {SessionState.ACTIVE, SessionState.CLOSING},
    SessionState.ACTIVE: {SessionState.CLOSING},
    SessionState.CLOSING: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}


class RelaySession:
    """
    Bridge between one Twilio media stream and one ElevenLabs conversation.

    This class handles:
    - The session state machine (idle, connecting, active, closing, closed)
    - Bringing up the agent connection once the stream has started
    - Translating telephony events to agent messages and back
    - Closing the counterpart whenever either side closes

    All mutable state is owned by this object and only touched from the event
    handlers of its own two adapters, which run on the same event loop.
    """

    def __init__(
        self,
        telephony: TelephonyAdapter,
        agent: AgentAdapter,
        default_prompt: str = DEFAULT_PROMPT,
        default_first_message: str = DEFAULT_FIRST_MESSAGE,
    ):
        self.telephony = telephony
        self.agent = agent
        self.default_prompt = default_prompt
        self.default_first_message = default_first_message

        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.parameters: Dict[str, str] = {}
        self._state = SessionState.IDLE
        self._connect_task: Optional[asyncio.Task] = None

        telephony.set_handlers(self.handle_telephony_event, self._on_telephony_closed)
        agent.set_handlers(self.handle_agent_event, self._on_agent_closed)

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid session transition {self._state.value} -> {new_state.value}")
        logger.debug(f"[Server] Session {self.stream_sid}: {self._state.value} -> {new_state.value}")
        self._state = new_state

    async def run(self) -> None:
        """Serve the call until the telephony side disconnects, then clean up."""
        try:
            await self.telephony.run()
        except Exception as e:
            logger.error(f"[Server] Session error for stream {self.stream_sid}: {e}", exc_info=True)
        finally:
            await self.close("telephony disconnected")

    # Telephony -> agent

    async def handle_telephony_event(self, event: TelephonyEvent) -> None:
        """
        Translate one event from the call leg.

        Args:
            event: The decoded telephony event
        """
        if isinstance(event, StartEvent):
            await self._on_start(event)
        elif isinstance(event, MediaEvent):
            await self._on_media(event)
        elif isinstance(event, StopEvent):
            logger.info(f"[Twilio] Stream {self.stream_sid} ended")
            await self.close("stop received")
        elif isinstance(event, UnknownTelephonyEvent):
            logger.info(f"[Twilio] Unhandled event: {event.event}")
        else:
            logger.warning(f"[Twilio] Unsupported event variant: {type(event).__name__}")

    async def _on_start(self, event: StartEvent) -> None:
        if self._state is not SessionState.IDLE:
            logger.warning(f"[Twilio] Ignoring start for {event.stream_sid}: session is {self._state.value}")
            return

        self.stream_sid = event.stream_sid
        self.call_sid = event.call_sid
        self.parameters = dict(event.parameters)
        logger.info(f"[Twilio] Stream started - StreamSid: {self.stream_sid}, CallSid: {self.call_sid}")
        logger.info(f"[Twilio] Start parameters: {self.parameters}")

        self._transition(SessionState.CONNECTING)
        self._connect_task = asyncio.create_task(
            self._connect_agent(
                prompt=event.prompt or self.default_prompt,
                first_message=event.first_message or self.default_first_message,
            )
        )

    async def _on_media(self, event: MediaEvent) -> None:
        if self._state is not SessionState.ACTIVE or not self.agent.is_open:
            # No buffering: audio that arrives before the agent is ready is lost
            logger.debug(f"[Twilio] Dropping media while session is {self._state.value}")
            return
        await self.agent.send_user_audio(event.payload)

    async def _connect_agent(self, prompt: str, first_message: str) -> None:
        try:
            await self.agent.connect(prompt, first_message)
        except AgentConnectionError as e:
            logger.error(f"[ElevenLabs] Setup error for call {self.call_sid}: {e.detail}")
            await self.close("agent connection failed")
            return

        if self._state is SessionState.CONNECTING:
            self._transition(SessionState.ACTIVE)
            logger.info(f"[Server] Session active for stream {self.stream_sid}")

    # Agent -> telephony

    async def handle_agent_event(self, event: AgentEvent) -> None:
        """
        Translate one event from the agent.

        Args:
            event: The decoded agent event
        """
        if isinstance(event, PingEvent):
            await self.agent.send_pong(event.event_id)
        elif isinstance(event, AudioChunkEvent):
            await self._route_to_call(event)
        elif isinstance(event, InterruptionEvent):
            await self._route_to_call(event)
        elif isinstance(event, InitiationMetadataEvent):
            logger.info(f"[ElevenLabs] Received initiation metadata (conversation {event.conversation_id})")
        elif isinstance(event, AgentResponseEvent):
            logger.info(f"[ElevenLabs] Agent response: {event.text}")
        elif isinstance(event, UserTranscriptEvent):
            logger.info(f"[ElevenLabs] User transcript: {event.text}")
        elif isinstance(event, UnknownAgentEvent):
            logger.info(f"[ElevenLabs] Unhandled message type: {event.type}")
        else:
            logger.warning(f"[ElevenLabs] Unsupported event variant: {type(event).__name__}")

    async def _route_to_call(self, event: AgentEvent) -> None:
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        try:
            stream_sid = self._require_stream()
        except RoutingError as e:
            logger.info(f"[ElevenLabs] Dropping {type(event).__name__}: {e.detail}")
            return

        if isinstance(event, AudioChunkEvent):
            await self.telephony.send_media(stream_sid, event.payload)
        else:
            await self.telephony.send_clear(stream_sid)

    def _require_stream(self) -> str:
        if self.stream_sid is None:
            raise RoutingError("no StreamSid yet")
        return self.stream_sid

    # Teardown

    async def _on_telephony_closed(self) -> None:
        await self.close("telephony closed")

    async def _on_agent_closed(self) -> None:
        await self.close("agent closed")

    async def close(self, reason: str = "closed") -> None:
        """
        Close both connections and finish the session.

        Only the first call does any work; the session reaches CLOSED exactly once.

        Args:
            reason: Why the session is closing, for the log
        """
        if self._state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        self._transition(SessionState.CLOSING)
        logger.info(f"[Server] Closing session for stream {self.stream_sid}: {reason}")

        task = self._connect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        try:
            await self.agent.close()
        except Exception as e:
            logger.error(f"[ElevenLabs] Error closing agent connection: {e}", exc_info=True)

        try:
            await self.telephony.close()
        except Exception as e:
            logger.error(f"[Twilio] Error closing media stream: {e}", exc_info=True)
        finally:
            self._transition(SessionState.CLOSED)
            logger.info(f"[Server] Session closed for stream {self.stream_sid}")
