"""
Agent side of a relay session: the ElevenLabs Conversational AI WebSocket.

Bring-up is a single awaited operation: fetch a signed URL, open the socket, send
the one-time initiation handshake. Any failure along the way is raised to the
caller as AgentConnectionError; the adapter never retries on its own.
"""

import asyncio
import logging
from typing import Optional, Union

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from voice_relay.bot.socket_adapter import SocketAdapter
from voice_relay.config.constants import (
    DEFAULT_AGENT_CONNECT_TIMEOUT,
    LOGGER_NAME,
    WS_CLOSE_TIMEOUT,
    WS_MAX_SIZE,
    WS_PING_INTERVAL,
)
from voice_relay.errors import AgentConnectionError
from voice_relay.models.agent_events import (
    AgentEvent,
    EventId,
    PongMessage,
    UnknownAgentEvent,
    UserAudioChunkMessage,
    UserTextMessage,
    build_initiation_message,
    decode_agent_frame,
    to_wire,
)
from voice_relay.services.signed_url import SignedUrlProvider

logger = logging.getLogger(LOGGER_NAME)


class AgentAdapter(SocketAdapter):
    """Client connection to one ElevenLabs conversation."""

    side = "ElevenLabs"

    def __init__(
        self,
        signed_url_provider: SignedUrlProvider,
        connect_timeout: float = DEFAULT_AGENT_CONNECT_TIMEOUT,
    ):
        super().__init__()
        self.signed_url_provider = signed_url_provider
        self.connect_timeout = connect_timeout
        self.ws = None
        self._handshake_sent = False
        self._recv_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        """True once the handshake has been sent and until the connection closes."""
        return self.ws is not None and self._handshake_sent and not self._close_started

    def decode(self, raw: Union[str, bytes]) -> AgentEvent:
        return decode_agent_frame(raw)

    def unknown_event(self, raw: Union[str, bytes]) -> AgentEvent:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        return UnknownAgentEvent(raw=raw)

    async def connect(self, prompt: str, first_message: Optional[str] = None) -> None:
        """
        Open the conversation and send the initiation handshake.

        Args:
            prompt: Agent prompt for this call
            first_message: Opening utterance; the agent's own default is used when None

        Raises:
            AgentConnectionError: If the signed URL cannot be obtained, the socket
                cannot be opened in time, or the handshake cannot be sent
        """
        if self._close_started:
            raise AgentConnectionError("Adapter already closed")

        signed_url = await self.signed_url_provider.get_signed_url()

        try:
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    signed_url,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    close_timeout=WS_CLOSE_TIMEOUT,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise AgentConnectionError(
                f"Timed out opening agent connection after {self.connect_timeout}s"
            ) from e
        except (OSError, WebSocketException) as e:
            raise AgentConnectionError(f"Failed to open agent connection: {e}") from e

        logger.info("[ElevenLabs] Connected to Conversational AI")

        initiation = build_initiation_message(prompt, first_message)
        try:
            await self.ws.send(to_wire(initiation))
        except ConnectionClosed as e:
            await self.close()
            raise AgentConnectionError(f"Agent closed during handshake: {e}") from e

        self._handshake_sent = True
        logger.info(f"[ElevenLabs] Sent initial config with prompt: {prompt}")

        self._recv_task = asyncio.create_task(self._recv_loop())

    async def send_user_audio(self, payload: str) -> bool:
        """Forward caller audio (base64, unmodified) to the agent."""
        return await self._send(UserAudioChunkMessage(user_audio_chunk=payload))

    async def send_pong(self, event_id: EventId) -> bool:
        """Answer a keepalive ping with the same event id."""
        return await self._send(PongMessage(event_id=event_id))

    async def send_user_text(self, text: str) -> bool:
        """Send a user utterance as text (request/response speech path)."""
        return await self._send(UserTextMessage(text=text))

    async def _send(self, message: BaseModel) -> bool:
        if not self.is_open:
            logger.debug(f"[ElevenLabs] Dropping {type(message).__name__}: connection not open")
            return False
        try:
            await self.ws.send(to_wire(message))
            return True
        except ConnectionClosed as e:
            logger.warning(f"[ElevenLabs] Send failed, connection closed: {e}")
            await self._mark_closed("send failed")
            return False

    async def _recv_loop(self) -> None:
        reason = "closed by remote"
        try:
            async for raw in self.ws:
                await self._dispatch(raw)
        except ConnectionClosedOK:
            reason = "closed normally"
        except ConnectionClosed as e:
            reason = f"connection lost: {e}"
        except asyncio.CancelledError:
            reason = "receive loop cancelled"
            raise
        finally:
            await self._mark_closed(reason)

    async def _close_transport(self) -> None:
        if self.ws is not None:
            try:
                await self.ws.close()
            except (OSError, WebSocketException) as e:
                logger.warning(f"[ElevenLabs] Error closing connection: {e}")

        task = self._recv_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
