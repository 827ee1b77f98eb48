"""
Telephony side of a relay session: one inbound Twilio Media Streams WebSocket.
"""

import logging
from typing import Union

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from voice_relay.bot.socket_adapter import SocketAdapter
from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.telephony_events import (
    TelephonyEvent,
    UnknownTelephonyEvent,
    build_clear_frame,
    build_media_frame,
    decode_telephony_frame,
)

logger = logging.getLogger(LOGGER_NAME)


class TelephonyAdapter(SocketAdapter):
    """
    Wraps the accepted FastAPI WebSocket for one call.

    The receive loop runs in the task that serves the WebSocket endpoint, so it is
    also the lifetime of the relay session that owns this adapter.
    """

    side = "Twilio"

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self.websocket = websocket

    def decode(self, raw: Union[str, bytes]) -> TelephonyEvent:
        return decode_telephony_frame(raw)

    def unknown_event(self, raw: Union[str, bytes]) -> TelephonyEvent:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        return UnknownTelephonyEvent(raw=raw)

    async def run(self) -> None:
        """Receive frames until the call leg disconnects or the adapter is closed."""
        reason = "receive loop ended"
        try:
            while not self._close_started:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=message.get("code", 1000))
                raw = message.get("text")
                if raw is None:
                    # Twilio only sends text frames; a binary frame decodes to unknown
                    raw = message.get("bytes") or b""
                await self._dispatch(raw)
        except WebSocketDisconnect as e:
            reason = f"client disconnected, code {e.code}"
        except RuntimeError as e:
            # Starlette raises RuntimeError when receiving on a socket we already closed
            reason = f"socket no longer connected: {e}"
        finally:
            await self._mark_closed(reason)

    async def send_media(self, stream_sid: str, payload: str) -> bool:
        """
        Send agent audio to the caller.

        Args:
            stream_sid: The media stream the audio belongs to
            payload: Base64-encoded audio, forwarded unmodified

        Returns:
            bool: True if the frame was written to the socket
        """
        return await self._send(build_media_frame(stream_sid, payload))

    async def send_clear(self, stream_sid: str) -> bool:
        """Tell the call leg to drop any audio it has buffered for playback."""
        return await self._send(build_clear_frame(stream_sid))

    async def _send(self, frame: BaseModel) -> bool:
        if self._close_started:
            logger.debug(f"[Twilio] Dropping {type(frame).__name__}: socket closed")
            return False
        try:
            await self.websocket.send_text(frame.model_dump_json())
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(f"[Twilio] Send failed, treating socket as closed: {e}")
            await self._mark_closed("send failed")
            return False

    async def _close_transport(self) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close()
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"[Twilio] Socket already closed: {e}")
