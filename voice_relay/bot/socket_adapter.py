"""
Common behaviour of the two WebSocket adapters owned by a relay session.

An adapter decodes every inbound frame into an event variant and hands it to the
owning session's event handler, and reports its own closure to the session's close
handler exactly once, whether the close was requested locally or by the remote end.
A frame that fails to decode is logged and delivered as the adapter's "unknown"
variant; it never terminates the connection.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.errors import ProtocolError

logger = logging.getLogger(LOGGER_NAME)

EventHandler = Callable[[Any], Awaitable[None]]
CloseHandler = Callable[[], Awaitable[None]]


class SocketAdapter(ABC):
    """Base class for the telephony and agent sides of a relay session."""

    # Prefix used in log lines, e.g. "[Twilio]"
    side = "Socket"

    def __init__(self) -> None:
        self._event_handler: Optional[EventHandler] = None
        self._close_handler: Optional[CloseHandler] = None
        self._close_started = False
        self._closed = False

    def set_handlers(
        self,
        event_handler: Optional[EventHandler] = None,
        close_handler: Optional[CloseHandler] = None,
    ) -> None:
        """
        Register the owning session's callbacks.

        Args:
            event_handler: Async function called with every decoded event
            close_handler: Async function called once when the adapter closes
        """
        self._event_handler = event_handler
        self._close_handler = close_handler

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def decode(self, raw: Union[str, bytes]) -> Any:
        """Decode one frame; raise ProtocolError if it is malformed."""

    @abstractmethod
    def unknown_event(self, raw: Union[str, bytes]) -> Any:
        """Return the variant used for frames that could not be decoded."""

    @abstractmethod
    async def _close_transport(self) -> None:
        """Close the underlying connection."""

    async def _dispatch(self, raw: Union[str, bytes]) -> None:
        try:
            event = self.decode(raw)
        except ProtocolError as e:
            logger.warning(f"[{self.side}] Error processing message: {e.detail}")
            event = self.unknown_event(raw)

        if self._event_handler is None:
            return
        try:
            await self._event_handler(event)
        except Exception as e:
            logger.error(f"[{self.side}] Error handling {type(event).__name__}: {e}", exc_info=True)

    async def _mark_closed(self, reason: str) -> None:
        """Record closure and notify the session; later calls are no-ops."""
        self._close_started = True
        if self._closed:
            return
        self._closed = True
        logger.info(f"[{self.side}] Disconnected ({reason})")

        if self._close_handler is None:
            return
        try:
            await self._close_handler()
        except Exception as e:
            logger.error(f"[{self.side}] Error in close handler: {e}", exc_info=True)

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._close_started:
            return
        self._close_started = True
        try:
            await self._close_transport()
        finally:
            await self._mark_closed("closed locally")
