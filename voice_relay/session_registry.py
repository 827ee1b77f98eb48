"""
Session registry for inbound Twilio media stream connections.

The registry is the service object behind both media stream WebSocket routes. It
accepts each connection and runs one independent RelaySession for it. The only
thing sessions share is the immutable configuration held here.
"""

import logging
from typing import Optional

from fastapi import WebSocket

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.bot.relay_session import RelaySession
from voice_relay.bot.telephony_adapter import TelephonyAdapter
from voice_relay.config.constants import LOGGER_NAME, WS_CLOSE_TRY_AGAIN_LATER
from voice_relay.config.settings import RelaySettings
from voice_relay.services.signed_url import SignedUrlProvider

logger = logging.getLogger(LOGGER_NAME)


class SessionRegistry:
    """Creates one RelaySession per accepted media stream connection."""

    def __init__(
        self,
        settings: RelaySettings,
        signed_url_provider: Optional[SignedUrlProvider] = None,
    ):
        self.settings = settings
        self.signed_url_provider = signed_url_provider or SignedUrlProvider.from_settings(settings)
        self._accepting = False

    @property
    def accepting(self) -> bool:
        return self._accepting

    async def start(self) -> None:
        self._accepting = True
        logger.info("[Server] Session registry accepting media streams")

    async def stop(self) -> None:
        self._accepting = False
        logger.info("[Server] Session registry stopped accepting media streams")

    def create_session(self, websocket: WebSocket) -> RelaySession:
        """
        Build a session with fresh adapters for one connection.

        Args:
            websocket: The accepted Twilio media stream WebSocket

        Returns:
            RelaySession: A new idle session
        """
        agent = AgentAdapter(
            self.signed_url_provider,
            connect_timeout=self.settings.agent_connect_timeout,
        )
        return RelaySession(
            TelephonyAdapter(websocket),
            agent,
            default_prompt=self.settings.default_prompt,
            default_first_message=self.settings.default_first_message,
        )

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Accept a media stream connection and serve it until the call ends."""
        await websocket.accept()

        if not self._accepting:
            logger.warning("[Server] Rejecting media stream: registry is not accepting sessions")
            await websocket.close(code=WS_CLOSE_TRY_AGAIN_LATER)
            return

        logger.info("[Server] Twilio connected to media stream")
        session = self.create_session(websocket)
        await session.run()
