"""
Request/response speech path.

Used when the call is driven by Twilio <Gather input="speech"> instead of a media
stream: each recognised utterance opens a short-lived agent conversation, sends the
text and waits for the first audio reply.
"""

import asyncio
import logging
from typing import Optional

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.config.constants import DEFAULT_SPEECH_TURN_PROMPT, DEFAULT_SPEECH_TURN_TIMEOUT, LOGGER_NAME
from voice_relay.errors import AgentConnectionError, AgentTimeoutError
from voice_relay.models.agent_events import AgentEvent, AudioChunkEvent, PingEvent

logger = logging.getLogger(LOGGER_NAME)


class SpeechTurn:
    """One utterance in, the agent's first audio chunk out."""

    def __init__(
        self,
        agent: AgentAdapter,
        prompt: str = DEFAULT_SPEECH_TURN_PROMPT,
        timeout: float = DEFAULT_SPEECH_TURN_TIMEOUT,
    ):
        self.agent = agent
        self.prompt = prompt
        self.timeout = timeout
        self._reply: Optional[asyncio.Future] = None

    async def run(self, text: str) -> str:
        """
        Ask the agent and wait for its first audio reply.

        Args:
            text: The caller's recognised speech

        Returns:
            str: Base64-encoded audio of the agent's reply

        Raises:
            AgentConnectionError: If the agent cannot be reached or hangs up first
            AgentTimeoutError: If no audio arrives within the timeout
        """
        self._reply = asyncio.get_running_loop().create_future()
        self.agent.set_handlers(self._on_event, self._on_close)

        try:
            await self.agent.connect(self.prompt)
            logger.info(f"[ElevenLabs] Sending text message: {text}")
            await self.agent.send_user_text(text)
            try:
                return await asyncio.wait_for(self._reply, timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise AgentTimeoutError(
                    f"No agent audio within {self.timeout}s"
                ) from e
        finally:
            if not self._reply.done():
                self._reply.cancel()
            await self.agent.close()

    async def _on_event(self, event: AgentEvent) -> None:
        if isinstance(event, PingEvent):
            await self.agent.send_pong(event.event_id)
        elif isinstance(event, AudioChunkEvent):
            if not self._reply.done():
                self._reply.set_result(event.payload)
        else:
            logger.debug(f"[ElevenLabs] Speech turn ignoring {type(event).__name__}")

    async def _on_close(self) -> None:
        if self._reply is not None and not self._reply.done():
            self._reply.set_exception(
                AgentConnectionError("Agent closed the conversation before replying")
            )
