"""
Signed-endpoint provider for the ElevenLabs Conversational AI backend.

Each call needs its own one-time-use, credential-bound WebSocket URL. The URL is
requested from the ElevenLabs REST API with the agent identifier and the API key
sent in the xi-api-key header.
"""

import asyncio
import logging

import requests

from voice_relay.config.constants import (
    LOGGER_NAME,
    SIGNED_URL_API_KEY_HEADER,
    SIGNED_URL_ENDPOINT,
    SIGNED_URL_REQUEST_TIMEOUT,
)
from voice_relay.config.settings import RelaySettings
from voice_relay.errors import AgentConnectionError

logger = logging.getLogger(LOGGER_NAME)


class SignedUrlProvider:
    """Fetches one-time connection URLs for a single agent."""

    def __init__(
        self,
        api_key: str,
        agent_id: str,
        endpoint: str = SIGNED_URL_ENDPOINT,
        timeout: float = SIGNED_URL_REQUEST_TIMEOUT,
    ):
        self.api_key = api_key
        self.agent_id = agent_id
        self.endpoint = endpoint
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "SignedUrlProvider":
        return cls(
            api_key=settings.elevenlabs_api_key,
            agent_id=settings.elevenlabs_agent_id,
            endpoint=settings.signed_url_endpoint,
        )

    def _request(self) -> requests.Response:
        return requests.get(
            self.endpoint,
            params={"agent_id": self.agent_id},
            headers={SIGNED_URL_API_KEY_HEADER: self.api_key},
            timeout=self.timeout,
        )

    async def get_signed_url(self) -> str:
        """
        Request a signed conversation URL.

        The blocking HTTP request runs in a worker thread so the event loop keeps
        serving other calls while this one waits.

        Returns:
            str: The wss:// URL to open for this conversation

        Raises:
            AgentConnectionError: If the request fails or the response has no URL
        """
        try:
            response = await asyncio.to_thread(self._request)
        except requests.RequestException as e:
            raise AgentConnectionError(f"Failed to get signed URL: {e}") from e

        if response.status_code != 200:
            raise AgentConnectionError(
                f"Failed to get signed URL: {response.status_code} {response.reason}"
            )

        try:
            signed_url = response.json().get("signed_url")
        except ValueError as e:
            raise AgentConnectionError("Signed URL response is not JSON") from e

        if not signed_url:
            raise AgentConnectionError("No signed_url in response")

        logger.debug(f"[ElevenLabs] Obtained signed URL for agent {self.agent_id}")
        return signed_url
