"""
Immutable relay configuration.

Settings are read once from environment variables, after loading a .env file
from the working directory when one exists. The resulting RelaySettings object
is injected into the session registry and the HTTP routes; nothing else is
shared between concurrent calls.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import dotenv

from voice_relay.config.constants import (
    DEFAULT_AGENT_CONNECT_TIMEOUT,
    DEFAULT_FIRST_MESSAGE,
    DEFAULT_PROMPT,
    DEFAULT_SPEECH_TURN_PROMPT,
    DEFAULT_SPEECH_TURN_TIMEOUT,
    SIGNED_URL_ENDPOINT,
    TWIML_MODE_GATHER,
    TWIML_MODE_STREAM,
)
from voice_relay.errors import ConfigurationError


@dataclass(frozen=True)
class RelaySettings:
    """Configuration for one relay process."""

    elevenlabs_api_key: str
    elevenlabs_agent_id: str
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    default_prompt: str = DEFAULT_PROMPT
    default_first_message: str = DEFAULT_FIRST_MESSAGE
    speech_turn_prompt: str = DEFAULT_SPEECH_TURN_PROMPT
    public_host: Optional[str] = None
    twiml_mode: str = TWIML_MODE_STREAM
    agent_connect_timeout: float = DEFAULT_AGENT_CONNECT_TIMEOUT
    speech_turn_timeout: float = DEFAULT_SPEECH_TURN_TIMEOUT
    signed_url_endpoint: str = SIGNED_URL_ENDPOINT
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.elevenlabs_api_key or not self.elevenlabs_agent_id:
            raise ConfigurationError(
                "Missing ELEVENLABS_API_KEY or ELEVENLABS_AGENT_ID in environment variables"
            )
        if self.twiml_mode not in (TWIML_MODE_STREAM, TWIML_MODE_GATHER):
            raise ConfigurationError(f"Unsupported TWIML_MODE: {self.twiml_mode}")
        if self.agent_connect_timeout <= 0 or self.speech_turn_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive")

    @property
    def twilio_configured(self) -> bool:
        """Whether outbound calls can be placed."""
        return bool(
            self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
    ) -> "RelaySettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (used by tests)
            env_file: .env file to load first; defaults to ./.env when it exists

        Returns:
            RelaySettings: The validated settings

        Raises:
            ConfigurationError: If a required value is missing or a value is invalid
        """
        if environ is None:
            env_path = env_file or Path(".") / ".env"
            if env_path.exists():
                dotenv.load_dotenv(env_path)
            environ = os.environ

        def _get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = environ.get(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        try:
            agent_connect_timeout = float(
                _get("AGENT_CONNECT_TIMEOUT", str(DEFAULT_AGENT_CONNECT_TIMEOUT))
            )
            speech_turn_timeout = float(
                _get("SPEECH_TURN_TIMEOUT", str(DEFAULT_SPEECH_TURN_TIMEOUT))
            )
            port = int(_get("PORT", "8000"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        return cls(
            elevenlabs_api_key=_get("ELEVENLABS_API_KEY", ""),
            elevenlabs_agent_id=_get("ELEVENLABS_AGENT_ID", ""),
            twilio_account_sid=_get("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=_get("TWILIO_AUTH_TOKEN"),
            twilio_phone_number=_get("TWILIO_PHONE_NUMBER"),
            default_prompt=_get("DEFAULT_PROMPT", DEFAULT_PROMPT),
            default_first_message=_get("DEFAULT_FIRST_MESSAGE", DEFAULT_FIRST_MESSAGE),
            speech_turn_prompt=_get("SPEECH_TURN_PROMPT", DEFAULT_SPEECH_TURN_PROMPT),
            public_host=_get("PUBLIC_HOST"),
            twiml_mode=_get("TWIML_MODE", TWIML_MODE_STREAM).lower(),
            agent_connect_timeout=agent_connect_timeout,
            speech_turn_timeout=speech_turn_timeout,
            signed_url_endpoint=_get("SIGNED_URL_ENDPOINT", SIGNED_URL_ENDPOINT),
            host=_get("HOST", "0.0.0.0"),
            port=port,
            log_level=_get("LOG_LEVEL", "INFO").upper(),
        )
