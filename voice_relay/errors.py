"""Exceptions raised by the relay.

Every error kind is handled at the session boundary; none of them is allowed
to reach another call or the server process.
"""

from typing import Optional


class RelayError(Exception):
    default_detail: str = "Relay error"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationError(RelayError):
    default_detail = "Relay configuration is invalid"


class AgentConnectionError(RelayError):
    """The agent connection could not be brought up (signed URL or socket open)."""

    default_detail = "Could not connect to the conversational agent"


class ProtocolError(RelayError):
    """A single frame could not be decoded."""

    default_detail = "Malformed frame"

    def __init__(self, detail: Optional[str] = None, raw: Optional[str] = None) -> None:
        super().__init__(detail)
        self.raw = raw


class RoutingError(RelayError):
    """Agent output arrived before the telephony stream was known."""

    default_detail = "No telephony stream to route to"


class AgentTimeoutError(RelayError):
    default_detail = "Timed out waiting for the agent"


class CallPlacementError(RelayError):
    default_detail = "Failed to initiate call"
