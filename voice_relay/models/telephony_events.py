"""
Pydantic models for the Twilio Media Streams WebSocket protocol.

Inbound frames are validated against the wire models below and then turned into
one of the closed set of TelephonyEvent variants the relay session understands.
Outbound frames (media, clear) are built from typed models as well, so every
frame the relay sends is validated before it reaches the call leg.
"""

import json
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from voice_relay.config.constants import (
    PARAM_FIRST_MESSAGE,
    PARAM_FIRST_MESSAGE_ALIAS,
    PARAM_PROMPT,
    TELEPHONY_EVENT_CLEAR,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)
from voice_relay.errors import ProtocolError


# Wire models (inbound)
class StartPayload(BaseModel):
    """Body of the Twilio start frame."""

    streamSid: str = Field(..., min_length=1, description="Media stream identifier")
    callSid: str = Field(..., min_length=1, description="Call identifier")
    customParameters: Dict[str, str] = Field(
        default_factory=dict, description="<Parameter> values attached in TwiML"
    )

    @field_validator("customParameters", mode="before")
    def default_parameters(cls, v):
        """Twilio omits customParameters when none were attached."""
        return {} if v is None else v


class StartFrame(BaseModel):
    event: Literal["start"]
    start: StartPayload


class MediaPayload(BaseModel):
    payload: str = Field(..., description="Base64-encoded audio data")


class MediaFrame(BaseModel):
    event: Literal["media"]
    media: MediaPayload


class StopFrame(BaseModel):
    event: Literal["stop"]


# Event variants delivered to the relay session
class StartEvent(BaseModel):
    """The media stream has started; identifiers are now known."""

    kind: Literal["start"] = "start"
    stream_sid: str
    call_sid: str
    parameters: Dict[str, str] = Field(default_factory=dict)

    @property
    def prompt(self) -> Optional[str]:
        return self.parameters.get(PARAM_PROMPT) or None

    @property
    def first_message(self) -> Optional[str]:
        return (
            self.parameters.get(PARAM_FIRST_MESSAGE)
            or self.parameters.get(PARAM_FIRST_MESSAGE_ALIAS)
            or None
        )


class MediaEvent(BaseModel):
    kind: Literal["media"] = "media"
    payload: str


class StopEvent(BaseModel):
    kind: Literal["stop"] = "stop"


class UnknownTelephonyEvent(BaseModel):
    """Any frame the relay does not act on, including frames that failed to decode."""

    kind: Literal["unknown"] = "unknown"
    raw: str
    event: Optional[str] = None


TelephonyEvent = Union[StartEvent, MediaEvent, StopEvent, UnknownTelephonyEvent]


# Outbound frames
class OutboundMedia(BaseModel):
    payload: str = Field(..., min_length=1, description="Base64-encoded audio data")


class OutboundMediaFrame(BaseModel):
    """Audio to be played to the caller."""

    event: Literal["media"] = TELEPHONY_EVENT_MEDIA
    streamSid: str = Field(..., min_length=1)
    media: OutboundMedia


class OutboundClearFrame(BaseModel):
    """Instructs the call leg to discard any buffered playback."""

    event: Literal["clear"] = TELEPHONY_EVENT_CLEAR
    streamSid: str = Field(..., min_length=1)


def build_media_frame(stream_sid: str, payload: str) -> OutboundMediaFrame:
    return OutboundMediaFrame(streamSid=stream_sid, media=OutboundMedia(payload=payload))


def build_clear_frame(stream_sid: str) -> OutboundClearFrame:
    return OutboundClearFrame(streamSid=stream_sid)


def decode_telephony_frame(text: Union[str, bytes]) -> TelephonyEvent:
    """
    Decode a raw Twilio frame into a TelephonyEvent.

    Frames with an event tag the relay does not act on (connected, mark, dtmf...)
    decode to UnknownTelephonyEvent.

    Args:
        text: The raw frame as received on the WebSocket

    Returns:
        The decoded event variant

    Raises:
        ProtocolError: If the frame is not JSON or a known frame fails validation
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")

    try:
        message: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON: {e}", raw=text) from e
    if not isinstance(message, dict):
        raise ProtocolError("Frame is not a JSON object", raw=text)

    event = message.get("event")
    try:
        if event == TELEPHONY_EVENT_START:
            frame = StartFrame.model_validate(message)
            return StartEvent(
                stream_sid=frame.start.streamSid,
                call_sid=frame.start.callSid,
                parameters=frame.start.customParameters,
            )
        if event == TELEPHONY_EVENT_MEDIA:
            frame = MediaFrame.model_validate(message)
            return MediaEvent(payload=frame.media.payload)
        if event == TELEPHONY_EVENT_STOP:
            StopFrame.model_validate(message)
            return StopEvent()
    except ValidationError as e:
        raise ProtocolError(f"Invalid {event} frame: {e}", raw=text) from e

    return UnknownTelephonyEvent(raw=text, event=event if isinstance(event, str) else None)
