"""
Pydantic models for the ElevenLabs Conversational AI WebSocket protocol.

This module defines the inbound event variants the relay reacts to and the
outbound messages it sends: the one-time initiation handshake, user audio,
keepalive pongs and user text for the request/response speech path.
"""

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from voice_relay.config.constants import (
    AGENT_MESSAGE_AGENT_RESPONSE,
    AGENT_MESSAGE_AUDIO,
    AGENT_MESSAGE_INITIATION_CLIENT_DATA,
    AGENT_MESSAGE_INITIATION_METADATA,
    AGENT_MESSAGE_INTERRUPTION,
    AGENT_MESSAGE_PING,
    AGENT_MESSAGE_PONG,
    AGENT_MESSAGE_TEXT,
    AGENT_MESSAGE_USER_TRANSCRIPT,
)
from voice_relay.errors import ProtocolError

EventId = Union[int, str]


# Wire models (inbound)
class AudioBody(BaseModel):
    chunk: Optional[str] = None


class AudioEventBody(BaseModel):
    audio_base_64: Optional[str] = None


class AudioFrame(BaseModel):
    type: Literal["audio"]
    audio: Optional[AudioBody] = None
    audio_event: Optional[AudioEventBody] = None


class PingBody(BaseModel):
    event_id: Optional[EventId] = None


class PingFrame(BaseModel):
    type: Literal["ping"]
    ping_event: Optional[PingBody] = None


class InitiationMetadataBody(BaseModel):
    conversation_id: Optional[str] = None


class InitiationMetadataFrame(BaseModel):
    type: Literal["conversation_initiation_metadata"]
    conversation_initiation_metadata_event: Optional[InitiationMetadataBody] = None


class AgentResponseBody(BaseModel):
    agent_response: Optional[str] = None


class AgentResponseFrame(BaseModel):
    type: Literal["agent_response"]
    agent_response_event: Optional[AgentResponseBody] = None


class UserTranscriptionBody(BaseModel):
    user_transcript: Optional[str] = None


class UserTranscriptFrame(BaseModel):
    type: Literal["user_transcript"]
    user_transcription_event: Optional[UserTranscriptionBody] = None


# Event variants delivered to the relay session
class InitiationMetadataEvent(BaseModel):
    kind: Literal["initiation_metadata"] = "initiation_metadata"
    conversation_id: Optional[str] = None


class AudioChunkEvent(BaseModel):
    kind: Literal["audio_chunk"] = "audio_chunk"
    payload: str


class InterruptionEvent(BaseModel):
    kind: Literal["interruption"] = "interruption"


class PingEvent(BaseModel):
    kind: Literal["ping"] = "ping"
    event_id: EventId


class AgentResponseEvent(BaseModel):
    kind: Literal["agent_response"] = "agent_response"
    text: str = ""


class UserTranscriptEvent(BaseModel):
    kind: Literal["user_transcript"] = "user_transcript"
    text: str = ""


class UnknownAgentEvent(BaseModel):
    kind: Literal["unknown"] = "unknown"
    raw: str
    type: Optional[str] = None


AgentEvent = Union[
    InitiationMetadataEvent,
    AudioChunkEvent,
    InterruptionEvent,
    PingEvent,
    AgentResponseEvent,
    UserTranscriptEvent,
    UnknownAgentEvent,
]


# Outbound messages
class PromptOverride(BaseModel):
    prompt: str


class AgentOverride(BaseModel):
    prompt: PromptOverride
    first_message: Optional[str] = None


class ConversationConfigOverride(BaseModel):
    agent: AgentOverride


class ConversationInitiationClientData(BaseModel):
    """The one-time handshake that configures the agent for this call."""

    type: Literal["conversation_initiation_client_data"] = AGENT_MESSAGE_INITIATION_CLIENT_DATA
    conversation_config_override: ConversationConfigOverride


class UserAudioChunkMessage(BaseModel):
    user_audio_chunk: str = Field(..., description="Base64-encoded caller audio")


class PongMessage(BaseModel):
    type: Literal["pong"] = AGENT_MESSAGE_PONG
    event_id: EventId


class UserTextMessage(BaseModel):
    type: Literal["text"] = AGENT_MESSAGE_TEXT
    text: str


def build_initiation_message(
    prompt: str, first_message: Optional[str] = None
) -> ConversationInitiationClientData:
    """
    Build the initiation handshake.

    Args:
        prompt: System prompt for the agent
        first_message: Opening utterance; omitted from the message when None

    Returns:
        The conversation_initiation_client_data message
    """
    return ConversationInitiationClientData(
        conversation_config_override=ConversationConfigOverride(
            agent=AgentOverride(
                prompt=PromptOverride(prompt=prompt),
                first_message=first_message,
            )
        )
    )


def decode_agent_frame(text: Union[str, bytes]) -> AgentEvent:
    """
    Decode a raw ElevenLabs frame into an AgentEvent.

    Frames of an unknown type, audio frames without a payload and pings without
    an event id decode to UnknownAgentEvent.

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

    message_type = message.get("type")
    unknown = UnknownAgentEvent(
        raw=text, type=message_type if isinstance(message_type, str) else None
    )

    try:
        if message_type == AGENT_MESSAGE_INITIATION_METADATA:
            frame = InitiationMetadataFrame.model_validate(message)
            body = frame.conversation_initiation_metadata_event
            return InitiationMetadataEvent(conversation_id=body.conversation_id if body else None)

        if message_type == AGENT_MESSAGE_AUDIO:
            frame = AudioFrame.model_validate(message)
            payload = (frame.audio.chunk if frame.audio else None) or (
                frame.audio_event.audio_base_64 if frame.audio_event else None
            )
            return AudioChunkEvent(payload=payload) if payload else unknown

        if message_type == AGENT_MESSAGE_INTERRUPTION:
            return InterruptionEvent()

        if message_type == AGENT_MESSAGE_PING:
            frame = PingFrame.model_validate(message)
            event_id = frame.ping_event.event_id if frame.ping_event else None
            if event_id is None or event_id == "":
                return unknown
            return PingEvent(event_id=event_id)

        if message_type == AGENT_MESSAGE_AGENT_RESPONSE:
            frame = AgentResponseFrame.model_validate(message)
            body = frame.agent_response_event
            return AgentResponseEvent(text=(body.agent_response if body else None) or "")

        if message_type == AGENT_MESSAGE_USER_TRANSCRIPT:
            frame = UserTranscriptFrame.model_validate(message)
            body = frame.user_transcription_event
            return UserTranscriptEvent(text=(body.user_transcript if body else None) or "")
    except ValidationError as e:
        raise ProtocolError(f"Invalid {message_type} frame: {e}", raw=text) from e

    return unknown


def to_wire(message: BaseModel) -> str:
    """Serialize an outbound message, dropping unset optional fields."""
    return message.model_dump_json(exclude_none=True)
