"""
Models module for the two wire protocols bridged by the relay.

Key components:
- telephony_events: Twilio Media Streams frames. Inbound frames decode into the
  closed set StartEvent / MediaEvent / StopEvent / UnknownTelephonyEvent; outbound
  media and clear frames are typed models.
- agent_events: ElevenLabs Conversational AI frames. Inbound frames decode into
  InitiationMetadataEvent / AudioChunkEvent / InterruptionEvent / PingEvent /
  AgentResponseEvent / UserTranscriptEvent / UnknownAgentEvent; outbound messages
  cover the initiation handshake, user audio, pong and user text.

Usage examples:
```python
from voice_relay.models.telephony_events import decode_telephony_frame, StartEvent

event = decode_telephony_frame(raw_text)
if isinstance(event, StartEvent):
    print(event.stream_sid, event.prompt)
```
"""

from voice_relay.models.agent_events import (
    AgentEvent,
    AgentResponseEvent,
    AudioChunkEvent,
    InitiationMetadataEvent,
    InterruptionEvent,
    PingEvent,
    UnknownAgentEvent,
    UserTranscriptEvent,
    decode_agent_frame,
)
from voice_relay.models.telephony_events import (
    MediaEvent,
    StartEvent,
    StopEvent,
    TelephonyEvent,
    UnknownTelephonyEvent,
    decode_telephony_frame,
)
