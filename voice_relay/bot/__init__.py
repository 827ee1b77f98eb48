"""
Bot module bridging Twilio phone calls to ElevenLabs Conversational AI agents.

Key components:
- TelephonyAdapter: the inbound Twilio Media Streams WebSocket of one call.
- AgentAdapter: the outbound ElevenLabs WebSocket of one call, including signed-URL
  bring-up and the initiation handshake.
- RelaySession: owns one adapter of each kind, runs the session state machine and
  translates audio, barge-in and keepalive events between the two.
- SpeechTurn: the request/response alternative used with Twilio <Gather>.

Usage examples:
```python
from voice_relay.bot import AgentAdapter, RelaySession, TelephonyAdapter

async def serve_call(websocket, signed_url_provider):
    session = RelaySession(
        TelephonyAdapter(websocket),
        AgentAdapter(signed_url_provider),
    )
    await session.run()
```
"""

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.bot.relay_session import RelaySession, SessionState
from voice_relay.bot.speech_turn import SpeechTurn
from voice_relay.bot.telephony_adapter import TelephonyAdapter

__all__ = ["AgentAdapter", "RelaySession", "SessionState", "SpeechTurn", "TelephonyAdapter"]
