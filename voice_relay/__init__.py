"""
Voice Relay - Twilio to ElevenLabs Conversational AI Bridge

This application connects live telephone calls to a hosted ElevenLabs conversational
agent. For every call it keeps two real-time WebSocket connections open, one to
Twilio Media Streams and one to ElevenLabs, and translates events between them:
caller audio, agent audio, barge-in interruptions and keepalive pings.

Architecture Overview:
- FastAPI server exposing TwiML webhooks and media stream WebSocket endpoints
- One RelaySession per call, owning a telephony adapter and an agent adapter
- Signed, single-use ElevenLabs connection URLs fetched per call
- Audio payloads forwarded as opaque base64, without transcoding

Key Components:
- bot: adapters, the relay session state machine and the gather-mode speech turn
- config: constants, immutable settings and logging setup
- handlers: Twilio-facing HTTP and WebSocket routes
- models: typed frames for both wire protocols
- services: signed URL provider and Twilio call placement
- session_registry: creates one session per accepted media stream

Getting Started:
1. Set up environment variables (or a .env file):
   - ELEVENLABS_API_KEY, ELEVENLABS_AGENT_ID: required
   - TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER: for outbound calls
   - PORT, HOST, LOG_LEVEL: server options

2. Start the server:
   ```bash
   python run.py
   ```

3. Point your Twilio number's voice webhook at https://your-host/twilio/inbound_call
"""
