"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol tags, endpoint URLs and defaults so the
relay, the adapters and the HTTP routes agree on the same names.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# ElevenLabs Conversational AI endpoints
SIGNED_URL_ENDPOINT = "https://api.elevenlabs.io/v1/convai/conversation/get_signed_url"
SIGNED_URL_API_KEY_HEADER = "xi-api-key"

# Default agent configuration sent in the initiation handshake
DEFAULT_PROMPT = "you are a gary from the phone store"
DEFAULT_FIRST_MESSAGE = "hey there! how can I help you today?"
DEFAULT_SPEECH_TURN_PROMPT = "you are a helpful AI assistant"

# Timeouts (seconds)
DEFAULT_AGENT_CONNECT_TIMEOUT = 10.0
DEFAULT_SPEECH_TURN_TIMEOUT = 10.0
SIGNED_URL_REQUEST_TIMEOUT = 10.0

# WebSocket configuration for the agent connection
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 20
WS_CLOSE_TIMEOUT = 5

# Close code used when the registry is not accepting sessions
WS_CLOSE_TRY_AGAIN_LATER = 1013

# TwiML modes
TWIML_MODE_STREAM = "stream"
TWIML_MODE_GATHER = "gather"

# Telephony (Twilio Media Streams) event tags
TELEPHONY_EVENT_START = "start"
TELEPHONY_EVENT_MEDIA = "media"
TELEPHONY_EVENT_STOP = "stop"
TELEPHONY_EVENT_CLEAR = "clear"

# Telephony custom parameter names
PARAM_PROMPT = "prompt"
PARAM_FIRST_MESSAGE = "first_message"
PARAM_FIRST_MESSAGE_ALIAS = "firstMessage"

# Agent (ElevenLabs) message type tags
AGENT_MESSAGE_INITIATION_CLIENT_DATA = "conversation_initiation_client_data"
AGENT_MESSAGE_INITIATION_METADATA = "conversation_initiation_metadata"
AGENT_MESSAGE_AUDIO = "audio"
AGENT_MESSAGE_INTERRUPTION = "interruption"
AGENT_MESSAGE_PING = "ping"
AGENT_MESSAGE_PONG = "pong"
AGENT_MESSAGE_AGENT_RESPONSE = "agent_response"
AGENT_MESSAGE_USER_TRANSCRIPT = "user_transcript"
AGENT_MESSAGE_TEXT = "text"
