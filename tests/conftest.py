import asyncio
import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState
from websockets.exceptions import ConnectionClosedOK

from voice_relay.config.settings import RelaySettings

SIGNED_URL = "wss://api.elevenlabs.io/v1/convai/conversation?agent_id=agent-123&token=abc"


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeTelephonySocket:
    """Stands in for the FastAPI WebSocket Twilio connects to."""

    def __init__(self, frames=None):
        self.incoming = asyncio.Queue()
        for frame in frames or []:
            self.incoming.put_nowait(frame)
        self.sent_messages = []
        self.application_state = WebSocketState.CONNECTED
        self.accepted = False
        self.close_codes = []
        self.fail_sends = False
        self.close_error = None

    async def accept(self):
        self.accepted = True

    async def receive(self):
        frame = await self.incoming.get()
        if frame is None:
            self.application_state = WebSocketState.DISCONNECTED
            return {"type": "websocket.disconnect", "code": 1000}
        if isinstance(frame, bytes):
            return {"type": "websocket.receive", "bytes": frame}
        text = frame if isinstance(frame, str) else json.dumps(frame)
        return {"type": "websocket.receive", "text": text}

    async def send_text(self, data):
        if self.fail_sends:
            raise RuntimeError("Cannot call \"send\" once a close message has been sent.")
        self.sent_messages.append(json.loads(data))

    async def close(self, code=1000):
        self.close_codes.append(code)
        if self.close_error is not None:
            raise self.close_error
        self.application_state = WebSocketState.DISCONNECTED
        self.incoming.put_nowait(None)


class FakeAgentSocket:
    """Stands in for a websockets client connection to ElevenLabs."""

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent_messages = []
        self.close_count = 0
        self.closed = False

    async def send(self, message):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent_messages.append(json.loads(message))

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self.incoming.get()
        if frame is None:
            raise StopAsyncIteration
        return frame if isinstance(frame, str) else json.dumps(frame)

    async def close(self):
        self.close_count += 1
        self.closed = True
        self.incoming.put_nowait(None)


def start_frame(stream_sid="MZ0001", call_sid="CA0001", parameters=None):
    start = {"streamSid": stream_sid, "callSid": call_sid}
    if parameters is not None:
        start["customParameters"] = parameters
    return {"event": "start", "sequenceNumber": "1", "start": start}


def media_frame(payload="AAAA"):
    return {"event": "media", "media": {"track": "inbound", "payload": payload}}


@pytest.fixture
def settings():
    return RelaySettings(
        elevenlabs_api_key="test-key",
        elevenlabs_agent_id="agent-123",
    )


@pytest.fixture
def twilio_settings():
    return RelaySettings(
        elevenlabs_api_key="test-key",
        elevenlabs_agent_id="agent-123",
        twilio_account_sid="AC123",
        twilio_auth_token="secret",
        twilio_phone_number="+15550001111",
        public_host="relay.example.com",
    )


@pytest.fixture
def signed_url_provider():
    provider = MagicMock()
    provider.get_signed_url = AsyncMock(return_value=SIGNED_URL)
    return provider


@pytest.fixture
def telephony_socket():
    return FakeTelephonySocket()


@pytest.fixture
def agent_socket():
    return FakeAgentSocket()
