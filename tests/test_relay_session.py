import asyncio
import json

import pytest
from unittest.mock import AsyncMock, patch
from starlette.websockets import WebSocketDisconnect

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.bot.relay_session import RelaySession, SessionState
from voice_relay.bot.telephony_adapter import TelephonyAdapter
from voice_relay.errors import AgentConnectionError
from voice_relay.models.agent_events import AudioChunkEvent, InterruptionEvent

from conftest import media_frame, start_frame


@pytest.fixture
def session(telephony_socket, signed_url_provider):
    return RelaySession(
        TelephonyAdapter(telephony_socket),
        AgentAdapter(signed_url_provider, connect_timeout=1.0),
        default_prompt="default prompt",
        default_first_message="default hello",
    )


@pytest.fixture
def mock_connect(agent_socket):
    with patch("websockets.connect", new=AsyncMock(return_value=agent_socket)) as connect:
        yield connect


async def send_telephony(session, frame):
    await session.telephony._dispatch(json.dumps(frame))


async def send_agent(session, frame):
    await session.agent._dispatch(json.dumps(frame))


async def start_session(session, parameters=None):
    await send_telephony(session, start_frame(parameters=parameters))
    await session._connect_task


@pytest.mark.asyncio
async def test_start_connects_agent_with_call_parameters(session, agent_socket, mock_connect):
    """Start moves the session to active and sends the per-call prompt and first message"""
    assert session.state is SessionState.IDLE

    await send_telephony(session, start_frame(parameters={"prompt": "P", "first_message": "F"}))
    assert session.state is SessionState.CONNECTING
    await session._connect_task

    assert session.state is SessionState.ACTIVE
    assert session.stream_sid == "MZ0001"
    assert session.call_sid == "CA0001"
    agent_config = agent_socket.sent_messages[0]["conversation_config_override"]["agent"]
    assert agent_config == {"prompt": {"prompt": "P"}, "first_message": "F"}


@pytest.mark.asyncio
async def test_start_without_parameters_uses_defaults(session, agent_socket, mock_connect):
    await start_session(session)

    agent_config = agent_socket.sent_messages[0]["conversation_config_override"]["agent"]
    assert agent_config == {"prompt": {"prompt": "default prompt"}, "first_message": "default hello"}


@pytest.mark.asyncio
async def test_caller_audio_is_forwarded_verbatim(session, agent_socket, mock_connect):
    await start_session(session)

    await send_telephony(session, media_frame("f/8AAP//"))
    await send_telephony(session, media_frame("AAAA"))

    assert agent_socket.sent_messages[1:] == [
        {"user_audio_chunk": "f/8AAP//"},
        {"user_audio_chunk": "AAAA"},
    ]


@pytest.mark.asyncio
async def test_caller_audio_dropped_while_connecting(session, agent_socket, mock_connect):
    await send_telephony(session, start_frame())
    await send_telephony(session, media_frame("EARLY"))
    await session._connect_task

    assert {"user_audio_chunk": "EARLY"} not in agent_socket.sent_messages
    assert len(agent_socket.sent_messages) == 1


@pytest.mark.asyncio
async def test_agent_audio_is_routed_to_call(session, telephony_socket, mock_connect):
    await start_session(session)

    await send_agent(session, {"type": "audio", "audio_event": {"audio_base_64": "QUJD"}})

    assert telephony_socket.sent_messages == [
        {"event": "media", "streamSid": "MZ0001", "media": {"payload": "QUJD"}}
    ]


@pytest.mark.asyncio
async def test_interruption_sends_exactly_one_clear(session, telephony_socket, mock_connect):
    await start_session(session)

    await send_agent(session, {"type": "interruption", "interruption_event": {"event_id": 1}})

    assert telephony_socket.sent_messages == [{"event": "clear", "streamSid": "MZ0001"}]


@pytest.mark.asyncio
async def test_ping_is_answered_with_matching_pong(session, agent_socket, telephony_socket, mock_connect):
    await start_session(session)

    await send_agent(session, {"type": "ping", "ping_event": {"event_id": 42}})

    assert agent_socket.sent_messages[-1] == {"type": "pong", "event_id": 42}
    assert telephony_socket.sent_messages == []


@pytest.mark.asyncio
async def test_agent_output_before_start_is_dropped(session, telephony_socket):
    await session.handle_agent_event(AudioChunkEvent(payload="QUJD"))
    await session.handle_agent_event(InterruptionEvent())

    assert telephony_socket.sent_messages == []
    assert session.state is SessionState.IDLE


@pytest.mark.asyncio
async def test_duplicate_start_is_ignored(session, agent_socket, mock_connect):
    await start_session(session)

    await send_telephony(session, start_frame(stream_sid="MZ9999"))

    assert session.stream_sid == "MZ0001"
    assert mock_connect.await_count == 1


@pytest.mark.asyncio
async def test_stop_closes_both_sides_once(session, agent_socket, telephony_socket, mock_connect):
    await start_session(session)

    await send_telephony(session, {"event": "stop"})
    await send_telephony(session, {"event": "stop"})

    assert session.state is SessionState.CLOSED
    assert agent_socket.close_count == 1
    assert telephony_socket.close_codes == [1000]


@pytest.mark.asyncio
async def test_agent_disconnect_closes_call(session, agent_socket, telephony_socket, mock_connect):
    await start_session(session)

    agent_socket.incoming.put_nowait(None)
    await session.agent._recv_task

    assert session.state is SessionState.CLOSED
    assert telephony_socket.close_codes == [1000]


@pytest.mark.asyncio
async def test_agent_connect_failure_closes_session(session, signed_url_provider, telephony_socket):
    signed_url_provider.get_signed_url.side_effect = AgentConnectionError("403 Forbidden")

    await start_session(session)

    assert session.state is SessionState.CLOSED
    assert telephony_socket.close_codes == [1000]


@pytest.mark.asyncio
async def test_output_after_close_is_not_sent(session, telephony_socket, mock_connect):
    await start_session(session)
    await session.close("test")

    await session.handle_agent_event(AudioChunkEvent(payload="LATE"))

    assert telephony_socket.sent_messages == []


@pytest.mark.asyncio
async def test_run_serves_call_until_disconnect(session, telephony_socket, agent_socket, mock_connect):
    telephony_socket.incoming.put_nowait(json.dumps({"event": "connected", "protocol": "Call"}))
    telephony_socket.incoming.put_nowait(json.dumps(start_frame()))
    telephony_socket.incoming.put_nowait(None)

    await session.run()

    assert session.state is SessionState.CLOSED
    assert session.stream_sid == "MZ0001"
    assert session._connect_task.done()


@pytest.mark.asyncio
async def test_close_before_start_closes_telephony(session, telephony_socket):
    await session.close("shutdown")

    assert session.state is SessionState.CLOSED
    assert telephony_socket.close_codes == [1000]


@pytest.mark.asyncio
async def test_nothing_is_sent_after_stop(session, agent_socket, telephony_socket, mock_connect):
    await start_session(session, parameters={"prompt": "p", "firstMessage": "hi"})
    sent_to_agent = len(agent_socket.sent_messages)

    await send_telephony(session, {"event": "stop"})
    await send_telephony(session, media_frame("QUJD"))
    await session.handle_agent_event(AudioChunkEvent(payload="ZGVm"))
    await session.handle_agent_event(InterruptionEvent())

    assert len(agent_socket.sent_messages) == sent_to_agent
    assert telephony_socket.sent_messages == []
    assert agent_socket.sent_messages[0]["conversation_config_override"]["agent"]["first_message"] == "hi"


@pytest.mark.asyncio
async def test_close_reaches_closed_when_call_socket_already_gone(session, telephony_socket, mock_connect):
    await start_session(session)
    telephony_socket.close_error = WebSocketDisconnect(code=1006)

    await session.close("agent closed")

    assert session.state is SessionState.CLOSED
    assert telephony_socket.close_codes == [1000]


@pytest.mark.asyncio
async def test_close_reaches_closed_when_agent_close_fails(session, telephony_socket, mock_connect):
    await start_session(session)
    session.agent.close = AsyncMock(side_effect=OSError("network down"))

    await session.close("stop received")

    assert session.state is SessionState.CLOSED
    assert telephony_socket.close_codes == [1000]
    await AgentAdapter.close(session.agent)


@pytest.mark.asyncio
async def test_hangup_while_connecting_cancels_agent_bring_up(session, telephony_socket, agent_socket):
    connect_started = asyncio.Event()

    async def slow_connect(*args, **kwargs):
        connect_started.set()
        await asyncio.Event().wait()

    telephony_socket.incoming.put_nowait(json.dumps(start_frame()))

    async def hang_up():
        await connect_started.wait()
        telephony_socket.incoming.put_nowait(None)

    with patch("websockets.connect", new=slow_connect):
        hangup_task = asyncio.create_task(hang_up())
        await session.run()
        await hangup_task

    assert session.state is SessionState.CLOSED
    assert session._connect_task.cancelled()
    assert agent_socket.sent_messages == []
    assert not session.agent.is_open
