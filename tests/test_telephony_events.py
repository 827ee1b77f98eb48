import json

import pytest

from voice_relay.errors import ProtocolError
from voice_relay.models.telephony_events import (
    MediaEvent,
    StartEvent,
    StopEvent,
    UnknownTelephonyEvent,
    build_clear_frame,
    build_media_frame,
    decode_telephony_frame,
)

from conftest import media_frame, start_frame


def test_decode_start_with_parameters():
    """Start frames carry the stream/call ids and the custom parameters"""
    raw = json.dumps(start_frame(parameters={"prompt": "be brief", "first_message": "Hi!"}))

    event = decode_telephony_frame(raw)

    assert isinstance(event, StartEvent)
    assert event.stream_sid == "MZ0001"
    assert event.call_sid == "CA0001"
    assert event.prompt == "be brief"
    assert event.first_message == "Hi!"


def test_decode_start_without_custom_parameters():
    event = decode_telephony_frame(json.dumps(start_frame()))

    assert isinstance(event, StartEvent)
    assert event.parameters == {}
    assert event.prompt is None
    assert event.first_message is None


def test_start_accepts_camel_case_first_message():
    event = decode_telephony_frame(json.dumps(start_frame(parameters={"firstMessage": "Hello"})))
    assert event.first_message == "Hello"


def test_start_treats_empty_parameters_as_absent():
    event = decode_telephony_frame(json.dumps(start_frame(parameters={"prompt": "", "first_message": ""})))
    assert event.prompt is None
    assert event.first_message is None


def test_decode_media_keeps_payload_verbatim():
    event = decode_telephony_frame(json.dumps(media_frame("f/8AAP//")))

    assert isinstance(event, MediaEvent)
    assert event.payload == "f/8AAP//"


def test_decode_stop():
    assert isinstance(decode_telephony_frame('{"event": "stop", "stop": {}}'), StopEvent)


@pytest.mark.parametrize("event_name", ["connected", "mark", "dtmf"])
def test_unhandled_events_decode_to_unknown(event_name):
    raw = json.dumps({"event": event_name})

    event = decode_telephony_frame(raw)

    assert isinstance(event, UnknownTelephonyEvent)
    assert event.event == event_name
    assert event.raw == raw


def test_invalid_json_raises_protocol_error():
    with pytest.raises(ProtocolError) as exc_info:
        decode_telephony_frame("{not json")
    assert exc_info.value.raw == "{not json"


def test_non_object_frame_raises_protocol_error():
    with pytest.raises(ProtocolError):
        decode_telephony_frame("[1, 2, 3]")


def test_start_missing_stream_sid_raises_protocol_error():
    with pytest.raises(ProtocolError):
        decode_telephony_frame(json.dumps({"event": "start", "start": {"callSid": "CA1"}}))


def test_media_missing_payload_raises_protocol_error():
    with pytest.raises(ProtocolError):
        decode_telephony_frame(json.dumps({"event": "media", "media": {}}))


def test_outbound_media_frame_shape():
    frame = build_media_frame("MZ0001", "QUJD")
    assert json.loads(frame.model_dump_json()) == {
        "event": "media",
        "streamSid": "MZ0001",
        "media": {"payload": "QUJD"},
    }


def test_outbound_clear_frame_shape():
    frame = build_clear_frame("MZ0001")
    assert json.loads(frame.model_dump_json()) == {"event": "clear", "streamSid": "MZ0001"}
