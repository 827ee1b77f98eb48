"""
Twilio-facing HTTP and WebSocket routes.

This module provides:
- TwiML webhooks that route inbound and outbound calls to the media stream relay.
- An endpoint that places outbound calls carrying a per-call prompt and opening line.
- The request/response speech endpoint used in gather mode.
- The two media stream WebSocket endpoints, both served by the session registry.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, Response, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from voice_relay.bot.agent_adapter import AgentAdapter
from voice_relay.bot.speech_turn import SpeechTurn
from voice_relay.config.constants import LOGGER_NAME, PARAM_FIRST_MESSAGE, PARAM_PROMPT, TWIML_MODE_GATHER
from voice_relay.config.settings import RelaySettings
from voice_relay.errors import CallPlacementError, RelayError
from voice_relay.services.twilio_calls import (
    OutboundCallPlacer,
    error_twiml,
    gather_twiml,
    outbound_twiml_url,
    play_audio_twiml,
    stream_twiml,
)

logger = logging.getLogger(LOGGER_NAME)

router = APIRouter(tags=["twilio"])

PROCESS_SPEECH_PATH = "/process-speech"


class OutboundCallRequest(BaseModel):
    number: Optional[str] = Field(None, description="E.164 phone number to call")
    prompt: Optional[str] = Field(None, description="Agent prompt for this call")
    first_message: Optional[str] = Field(None, description="Agent opening utterance")


class OutboundCallResponse(BaseModel):
    success: bool
    message: str
    callSid: str


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def get_call_placer(request: Request) -> Optional[OutboundCallPlacer]:
    return request.app.state.call_placer


def get_speech_turn(request: Request) -> SpeechTurn:
    settings: RelaySettings = request.app.state.settings
    agent = AgentAdapter(
        request.app.state.registry.signed_url_provider,
        connect_timeout=settings.agent_connect_timeout,
    )
    return SpeechTurn(agent, prompt=settings.speech_turn_prompt, timeout=settings.speech_turn_timeout)


def public_host(request: Request, settings: RelaySettings) -> str:
    """Host name Twilio should use to reach this service."""
    return settings.public_host or request.headers.get("host", "localhost")


def _twiml(xml: str) -> Response:
    return Response(content=xml, media_type="text/xml")


@router.api_route("/twilio/inbound_call", methods=["GET", "POST"])
async def inbound_call(request: Request, settings: RelaySettings = Depends(get_settings)) -> Response:
    """Route an inbound call to the media stream relay with default agent settings."""
    host = public_host(request, settings)
    return _twiml(stream_twiml(f"wss://{host}/media-stream"))


@router.post("/outbound-call")
async def outbound_call(
    payload: OutboundCallRequest,
    request: Request,
    settings: RelaySettings = Depends(get_settings),
    call_placer: Optional[OutboundCallPlacer] = Depends(get_call_placer),
):
    """Place an outbound call whose media stream will carry the given prompt and first message."""
    if not payload.number:
        return JSONResponse(status_code=400, content={"error": "Phone number is required"})
    if call_placer is None:
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": "Twilio is not configured"},
        )

    twiml_url = outbound_twiml_url(public_host(request, settings), payload.prompt, payload.first_message)
    try:
        call_sid = await call_placer.place_call(payload.number, twiml_url)
    except CallPlacementError as e:
        logger.error(f"[Twilio] Error initiating outbound call: {e.detail}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to initiate call"},
        )

    return OutboundCallResponse(success=True, message="Call initiated", callSid=call_sid)


@router.api_route("/outbound-call-twiml", methods=["GET", "POST"])
async def outbound_call_twiml(
    request: Request,
    prompt: str = "",
    first_message: str = "",
    settings: RelaySettings = Depends(get_settings),
) -> Response:
    """TwiML fetched by Twilio once an outbound call connects."""
    if settings.twiml_mode == TWIML_MODE_GATHER:
        return _twiml(gather_twiml(first_message, PROCESS_SPEECH_PATH))

    host = public_host(request, settings)
    return _twiml(
        stream_twiml(
            f"wss://{host}/outbound-media-stream",
            {PARAM_PROMPT: prompt, PARAM_FIRST_MESSAGE: first_message},
        )
    )


@router.post(PROCESS_SPEECH_PATH)
async def process_speech(
    SpeechResult: str = Form(""),
    speech_turn: SpeechTurn = Depends(get_speech_turn),
) -> Response:
    """Answer one recognised utterance with the agent's spoken reply."""
    try:
        audio = await speech_turn.run(SpeechResult)
    except RelayError as e:
        logger.error(f"[ElevenLabs] Error processing speech: {e.detail}")
        return _twiml(error_twiml())

    return _twiml(play_audio_twiml(audio, PROCESS_SPEECH_PATH))


@router.websocket("/media-stream")
async def media_stream(websocket: WebSocket) -> None:
    await websocket.app.state.registry.handle_websocket(websocket)


@router.websocket("/outbound-media-stream")
async def outbound_media_stream(websocket: WebSocket) -> None:
    await websocket.app.state.registry.handle_websocket(websocket)
