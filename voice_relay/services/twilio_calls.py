"""
Twilio Voice helpers: outbound call placement and TwiML generation.

The relay itself only speaks the Media Streams WebSocket protocol. These helpers
produce the call-routing markup that makes Twilio open that WebSocket, and place
outbound calls that will eventually be routed the same way.
"""

import asyncio
import logging
from typing import Dict, Optional
from urllib.parse import urlencode

import requests
from twilio.base.exceptions import TwilioException
from twilio.rest import Client
from twilio.twiml.voice_response import Connect, Gather, VoiceResponse

from voice_relay.config.constants import LOGGER_NAME, PARAM_FIRST_MESSAGE, PARAM_PROMPT
from voice_relay.config.settings import RelaySettings
from voice_relay.errors import CallPlacementError, ConfigurationError

logger = logging.getLogger(LOGGER_NAME)

SPEECH_GATHER_TIMEOUT = 5
SPEECH_ERROR_MESSAGE = "Sorry, there was an error processing your request."
SPEECH_CONTINUE_MESSAGE = "Please continue..."


class OutboundCallPlacer:
    """Places outbound calls through the Twilio REST API."""

    def __init__(self, settings: RelaySettings, client: Optional[Client] = None):
        if not settings.twilio_configured:
            raise ConfigurationError("Twilio credentials are not configured")
        self.from_number = settings.twilio_phone_number
        self.client = client or Client(settings.twilio_account_sid, settings.twilio_auth_token)

    async def place_call(self, to_number: str, twiml_url: str) -> str:
        """
        Dial a number and point the answered call at a TwiML URL.

        Args:
            to_number: E.164 destination number
            twiml_url: URL Twilio fetches once the call connects

        Returns:
            str: The call SID

        Raises:
            CallPlacementError: If Twilio rejects the call or cannot be reached
        """
        try:
            call = await asyncio.to_thread(
                self.client.calls.create,
                from_=self.from_number,
                to=to_number,
                url=twiml_url,
            )
        except (TwilioException, requests.RequestException) as e:
            raise CallPlacementError(f"Failed to initiate call to {to_number}: {e}") from e

        logger.info(f"[Twilio] Outbound call initiated - CallSid: {call.sid}")
        return str(call.sid)


def outbound_twiml_url(host: str, prompt: Optional[str], first_message: Optional[str]) -> str:
    """Build the TwiML callback URL carrying the per-call initiation parameters."""
    query = urlencode({
        PARAM_PROMPT: prompt or "",
        PARAM_FIRST_MESSAGE: first_message or "",
    })
    return f"https://{host}/outbound-call-twiml?{query}"


def stream_twiml(stream_url: str, parameters: Optional[Dict[str, str]] = None) -> str:
    """TwiML that connects the call leg to the relay's media stream WebSocket."""
    response = VoiceResponse()
    connect = Connect()
    stream = connect.stream(url=stream_url)
    for name, value in (parameters or {}).items():
        stream.parameter(name=name, value=value)
    response.append(connect)
    return str(response)


def gather_twiml(first_message: str, action: str) -> str:
    """TwiML for the request/response speech path."""
    response = VoiceResponse()
    response.say("Hello")
    gather = Gather(input="speech", timeout=SPEECH_GATHER_TIMEOUT, action=action)
    gather.say(first_message)
    response.append(gather)
    return str(response)


def play_audio_twiml(audio_base64: str, action: str) -> str:
    """Play the agent's reply, then listen for the next utterance."""
    response = VoiceResponse()
    response.play(f"data:audio/mpeg;base64,{audio_base64}")
    gather = Gather(input="speech", timeout=SPEECH_GATHER_TIMEOUT, action=action)
    gather.say(SPEECH_CONTINUE_MESSAGE)
    response.append(gather)
    return str(response)


def error_twiml() -> str:
    """Apologise and end the call."""
    response = VoiceResponse()
    response.say(SPEECH_ERROR_MESSAGE)
    response.hangup()
    return str(response)
