"""
FastAPI server relaying Twilio phone calls to ElevenLabs Conversational AI agents.

This module builds the ASGI application. Configuration is loaded once and injected
into an explicitly constructed session registry and Twilio call placer, which are
started and stopped with the application lifespan. Twilio media stream WebSockets
are served by the registry; one relay session runs per call.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import RelaySettings
from voice_relay.handlers import twilio_routes
from voice_relay.services.signed_url import SignedUrlProvider
from voice_relay.services.twilio_calls import OutboundCallPlacer
from voice_relay.session_registry import SessionRegistry

APP_NAME = "Voice Relay"
APP_DESCRIPTION = "Relay between Twilio Media Streams and ElevenLabs Conversational AI"
APP_VERSION = "1.0.0"


def create_app(
    settings: Optional[RelaySettings] = None,
    signed_url_provider: Optional[SignedUrlProvider] = None,
    call_placer: Optional[OutboundCallPlacer] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Relay configuration; loaded from the environment when omitted
        signed_url_provider: Override for the ElevenLabs signed URL provider
        call_placer: Override for the Twilio call placer

    Returns:
        FastAPI: The configured application
    """
    settings = settings or RelaySettings.from_env()
    logger = configure_logging(settings.log_level)

    registry = SessionRegistry(settings, signed_url_provider)
    if call_placer is None and settings.twilio_configured:
        call_placer = OutboundCallPlacer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await registry.start()
        logger.info(f"[Server] {APP_NAME} ready on port {settings.port}")
        yield
        await registry.stop()

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.call_placer = call_placer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(twilio_routes.router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for load balancers and monitoring."""
        state = request.app.state
        return {
            "status": "healthy",
            "agent_configured": bool(state.settings.elevenlabs_agent_id),
            "twilio_configured": state.call_placer is not None,
            "accepting_sessions": state.registry.accepting,
        }

    @app.get("/")
    async def root():
        """Basic information about the service."""
        return {
            "name": APP_NAME,
            "description": APP_DESCRIPTION,
            "version": APP_VERSION,
            "message": "Server is running",
            "endpoints": {
                "/media-stream": "Twilio media stream WebSocket (inbound calls)",
                "/outbound-media-stream": "Twilio media stream WebSocket (outbound calls)",
                "/twilio/inbound_call": "TwiML webhook for inbound calls",
                "/outbound-call": "Place an outbound call",
                "/outbound-call-twiml": "TwiML webhook for outbound calls",
                "/process-speech": "Speech webhook for gather mode",
                "/health": "Health check endpoint",
            },
        }

    return app
