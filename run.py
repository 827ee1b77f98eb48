"""
Run script for starting the Voice Relay server.

This script validates the configuration and starts the FastAPI server that relays
Twilio Media Streams to ElevenLabs Conversational AI.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import RelaySettings
from voice_relay.errors import ConfigurationError

logger = configure_logging()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Voice Relay server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    args = parse_args()

    try:
        settings = RelaySettings.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.detail}")
        print(f"Error: {e.detail}")
        print("Set ELEVENLABS_API_KEY and ELEVENLABS_AGENT_ID in the environment or a .env file")
        sys.exit(1)

    host = args.host or settings.host
    port = args.port or settings.port
    log_level = args.log_level or settings.log_level

    logger.info(f"Starting server on http://{host}:{port}")
    logger.info(f"Log level: {log_level}")
    logger.info(f"Twilio outbound calls configured: {settings.twilio_configured}")
    logger.info(f"TwiML mode: {settings.twiml_mode}")

    uvicorn.run(
        "voice_relay.main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=log_level.lower(),
        http="h11",
        # We have our own logging
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
