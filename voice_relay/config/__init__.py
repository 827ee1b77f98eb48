"""
Configuration module for the voice relay.

Key components:
- constants: protocol tags, endpoint URLs, default prompts and timeouts.
- settings: the immutable RelaySettings object loaded from the environment
  (and a .env file when present). It is the only state shared between calls.
- logging_config: console and rotating file logging for the "voice_relay" logger.

Usage examples:
```python
from voice_relay.config.settings import RelaySettings
from voice_relay.config.logging_config import configure_logging

settings = RelaySettings.from_env()
logger = configure_logging(settings.log_level)
logger.info(f"Relay configured for agent {settings.elevenlabs_agent_id}")
```
"""

from voice_relay.config.settings import RelaySettings

__all__ = ["RelaySettings"]
