"""
Configuration module for the telehealth voice assistant.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Defines application-wide constants such as model names, spoken
  prompts, retry limits and media stream settings.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.
- settings: Loads process configuration (provider credentials, port) once at
  startup into a frozen Settings object.

Usage examples:
```python
from telehealth.config.constants import LOGGER_NAME, CHAT_MODEL
from telehealth.config.logging_config import configure_logging
from telehealth.config.settings import Settings

logger = configure_logging()
settings = Settings.from_env()
logger.info(f"Listening on port {settings.port}")
```
"""
