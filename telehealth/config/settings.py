"""
Process configuration loaded once at startup.

Settings are read from environment variables (optionally populated from a
``.env`` file) into a frozen pydantic model. The resulting object is passed
explicitly to the provider clients and stored on the application state; nothing
reads the environment after startup.
"""

import os
from pathlib import Path
from typing import Optional

import dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


def load_env_file(path: Path = Path(".") / ".env") -> bool:
    """Load variables from a .env file if it exists.

    Returns:
        bool: True if a file was loaded
    """
    if path.exists():
        return dotenv.load_dotenv(path)
    return False


class Settings(BaseModel):
    """Read-only process configuration."""

    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    twilio_account_sid: Optional[str] = Field(None, description="Twilio account SID")
    twilio_auth_token: Optional[str] = Field(None, description="Twilio auth token")
    twilio_phone_number: Optional[str] = Field(
        None, description="Twilio number used as caller ID for callbacks"
    )
    host: str = Field("0.0.0.0", description="Interface the server binds to")
    port: int = Field(3000, description="Listening port")
    log_level: str = Field("INFO", description="Application log level")
    public_base_url: Optional[str] = Field(
        None, description="Public https URL overriding the request Host header"
    )

    @field_validator("port")
    def validate_port(cls, v):
        """Validate that the port is in the TCP range."""
        if not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v

    @field_validator("log_level")
    def validate_log_level(cls, v):
        """Normalize the log level name."""
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return v

    @field_validator("public_base_url")
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") if v else v

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def twilio_configured(self) -> bool:
        return bool(
            self.twilio_account_sid
            and self.twilio_auth_token
            and self.twilio_phone_number
        )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (used in tests)

        Returns:
            Settings: The populated, frozen settings object
        """
        env = os.environ if environ is None else environ
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            twilio_account_sid=env.get("TWILIO_ACCOUNT_SID") or None,
            twilio_auth_token=env.get("TWILIO_AUTH_TOKEN") or None,
            twilio_phone_number=env.get("TWILIO_PHONE_NUMBER") or None,
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3000")),
            log_level=env.get("LOG_LEVEL", "INFO"),
            public_base_url=env.get("PUBLIC_BASE_URL") or None,
        )
