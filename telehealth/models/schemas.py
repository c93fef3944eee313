"""
Pydantic models for the callback API and the media-stream WebSocket.

This module defines structured data models for the JSON bodies exchanged with the
web client (callback requests and responses) and for the frames exchanged on the
``/stream`` WebSocket, including the Twilio Media Stream events it receives.
"""

import base64
import logging
import re
from typing import Literal, Optional, Pattern

from pydantic import BaseModel, Field, field_validator

from telehealth.config.constants import INBOUND_TRACK, LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

PHONE_PATTERN: Pattern = re.compile(r"^\+?[0-9\- ()]{6,20}$")


# Callback API
class CallbackRequest(BaseModel):
    """Body of POST /api/request-callback."""

    phone_number: str = Field(..., description="Number to call back")
    language: Optional[str] = Field(None, description="Caller's preferred language")
    health_concern: Optional[str] = Field(
        None, description="Short description of the caller's concern"
    )

    @field_validator("phone_number")
    def validate_phone_number(cls, v):
        """Validate that the phone number is not empty."""
        v = v.strip()
        if not v:
            raise ValueError("phone_number cannot be empty")
        if not PHONE_PATTERN.match(v):
            # Twilio decides what it can dial; just log a warning
            logger.warning(f"Phone number doesn't match expected pattern: {v}")
        return v


class CallbackResponse(BaseModel):
    """Successful callback request."""

    message: str
    call_sid: str


class ErrorResponse(BaseModel):
    error: str


# Media stream
class AudioFrame(BaseModel):
    """Synthesized speech pushed back to the stream client."""

    type: Literal["audio"] = "audio"
    audio: str = Field(..., description="Base64-encoded audio data")

    @classmethod
    def from_bytes(cls, audio: bytes) -> "AudioFrame":
        return cls(audio=base64.b64encode(audio).decode("ascii"))


class TranscriptionEvent(BaseModel):
    """A piece of recognized speech emitted by the transcription channel."""

    text: str


class StreamStartPayload(BaseModel):
    streamSid: Optional[str] = None
    callSid: Optional[str] = None
    tracks: list = Field(default_factory=list)
    mediaFormat: dict = Field(default_factory=dict)


class StreamStartEvent(BaseModel):
    """Twilio ``start`` event, sent once before any media."""

    event: Literal["start"]
    streamSid: Optional[str] = None
    start: StreamStartPayload = Field(default_factory=StreamStartPayload)


class MediaPayload(BaseModel):
    track: str = INBOUND_TRACK
    payload: str = Field(..., description="Base64-encoded audio data")

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except ValueError:
            raise ValueError("Invalid base64 encoded audio data")
        return v


class StreamMediaEvent(BaseModel):
    """Twilio ``media`` event carrying one audio frame."""

    event: Literal["media"]
    streamSid: Optional[str] = None
    media: MediaPayload

    def audio_bytes(self) -> bytes:
        return base64.b64decode(self.media.payload)
