"""
Models module for data structures and state management in the telehealth assistant.

Key components:
- schemas: Pydantic models for callback API bodies, outbound audio frames and the
  Twilio Media Stream events received on the /stream WebSocket.
- stream_session: Registry of active media-stream sessions.

Usage examples:
```python
from telehealth.models.schemas import AudioFrame, CallbackRequest

request = CallbackRequest(phone_number="+15551234567", language="en")
frame = AudioFrame.from_bytes(b"...mp3 bytes...")
await websocket.send_text(frame.model_dump_json())
```
"""

from telehealth.models.schemas import (
    AudioFrame,
    CallbackRequest,
    CallbackResponse,
    ErrorResponse,
    MediaPayload,
    StreamMediaEvent,
    StreamStartEvent,
    StreamStartPayload,
    TranscriptionEvent,
)
from telehealth.models.stream_session import StreamSessionManager
