"""
Handlers module for call, callback and media-stream processing.

Key components:
- recording_handlers: Turns a Twilio call recording into spoken guidance
  (fetch, transcribe, generate, speak) with a spoken fallback on every failure.
- callback_handlers: Places the outbound callback call and confirmation SMS
  requested by the web client.
- stream_handlers: Relays audio from the /stream WebSocket through a
  transcription channel and pushes synthesized replies back.

Usage examples:
```python
from telehealth.handlers.recording_handlers import handle_process_recording

twiml = await handle_process_recording(recording_url, telephony, inference)
return Response(content=twiml, media_type="text/xml")
```
"""
