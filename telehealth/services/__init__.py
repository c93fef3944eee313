"""
Services module for external provider integrations.

Key components:
- retry: Exponential backoff executor and error classification shared by every
  provider call.
- inference_client: OpenAI transcription, chat completion and speech synthesis.
- telephony_client: Twilio outbound calls, SMS and recording downloads.
- twiml: Call-control documents returned to Twilio webhooks.
- audio: WAV framing for buffered media-stream audio.

Usage examples:
```python
from telehealth.services.retry import retry_with_exponential_backoff

async def fetch():
    return await http.get(url)

response = await retry_with_exponential_backoff(fetch, max_retries=3)
```
"""
