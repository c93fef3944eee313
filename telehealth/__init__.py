"""
Telehealth Voice Assistant - Twilio calls answered with OpenAI speech and chat

This application answers phone calls through Twilio, transcribes what the caller
says with OpenAI Whisper, generates brief preliminary medical guidance with a chat
model and reads it back. A companion API lets a web client request an outbound
callback.

Architecture Overview:
- FastAPI server exposing Twilio webhooks, a media-stream WebSocket and a JSON API
- OpenAI for transcription, chat completion and text-to-speech
- Twilio for calls, SMS and recordings
- A shared exponential backoff executor around every provider call

Key Components:
- api: Routes and dependencies
- config: Constants, logging setup and settings
- handlers: Recording pipeline, callback requests and media-stream sessions
- models: Request/response schemas and the active stream registry
- services: Provider clients, TwiML builders and the retry executor
- websocket_manager: Lifecycle and event routing for /stream connections

Getting Started:
1. Set up environment variables (or a .env file):
   - OPENAI_API_KEY: Your OpenAI API key
   - TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN: Twilio credentials
   - TWILIO_PHONE_NUMBER: Number used for outbound callbacks
   - PORT: Port to run the server on (default 3000)
   - PUBLIC_BASE_URL: Optional public https URL used in Twilio callbacks
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio number's voice webhook at https://your-server/voice
   (streaming) or https://your-server/handle-call (record and reply).
"""
