"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for model names, spoken prompts, retry limits and
stream settings so the webhook handlers and service clients stay consistent.
"""

# Logger name used throughout the application
LOGGER_NAME = "telehealth"

# OpenAI models
TRANSCRIPTION_MODEL = "whisper-1"
CHAT_MODEL = "gpt-3.5-turbo"
SPEECH_MODEL = "tts-1"
SPEECH_VOICE = "alloy"
CHAT_MAX_TOKENS = 150

SYSTEM_PROMPT = (
    "You are a helpful telehealth assistant. Provide brief, accurate medical guidance "
    "based on symptoms described. Always include a disclaimer that this is not a "
    "replacement for professional medical advice."
)

# Per-request timeouts for the inference provider (seconds)
TRANSCRIPTION_TIMEOUT = 30.0
CHAT_TIMEOUT = 20.0
SPEECH_TIMEOUT = 30.0
RECORDING_FETCH_TIMEOUT = 30.0

# Retry / backoff defaults (seconds)
DEFAULT_MAX_RETRIES = 5
BACKOFF_BASE_DELAY = 0.1
BACKOFF_MAX_DELAY = 2.0
BACKOFF_MAX_JITTER = 0.1
RATE_LIMIT_MARKERS = ("429", "rate", "limit", "too many")

# TwiML
TWIML_VOICE = "alice"
STREAM_TRACK = "both_tracks"
RECORDING_MAX_LENGTH = 30
RECORDING_SILENCE_TIMEOUT = 2

# Spoken messages
WELCOME_MESSAGE = (
    "Welcome to the telehealth AI assistant. I will analyze your symptoms and provide "
    "preliminary medical guidance. Please describe your health concern after the beep."
)
NO_RECORDING_MESSAGE = "I did not receive a recording. Please try again later."
HIGH_DEMAND_MESSAGE = (
    "I'm experiencing high demand right now and couldn't process your request. "
    "Please try again in a few moments."
)
NOT_UNDERSTOOD_MESSAGE = "I couldn't understand what you said. Please try again."
ADVICE_FALLBACK_MESSAGE = (
    "I'm having trouble generating a detailed response right now. For your symptoms, "
    "general advice would be to rest, stay hydrated, and consult with a healthcare "
    "professional if symptoms persist. This is not a replacement for professional "
    "medical advice."
)
APOLOGY_MESSAGE = "I apologize, but I encountered an error. Please try again later."

# Outbound callback
CALLBACK_SUCCESS_MESSAGE = "Callback requested successfully"
CALLBACK_CONFIRMATION_SMS = (
    "We've received your request for a telehealth callback regarding your health "
    "concern. We will call you shortly."
)
CALLBACK_TWILIO_ERROR = "Failed to initiate call via Twilio"
CALLBACK_GENERIC_ERROR = "Failed to process callback request"

# Media stream
AUDIO_ENCODING_MULAW = "audio/x-mulaw"
AUDIO_ENCODING_L16 = "audio/x-l16"
DEFAULT_SAMPLE_RATE = 8000
STREAM_CHUNK_SECONDS = 3
TRANSCRIPT_WORD_THRESHOLD = 5
INBOUND_TRACK = "inbound"

# Twilio Media Stream event names
STREAM_EVENT_CONNECTED = "connected"
STREAM_EVENT_START = "start"
STREAM_EVENT_MEDIA = "media"
STREAM_EVENT_STOP = "stop"
