"""
TwiML call-control documents returned to Twilio webhooks.
"""

from twilio.twiml.voice_response import VoiceResponse

from telehealth.config.constants import (
    RECORDING_MAX_LENGTH,
    RECORDING_SILENCE_TIMEOUT,
    STREAM_TRACK,
    TWIML_VOICE,
    WELCOME_MESSAGE,
)


def stream_response(host: str, path: str = "/stream") -> str:
    """Connect the call to a bidirectional media stream at ``wss://{host}{path}``."""
    response = VoiceResponse()
    connect = response.connect()
    connect.stream(url=f"wss://{host}{path}", track=STREAM_TRACK)
    return str(response)


def record_prompt_response(action: str = "/process-recording") -> str:
    """Greet the caller and record up to RECORDING_MAX_LENGTH seconds of audio."""
    response = VoiceResponse()
    response.say(WELCOME_MESSAGE, voice=TWIML_VOICE)
    response.record(
        action=action,
        transcribe=False,
        max_length=RECORDING_MAX_LENGTH,
        play_beep=True,
        timeout=RECORDING_SILENCE_TIMEOUT,
    )
    return str(response)


def say_response(message: str) -> str:
    response = VoiceResponse()
    response.say(message, voice=TWIML_VOICE)
    return str(response)
