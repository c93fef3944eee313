"""
Handles the recorded-message flow of a call.

After the caller leaves a message, Twilio posts the recording URL to
``/process-recording``. This module downloads the audio, transcribes it,
generates guidance and returns the TwiML that reads it back. Every failure
path ends in a spoken fallback so Twilio always gets a valid document.
"""

import logging
from typing import Optional

from telehealth.config.constants import (
    ADVICE_FALLBACK_MESSAGE,
    APOLOGY_MESSAGE,
    HIGH_DEMAND_MESSAGE,
    LOGGER_NAME,
    NO_RECORDING_MESSAGE,
    NOT_UNDERSTOOD_MESSAGE,
)
from telehealth.services.inference_client import InferenceClient
from telehealth.services.retry import is_rate_limit_error
from telehealth.services.telephony_client import TelephonyClient
from telehealth.services.twiml import say_response

logger = logging.getLogger(LOGGER_NAME)


async def handle_process_recording(
    recording_url: Optional[str],
    telephony: Optional[TelephonyClient],
    inference: Optional[InferenceClient],
) -> str:
    """
    Turn a call recording into a spoken response.

    Steps run strictly in order: fetch recording, transcribe, generate
    guidance, speak it.

    Args:
        recording_url: The RecordingUrl form field, may be missing
        telephony: Client used to download the recording
        inference: Client used for transcription and chat completion

    Returns:
        str: TwiML document to return to Twilio
    """
    if not recording_url:
        logger.warning("No RecordingUrl in process-recording webhook")
        return say_response(NO_RECORDING_MESSAGE)

    logger.info(f"Recording URL: {recording_url}")

    try:
        if telephony is None or inference is None:
            raise RuntimeError("Provider clients are not configured")

        audio = await telephony.fetch_recording(recording_url)

        try:
            text = await inference.transcribe(audio)
        except Exception as e:
            logger.error(f"Final transcription error: {e}", exc_info=True)
            if is_rate_limit_error(e):
                return say_response(HIGH_DEMAND_MESSAGE)
            raise

        if not text.strip():
            logger.info("No text transcribed from audio")
            return say_response(NOT_UNDERSTOOD_MESSAGE)

        try:
            reply = await inference.complete(text)
        except Exception as e:
            logger.error(f"Chat completion error: {e}", exc_info=True)
            return say_response(ADVICE_FALLBACK_MESSAGE)

        if not reply.strip():
            logger.warning("Chat completion returned an empty response")
            return say_response(ADVICE_FALLBACK_MESSAGE)

        return say_response(reply)

    except Exception as e:
        logger.error(f"Error processing recording: {e}", exc_info=True)
        return say_response(APOLOGY_MESSAGE)
