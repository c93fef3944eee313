"""
Client for the OpenAI inference provider.

This module wraps the three request shapes the assistant needs from OpenAI
(speech-to-text, chat completion and text-to-speech) behind a small async
interface. Every request goes through the exponential backoff executor; the
SDK's own retry loop is disabled so there is exactly one retry layer.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI

from telehealth.config.constants import (
    CHAT_MAX_TOKENS,
    CHAT_MODEL,
    CHAT_TIMEOUT,
    LOGGER_NAME,
    SPEECH_MODEL,
    SPEECH_TIMEOUT,
    SPEECH_VOICE,
    SYSTEM_PROMPT,
    TRANSCRIPTION_MODEL,
    TRANSCRIPTION_TIMEOUT,
)
from telehealth.config.settings import Settings
from telehealth.services.retry import (
    DEFAULT_POLICY,
    RetryPolicy,
    retry_with_exponential_backoff,
)

logger = logging.getLogger(LOGGER_NAME)


class InferenceClient:
    """
    Speech-to-text, chat completion and text-to-speech over the OpenAI API.

    Each call is independent: no conversation state is kept between requests.
    """

    def __init__(self, client: AsyncOpenAI, retry_policy: RetryPolicy = DEFAULT_POLICY):
        self.client = client
        self.retry_policy = retry_policy

    @classmethod
    def from_settings(
        cls, settings: Settings, retry_policy: RetryPolicy = DEFAULT_POLICY
    ) -> "InferenceClient":
        """Create a client from process settings.

        Raises:
            ValueError: If no OpenAI API key is configured
        """
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")
        logger.info(
            f"OpenAI API key configured (length {len(settings.openai_api_key)})"
        )
        return cls(
            AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0),
            retry_policy=retry_policy,
        )

    async def transcribe(
        self,
        audio: bytes,
        filename: str = "recording.wav",
        content_type: str = "audio/wav",
        language: Optional[str] = None,
    ) -> str:
        """
        Transcribe an audio file.

        Args:
            audio: Complete audio file contents (e.g. a WAV file)
            filename: File name reported to the API, its extension selects the decoder
            content_type: MIME type of the audio
            language: Optional ISO-639-1 hint

        Returns:
            str: The transcribed text, empty if nothing was recognized
        """

        async def _request() -> str:
            extra = {"language": language} if language else {}
            result = await self.client.audio.transcriptions.create(
                model=TRANSCRIPTION_MODEL,
                # Fresh tuple per attempt so the upload body is rebuilt on retry
                file=(filename, audio, content_type),
                timeout=TRANSCRIPTION_TIMEOUT,
                **extra,
            )
            return result.text or ""

        logger.debug(f"Transcribing {len(audio)} bytes of audio")
        text = await retry_with_exponential_backoff(_request, policy=self.retry_policy)
        logger.info(f"Transcription: {text}")
        return text

    async def complete(self, text: str) -> str:
        """
        Generate brief medical guidance for the described symptoms.

        Args:
            text: What the caller said

        Returns:
            str: The assistant's reply
        """

        async def _request():
            return await self.client.chat.completions.create(
                model=CHAT_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                max_tokens=CHAT_MAX_TOKENS,
                timeout=CHAT_TIMEOUT,
            )

        completion = await retry_with_exponential_backoff(
            _request, policy=self.retry_policy
        )
        reply = completion.choices[0].message.content or ""
        logger.info(f"Generated response ({len(reply)} chars)")
        return reply

    async def synthesize(self, text: str) -> bytes:
        """
        Convert text to speech.

        Returns:
            bytes: Encoded audio (mp3)
        """

        async def _request():
            return await self.client.audio.speech.create(
                model=SPEECH_MODEL,
                voice=SPEECH_VOICE,
                input=text,
                timeout=SPEECH_TIMEOUT,
            )

        response = await retry_with_exponential_backoff(
            _request, policy=self.retry_policy
        )
        return response.content

    async def verify_connection(self) -> bool:
        """
        Check that the API key works by listing models.

        Failures are logged and reported as False; they never raise.
        """
        try:
            models = await self.client.models.list()
            logger.info(f"OpenAI connection successful, found {len(models.data)} models")
            return True
        except Exception as e:
            logger.error(f"OpenAI initialization error: {e}")
            return False

    async def close(self) -> None:
        await self.client.close()
