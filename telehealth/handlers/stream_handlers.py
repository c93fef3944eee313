"""
Handles audio relayed over the ``/stream`` WebSocket.

Inbound call audio is pushed into a TranscriptionChannel, which buffers frames,
transcribes them in chunks and emits TranscriptionEvents until end-of-stream.
The MediaStreamSession collects recognized words per connection; once enough
words have accumulated it asks for guidance, synthesizes the reply and pushes it
back to the client as an audio frame.

The module-level handle_* functions process individual Twilio Media Stream
events (connected, start, media, stop) and raw binary frames.
"""

import asyncio
import logging
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from fastapi import WebSocket
from pydantic import ValidationError

from telehealth.config.constants import (
    AUDIO_ENCODING_MULAW,
    DEFAULT_SAMPLE_RATE,
    INBOUND_TRACK,
    LOGGER_NAME,
    STREAM_CHUNK_SECONDS,
    TRANSCRIPT_WORD_THRESHOLD,
)
from telehealth.models.schemas import (
    AudioFrame,
    StreamMediaEvent,
    StreamStartEvent,
    TranscriptionEvent,
)
from telehealth.models.stream_session import StreamSessionManager
from telehealth.services.audio import bytes_per_second, wrap_wav
from telehealth.services.inference_client import InferenceClient

logger = logging.getLogger(LOGGER_NAME)

# Marks end-of-stream on both queues
_END = None


class TranscriptionChannel:
    """
    Audio frames in, transcription events out.

    ``push`` and ``close`` feed the channel; ``run`` consumes frames and must be
    running for events to be produced; ``events`` yields TranscriptionEvents
    and stops after end-of-stream.
    """

    def __init__(
        self,
        transcribe: Callable[[bytes], Awaitable[str]],
        encoding: str = AUDIO_ENCODING_MULAW,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        chunk_seconds: float = STREAM_CHUNK_SECONDS,
    ):
        self._transcribe = transcribe
        self.encoding = encoding
        self.sample_rate = sample_rate
        self.chunk_bytes = max(1, int(bytes_per_second(encoding, sample_rate) * chunk_seconds))
        self._frames: asyncio.Queue = asyncio.Queue()
        self._events: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def push(self, frame: bytes) -> None:
        if self._closed:
            raise RuntimeError("Cannot push audio to a closed channel")
        await self._frames.put(frame)

    async def close(self) -> None:
        """Signal end-of-stream. Buffered audio is still transcribed."""
        if not self._closed:
            self._closed = True
            await self._frames.put(_END)

    async def run(self) -> None:
        """Consume frames until end-of-stream, emitting one event per non-empty chunk."""
        buffer = bytearray()
        try:
            while True:
                frame = await self._frames.get()
                if frame is _END:
                    break
                buffer.extend(frame)
                if len(buffer) >= self.chunk_bytes:
                    await self._transcribe_chunk(bytes(buffer))
                    buffer.clear()
            if buffer:
                await self._transcribe_chunk(bytes(buffer))
        finally:
            await self._events.put(_END)

    async def _transcribe_chunk(self, audio: bytes) -> None:
        try:
            text = await self._transcribe(wrap_wav(audio, self.encoding, self.sample_rate))
        except Exception as e:
            logger.error(f"Stream transcription failed: {e}")
            return
        text = text.strip()
        if text:
            await self._events.put(TranscriptionEvent(text=text))

    async def events(self) -> AsyncIterator[TranscriptionEvent]:
        while True:
            event = await self._events.get()
            if event is _END:
                return
            yield event


class TranscriptBuffer:
    """Accumulates recognized words until a threshold is reached."""

    def __init__(self, word_threshold: int = TRANSCRIPT_WORD_THRESHOLD):
        self.word_threshold = word_threshold
        self.words: List[str] = []

    def append(self, text: str) -> Optional[str]:
        """
        Add recognized text.

        Returns:
            The buffered text once the threshold is reached (the buffer is then
            reset), otherwise None
        """
        self.words.extend(text.split())
        if len(self.words) >= self.word_threshold:
            buffered = " ".join(self.words)
            self.words = []
            return buffered
        return None


class MediaStreamSession:
    """
    State for one ``/stream`` connection.

    Steps for a connection run in order: transcribe, generate guidance,
    synthesize, send. Nothing here is shared with other connections.
    """

    def __init__(
        self,
        websocket: WebSocket,
        inference: InferenceClient,
        stream_id: Optional[str] = None,
        word_threshold: int = TRANSCRIPT_WORD_THRESHOLD,
        chunk_seconds: float = STREAM_CHUNK_SECONDS,
    ):
        self.websocket = websocket
        self.inference = inference
        self.stream_id = stream_id or str(uuid.uuid4())
        self.chunk_seconds = chunk_seconds
        self.transcript = TranscriptBuffer(word_threshold)
        self.channel: Optional[TranscriptionChannel] = None
        self.responses_sent = 0
        self._tasks: List[asyncio.Task] = []
        self._finished = False

    @property
    def started(self) -> bool:
        return self.channel is not None

    async def start(
        self, encoding: str = AUDIO_ENCODING_MULAW, sample_rate: int = DEFAULT_SAMPLE_RATE
    ) -> None:
        """Open the transcription channel. Calling it again has no effect."""
        if self.started:
            return
        self.channel = TranscriptionChannel(
            self.inference.transcribe,
            encoding=encoding,
            sample_rate=sample_rate,
            chunk_seconds=self.chunk_seconds,
        )
        self._tasks = [
            asyncio.create_task(self.channel.run()),
            asyncio.create_task(self._respond_to_transcripts()),
        ]
        logger.info(
            f"Stream {self.stream_id} started ({encoding}, {sample_rate} Hz)"
        )

    async def push_audio(self, frame: bytes) -> None:
        if not self.started:
            await self.start()
        if self.channel.closed:
            logger.warning(f"Dropping audio received after end of stream {self.stream_id}")
            return
        await self.channel.push(frame)

    async def finish(self) -> None:
        """Signal end-of-stream and wait for pending transcriptions and replies."""
        if not self.started or self._finished:
            return
        self._finished = True
        await self.channel.close()
        await asyncio.gather(*self._tasks)
        logger.info(f"Stream {self.stream_id} finished, {self.responses_sent} response(s) sent")

    async def _respond_to_transcripts(self) -> None:
        async for event in self.channel.events():
            logger.info(f"Transcription: {event.text}")
            text = self.transcript.append(event.text)
            if text:
                await self.respond(text)

    async def respond(self, text: str) -> None:
        """Generate guidance for ``text`` and send it back as synthesized audio."""
        try:
            reply = await self.inference.complete(text)
            audio = await self.inference.synthesize(reply)
            frame = AudioFrame.from_bytes(audio)
            await self.websocket.send_text(frame.model_dump_json())
            self.responses_sent += 1
        except Exception as e:
            logger.error(f"Error processing transcription: {e}", exc_info=True)


async def handle_connected(
    message: Dict[str, Any],
    session: MediaStreamSession,
    session_manager: StreamSessionManager,
) -> None:
    """Handle the ``connected`` event Twilio sends first on a new stream."""
    logger.info(f"Media stream connected (protocol {message.get('protocol')})")


async def handle_stream_start(
    message: Dict[str, Any],
    session: MediaStreamSession,
    session_manager: StreamSessionManager,
) -> None:
    """
    Handle the ``start`` event.

    Re-registers the session under Twilio's streamSid and opens the
    transcription channel with the announced media format.
    """
    try:
        start = StreamStartEvent(**message)
    except ValidationError as e:
        logger.error(f"Invalid start event: {e}")
        await session.start()
        return

    stream_sid = start.streamSid or start.start.streamSid
    if stream_sid and stream_sid != session.stream_id:
        session_manager.remove_session(session.stream_id)
        session.stream_id = stream_sid
        session_manager.add_session(stream_sid, session)

    media_format = start.start.mediaFormat
    try:
        await session.start(
            encoding=media_format.get("encoding", AUDIO_ENCODING_MULAW),
            sample_rate=int(media_format.get("sampleRate", DEFAULT_SAMPLE_RATE)),
        )
    except ValueError as e:
        logger.warning(f"Unsupported media format {media_format}, using 8 kHz mu-law: {e}")
        await session.start()


async def handle_media(
    message: Dict[str, Any],
    session: MediaStreamSession,
    session_manager: StreamSessionManager,
) -> None:
    """Handle a ``media`` event. Only the caller's (inbound) track is transcribed."""
    try:
        media = StreamMediaEvent(**message)
    except ValidationError as e:
        logger.warning(f"Invalid media event: {e}")
        return

    if media.media.track != INBOUND_TRACK:
        return
    await session.push_audio(media.audio_bytes())


async def handle_stream_stop(
    message: Dict[str, Any],
    session: MediaStreamSession,
    session_manager: StreamSessionManager,
) -> None:
    """Handle the ``stop`` event by ending the stream."""
    logger.info(f"Media stream stop received for {session.stream_id}")
    await session.finish()


async def handle_raw_audio(
    data: bytes,
    session: MediaStreamSession,
    session_manager: StreamSessionManager,
) -> None:
    """Handle a binary frame of raw audio in the session's encoding."""
    if data:
        await session.push_audio(data)
