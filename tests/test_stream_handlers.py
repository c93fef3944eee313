import asyncio
import base64
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocket

from telehealth.config.constants import AUDIO_ENCODING_L16, AUDIO_ENCODING_MULAW
from telehealth.handlers.stream_handlers import (
    MediaStreamSession,
    TranscriptBuffer,
    TranscriptionChannel,
    handle_media,
    handle_raw_audio,
    handle_stream_start,
    handle_stream_stop,
)
from telehealth.models.stream_session import StreamSessionManager
from telehealth.services.inference_client import InferenceClient

# One second of 8 kHz mu-law
ONE_SECOND = b"\xff" * 8000


def media_message(audio, track="inbound"):
    return {
        "event": "media",
        "streamSid": "MZ123",
        "media": {"track": track, "payload": base64.b64encode(audio).decode()},
    }


@pytest.fixture
def inference():
    inference = AsyncMock(spec=InferenceClient)
    inference.transcribe.return_value = "my head hurts a lot today"
    inference.complete.return_value = "Rest and drink water."
    inference.synthesize.return_value = b"mp3-reply"
    return inference


@pytest.fixture
def websocket():
    return AsyncMock(spec=WebSocket)


async def collect(channel):
    return [event.text async for event in channel.events()]


# TranscriptBuffer

def test_transcript_buffer_releases_at_threshold():
    buffer = TranscriptBuffer(word_threshold=5)

    assert buffer.append("I feel") is None
    assert buffer.append("very dizzy") is None
    assert buffer.append("today") == "I feel very dizzy today"
    assert buffer.words == []


def test_transcript_buffer_ignores_blank_text():
    buffer = TranscriptBuffer(word_threshold=2)
    assert buffer.append("   ") is None
    assert buffer.words == []


# TranscriptionChannel

@pytest.mark.asyncio
async def test_channel_transcribes_full_chunks_and_flushes_on_close():
    transcribe = AsyncMock(side_effect=["first chunk", "tail"])
    channel = TranscriptionChannel(transcribe, chunk_seconds=1)
    runner = asyncio.create_task(channel.run())

    await channel.push(ONE_SECOND[:4000])
    await channel.push(ONE_SECOND[:4000])
    await channel.push(b"\xff" * 100)
    await channel.close()

    assert await collect(channel) == ["first chunk", "tail"]
    await runner

    first_audio = transcribe.await_args_list[0].args[0]
    assert first_audio.startswith(b"RIFF")
    assert len(first_audio) == 44 + 8000
    assert len(transcribe.await_args_list[1].args[0]) == 44 + 100


@pytest.mark.asyncio
async def test_channel_skips_empty_and_failed_chunks():
    transcribe = AsyncMock(side_effect=["  ", Exception("Invalid file format"), "hello"])
    channel = TranscriptionChannel(transcribe, chunk_seconds=1)
    runner = asyncio.create_task(channel.run())

    for _ in range(3):
        await channel.push(ONE_SECOND)
    await channel.close()

    assert await collect(channel) == ["hello"]
    await runner


@pytest.mark.asyncio
async def test_channel_end_of_stream_without_audio():
    transcribe = AsyncMock()
    channel = TranscriptionChannel(transcribe)
    runner = asyncio.create_task(channel.run())

    await channel.close()

    assert await collect(channel) == []
    await runner
    transcribe.assert_not_awaited()


@pytest.mark.asyncio
async def test_channel_rejects_audio_after_close():
    channel = TranscriptionChannel(AsyncMock())
    await channel.close()
    await channel.close()

    assert channel.closed
    with pytest.raises(RuntimeError):
        await channel.push(b"\xff")


def test_channel_chunk_size_follows_format():
    channel = TranscriptionChannel(
        AsyncMock(), encoding=AUDIO_ENCODING_L16, sample_rate=16000, chunk_seconds=2
    )
    assert channel.chunk_bytes == 64000


# MediaStreamSession

@pytest.mark.asyncio
async def test_session_replies_with_audio_frame(websocket, inference):
    session = MediaStreamSession(websocket, inference, stream_id="MZ123", chunk_seconds=1)

    await session.push_audio(ONE_SECOND)
    await session.finish()

    inference.complete.assert_awaited_once_with("my head hurts a lot today")
    inference.synthesize.assert_awaited_once_with("Rest and drink water.")
    websocket.send_text.assert_awaited_once()
    frame = json.loads(websocket.send_text.await_args.args[0])
    assert frame == {"type": "audio", "audio": base64.b64encode(b"mp3-reply").decode()}
    assert session.responses_sent == 1


@pytest.mark.asyncio
async def test_session_waits_for_word_threshold(websocket, inference):
    inference.transcribe.return_value = "my throat"
    session = MediaStreamSession(websocket, inference, chunk_seconds=1, word_threshold=5)

    await session.push_audio(ONE_SECOND)
    await session.push_audio(ONE_SECOND)
    await session.finish()

    inference.complete.assert_not_awaited()
    websocket.send_text.assert_not_awaited()
    assert session.transcript.words == ["my", "throat", "my", "throat"]


@pytest.mark.asyncio
async def test_session_survives_reply_failure(websocket, inference):
    inference.complete.side_effect = Exception("429 Too Many Requests")
    session = MediaStreamSession(websocket, inference, chunk_seconds=1)

    await session.push_audio(ONE_SECOND)
    await session.finish()

    websocket.send_text.assert_not_awaited()
    assert session.responses_sent == 0


@pytest.mark.asyncio
async def test_session_finish_is_idempotent(websocket, inference):
    session = MediaStreamSession(websocket, inference)
    await session.finish()  # never started

    await session.start()
    await session.finish()
    await session.finish()
    await session.push_audio(ONE_SECOND)

    inference.transcribe.assert_not_awaited()


# Event handlers

@pytest.mark.asyncio
async def test_handle_stream_start_registers_stream_sid(websocket, inference):
    manager = StreamSessionManager()
    session = MediaStreamSession(websocket, inference, stream_id="generated")
    manager.add_session("generated", session)

    await handle_stream_start(
        {
            "event": "start",
            "streamSid": "MZ123",
            "start": {
                "streamSid": "MZ123",
                "callSid": "CA123",
                "mediaFormat": {"encoding": "audio/x-l16", "sampleRate": 16000, "channels": 1},
            },
        },
        session,
        manager,
    )

    assert session.stream_id == "MZ123"
    assert manager.get_session("MZ123") is session
    assert manager.get_session("generated") is None
    assert session.channel.encoding == AUDIO_ENCODING_L16
    assert session.channel.sample_rate == 16000
    await session.finish()


@pytest.mark.asyncio
async def test_handle_stream_start_unsupported_encoding_falls_back_to_mulaw(websocket, inference):
    manager = StreamSessionManager()
    session = MediaStreamSession(websocket, inference, stream_id="MZ123")
    manager.add_session("MZ123", session)

    await handle_stream_start(
        {
            "event": "start",
            "streamSid": "MZ123",
            "start": {
                "streamSid": "MZ123",
                "mediaFormat": {"encoding": "audio/opus", "sampleRate": 48000, "channels": 1},
            },
        },
        session,
        manager,
    )

    assert session.started
    assert session.channel.encoding == AUDIO_ENCODING_MULAW
    assert session.channel.sample_rate == 8000

    await session.push_audio(b"\xff" * 10)
    await session.finish()
    inference.transcribe.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_media_ignores_outbound_track(websocket, inference):
    manager = StreamSessionManager()
    session = MediaStreamSession(websocket, inference)

    await handle_media(media_message(b"\xff" * 10, track="outbound"), session, manager)
    assert not session.started

    await handle_media(media_message(b"\xff" * 10), session, manager)
    assert session.started
    await handle_stream_stop({"event": "stop"}, session, manager)

    inference.transcribe.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_media_ignores_invalid_payload(websocket, inference):
    session = MediaStreamSession(websocket, inference)
    await handle_media(
        {"event": "media", "media": {"payload": "%%%"}}, session, StreamSessionManager()
    )
    assert not session.started


@pytest.mark.asyncio
async def test_handle_raw_audio(websocket, inference):
    session = MediaStreamSession(websocket, inference)

    await handle_raw_audio(b"", session, StreamSessionManager())
    assert not session.started

    await handle_raw_audio(b"\xff" * 10, session, StreamSessionManager())
    await session.finish()
    inference.transcribe.assert_awaited_once()
