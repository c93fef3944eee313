"""
WAV container framing for buffered media-stream audio.

Twilio media streams deliver headerless 8 kHz mu-law frames; the transcription
API needs a complete file. Samples are wrapped as-is, never transcoded.
"""

import struct

from telehealth.config.constants import (
    AUDIO_ENCODING_L16,
    AUDIO_ENCODING_MULAW,
    DEFAULT_SAMPLE_RATE,
)

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_MULAW = 0x0007

# encoding -> (format tag, bits per sample)
_FORMATS = {
    AUDIO_ENCODING_MULAW: (WAVE_FORMAT_MULAW, 8),
    AUDIO_ENCODING_L16: (WAVE_FORMAT_PCM, 16),
}


def bytes_per_second(encoding: str, sample_rate: int = DEFAULT_SAMPLE_RATE) -> int:
    """Byte rate of a mono stream in the given encoding."""
    try:
        _, bits = _FORMATS[encoding]
    except KeyError:
        raise ValueError(f"Unsupported audio encoding: {encoding}")
    return sample_rate * bits // 8


def wrap_wav(
    audio: bytes,
    encoding: str = AUDIO_ENCODING_MULAW,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = 1,
) -> bytes:
    """
    Prefix raw samples with a RIFF/WAVE header.

    Args:
        audio: Raw sample bytes
        encoding: AUDIO_ENCODING_MULAW or AUDIO_ENCODING_L16
        sample_rate: Samples per second
        channels: Number of interleaved channels

    Returns:
        bytes: A complete WAV file
    """
    try:
        format_tag, bits = _FORMATS[encoding]
    except KeyError:
        raise ValueError(f"Unsupported audio encoding: {encoding}")

    block_align = channels * bits // 8
    byte_rate = sample_rate * block_align
    fmt_chunk = struct.pack(
        "<4sIHHIIHH",
        b"fmt ",
        16,
        format_tag,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits,
    )
    data_chunk = struct.pack("<4sI", b"data", len(audio)) + audio
    riff_size = 4 + len(fmt_chunk) + len(data_chunk)
    return struct.pack("<4sI4s", b"RIFF", riff_size, b"WAVE") + fmt_chunk + data_chunk
