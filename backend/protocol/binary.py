# backend/protocol/binary.py
"""
Binary framing for the streaming recognition protocol.

Every frame starts with a 4-byte header:

    byte0 = (version << 4) | header_words     header_words * 4 == header size
    byte1 = (message_type << 4) | flags
    byte2 = (serialization << 4) | compression
    byte3 = reserved (0x00)

followed by:

    [4 bytes  sequence (i32, big-endian)]     iff flags bit0 is set
    [4 bytes  error code (i32, big-endian)]   iff message_type == SERVER_ERROR
    4 bytes   payload size (u32, big-endian)
    N bytes   payload (compressed per `compression`)

Usage example:

    frame = encode_frame(
        MessageType.CLIENT_AUDIO_ONLY,
        pcm_bytes,
        flags=MessageFlags.LAST_NO_SEQUENCE,
        compression=Compression.GZIP,
    )

    decoded = decode_frame(message)
    if decoded.message_type == MessageType.SERVER_ERROR:
        ...

Pure functions; no state.
"""

from __future__ import annotations

import gzip
import json
import struct
import zlib
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional

from errors import VoiceASRError


PROTOCOL_VERSION = 0b0001
HEADER_WORDS = 0b0001
HEADER_SIZE_BYTES = 4


# -------------------------
# Header enums
# -------------------------

class MessageType(IntEnum):
    """Message type nibble (byte1, high bits)."""
    CLIENT_FULL_REQUEST = 0b0001
    CLIENT_AUDIO_ONLY = 0b0010
    SERVER_FULL_RESPONSE = 0b1001
    SERVER_ERROR = 0b1111


class MessageFlags(IntEnum):
    """
    Message-type-specific flags nibble (byte1, low bits).

    bit0 = sequence number present, bit1 = last packet.
    """
    NO_SEQUENCE = 0b0000
    POSITIVE_SEQUENCE = 0b0001
    LAST_NO_SEQUENCE = 0b0010
    LAST_WITH_SEQUENCE = 0b0011


FLAG_HAS_SEQUENCE = 0b0001
FLAG_IS_LAST = 0b0010

_KNOWN_MESSAGE_TYPES = frozenset(int(m) for m in MessageType)


class Serialization(IntEnum):
    """Payload serialization nibble (byte2, high bits)."""
    NONE = 0b0000
    JSON = 0b0001


class Compression(IntEnum):
    """Payload compression nibble (byte2, low bits)."""
    NONE = 0b0000
    GZIP = 0b0001


# -------------------------
# Exceptions
# -------------------------

class BinaryProtocolError(VoiceASRError):
    """Base class for binary protocol errors."""


class MalformedFrame(BinaryProtocolError):
    """
    Raised when a frame is too short, truncated, or its payload size field
    does not match the bytes that follow.
    """


class DecodeError(BinaryProtocolError):
    """
    Raised when a recognised message type carries a payload that cannot be
    decompressed or parsed (gzip, UTF-8, JSON).
    """


# -------------------------
# Compression strategies
# -------------------------

@dataclass(frozen=True)
class CompressionCodec:
    """Pair of pure byte transforms keyed by the compression nibble."""
    compress: Callable[[bytes], bytes]
    decompress: Callable[[bytes], bytes]


def _identity(data: bytes) -> bytes:
    return data


COMPRESSION_CODECS: dict[Compression, CompressionCodec] = {
    Compression.NONE: CompressionCodec(compress=_identity, decompress=_identity),
    Compression.GZIP: CompressionCodec(compress=gzip.compress, decompress=gzip.decompress),
}


def _codec_for(compression: int) -> CompressionCodec:
    try:
        return COMPRESSION_CODECS[Compression(compression)]
    except (ValueError, KeyError) as e:
        raise DecodeError(f"Unsupported compression: {compression:#06b}") from e


def _decompress(payload: bytes, compression: int) -> bytes:
    codec = _codec_for(compression)
    try:
        return codec.decompress(payload)
    except (OSError, EOFError, zlib.error) as e:
        raise DecodeError(f"Payload decompression failed: {e}") from e


# -------------------------
# Low-level helpers
# -------------------------

def _i32_be(value: int) -> bytes:
    return struct.pack(">i", value)


def _u32_be(value: int) -> bytes:
    return struct.pack(">I", value)


def _read_i32_be(buf: bytes, offset: int) -> int:
    return struct.unpack_from(">i", buf, offset)[0]


def _read_u32_be(buf: bytes, offset: int) -> int:
    return struct.unpack_from(">I", buf, offset)[0]


def _require(buf: bytes, offset: int, size: int, what: str) -> None:
    if len(buf) < offset + size:
        raise MalformedFrame(
            f"Frame truncated reading {what}: need {offset + size} bytes, have {len(buf)}"
        )


def build_header(
    message_type: int,
    flags: int,
    serialization: int,
    compression: int,
) -> bytes:
    """Build the fixed 4-byte header."""
    return bytes((
        ((PROTOCOL_VERSION & 0x0F) << 4) | (HEADER_WORDS & 0x0F),
        ((message_type & 0x0F) << 4) | (flags & 0x0F),
        ((serialization & 0x0F) << 4) | (compression & 0x0F),
        0x00,
    ))


# -------------------------
# Encode
# -------------------------

def encode_frame(
    message_type: MessageType,
    payload: bytes | Any,
    *,
    flags: int = MessageFlags.NO_SEQUENCE,
    serialization: Serialization = Serialization.NONE,
    compression: Compression = Compression.GZIP,
    sequence: Optional[int] = None,
    error_code: Optional[int] = None,
) -> bytes:
    """
    Encode one frame.

    With serialization=JSON a non-bytes payload is dumped to UTF-8 JSON first.
    The sequence field is written iff flags bit0 is set; error_code is
    written iff message_type is SERVER_ERROR (used by fakes and tests; this
    client only emits CLIENT_* frames, never with a sequence).
    """
    has_sequence = bool(flags & FLAG_HAS_SEQUENCE)
    if has_sequence != (sequence is not None):
        raise ValueError(
            f"sequence must be given iff flags bit0 is set (flags={flags:#06b}, sequence={sequence})"
        )
    is_error = message_type == MessageType.SERVER_ERROR
    if is_error != (error_code is not None):
        raise ValueError("error_code must be given iff message_type is SERVER_ERROR")

    if isinstance(payload, (bytes, bytearray, memoryview)):
        raw = bytes(payload)
    elif serialization == Serialization.JSON:
        raw = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    elif isinstance(payload, str):
        raw = payload.encode("utf-8")
    else:
        raise TypeError(f"Cannot encode payload of type {type(payload).__name__}")

    body = COMPRESSION_CODECS[Compression(compression)].compress(raw)

    parts = [build_header(message_type, flags, serialization, compression)]
    if sequence is not None:
        parts.append(_i32_be(sequence))
    if error_code is not None:
        parts.append(_i32_be(error_code))
    parts.append(_u32_be(len(body)))
    parts.append(body)
    return b"".join(parts)


# -------------------------
# Decode
# -------------------------

@dataclass(frozen=True)
class DecodedFrame:
    """
    A decoded frame.

    payload by message type:
    - SERVER_FULL_RESPONSE: parsed JSON, or None for an empty payload
    - SERVER_ERROR: UTF-8 text
    - CLIENT_*: parsed JSON (serialization=JSON) or raw bytes
    - unknown types: every byte after the header, unparsed (no sequence,
      size field or length check is applied)
    """
    version: int
    header_words: int
    message_type: int
    flags: int
    serialization: int
    compression: int
    sequence: Optional[int]
    error_code: Optional[int]
    payload: Any

    @property
    def has_sequence(self) -> bool:
        return bool(self.flags & FLAG_HAS_SEQUENCE)

    @property
    def is_last(self) -> bool:
        return bool(self.flags & FLAG_IS_LAST)

    @property
    def is_known_type(self) -> bool:
        return self.message_type in _KNOWN_MESSAGE_TYPES


def decode_frame(data: bytes) -> DecodedFrame:
    """
    Decode one inbound frame.

    Raises:
        MalformedFrame: fewer than 4 bytes, truncated fields, size mismatch
            (only the header is checked for unknown message types)
        DecodeError: decompression / UTF-8 / JSON failure for a known type
    """
    if len(data) < HEADER_SIZE_BYTES:
        raise MalformedFrame(f"Frame length {len(data)} < {HEADER_SIZE_BYTES}")

    version = (data[0] >> 4) & 0x0F
    header_words = data[0] & 0x0F
    header_size = header_words * 4
    message_type = (data[1] >> 4) & 0x0F
    flags = data[1] & 0x0F
    serialization = (data[2] >> 4) & 0x0F
    compression = data[2] & 0x0F

    if header_size < HEADER_SIZE_BYTES:
        raise MalformedFrame(f"Header size {header_size} < {HEADER_SIZE_BYTES}")
    _require(data, 0, header_size, "header")

    offset = header_size

    if message_type not in _KNOWN_MESSAGE_TYPES:
        # Body layout of unknown types is not ours to validate
        return DecodedFrame(
            version=version,
            header_words=header_words,
            message_type=message_type,
            flags=flags,
            serialization=serialization,
            compression=compression,
            sequence=None,
            error_code=None,
            payload=data[offset:],
        )

    sequence: Optional[int] = None
    if flags & FLAG_HAS_SEQUENCE:
        _require(data, offset, 4, "sequence")
        sequence = _read_i32_be(data, offset)
        offset += 4

    error_code: Optional[int] = None
    if message_type == MessageType.SERVER_ERROR:
        _require(data, offset, 4, "error code")
        error_code = _read_i32_be(data, offset)
        offset += 4

    _require(data, offset, 4, "payload size")
    payload_size = _read_u32_be(data, offset)
    offset += 4

    body = data[offset:]
    if len(body) != payload_size:
        raise MalformedFrame(
            f"Payload size field {payload_size} != trailing bytes {len(body)}"
        )

    frame_payload: Any = body

    if message_type == MessageType.SERVER_ERROR:
        frame_payload = _decode_text(_decompress(body, compression))

    elif message_type == MessageType.SERVER_FULL_RESPONSE:
        # Empty payload is a valid "no content" response
        raw = _decompress(body, compression) if body else b""
        frame_payload = _decode_json(raw) if raw else None

    elif message_type in (MessageType.CLIENT_FULL_REQUEST, MessageType.CLIENT_AUDIO_ONLY):
        raw = _decompress(body, compression)
        if serialization == Serialization.JSON:
            frame_payload = _decode_json(raw) if raw else None
        else:
            frame_payload = raw

    return DecodedFrame(
        version=version,
        header_words=header_words,
        message_type=message_type,
        flags=flags,
        serialization=serialization,
        compression=compression,
        sequence=sequence,
        error_code=error_code,
        payload=frame_payload,
    )


def _decode_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Payload is not valid UTF-8: {e}") from e


def _decode_json(raw: bytes) -> Any:
    text = _decode_text(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Payload is not valid JSON: {e}") from e
