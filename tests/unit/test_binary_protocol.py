# pylint: disable=missing-module-docstring,missing-function-docstring

import gzip
import json
import struct

import pytest

from protocol.binary import (
    COMPRESSION_CODECS,
    Compression,
    DecodeError,
    MalformedFrame,
    MessageFlags,
    MessageType,
    Serialization,
    build_header,
    decode_frame,
    encode_frame,
)


def make_server_frame(
    message_type: int,
    body: bytes,
    *,
    flags: int = 0,
    compression: int = Compression.GZIP,
    serialization: int = Serialization.JSON,
    sequence: int | None = None,
    error_code: int | None = None,
) -> bytes:
    """Hand-assembled frame, independent of encode_frame."""
    parts = [build_header(message_type, flags, serialization, compression)]
    if sequence is not None:
        parts.append(struct.pack(">i", sequence))
    if error_code is not None:
        parts.append(struct.pack(">i", error_code))
    parts.append(struct.pack(">I", len(body)))
    parts.append(body)
    return b"".join(parts)


# ---------------------------------------------------------------------
# Header layout
# ---------------------------------------------------------------------

def test_header_bytes_for_audio_last_packet():
    header = build_header(
        MessageType.CLIENT_AUDIO_ONLY,
        MessageFlags.LAST_NO_SEQUENCE,
        Serialization.NONE,
        Compression.GZIP,
    )
    assert header == bytes([0x11, 0x22, 0x01, 0x00])


def test_init_request_frame_layout():
    payload = {"user": {"uid": "u1"}}
    frame = encode_frame(
        MessageType.CLIENT_FULL_REQUEST,
        payload,
        serialization=Serialization.JSON,
        compression=Compression.GZIP,
    )

    assert frame[:4] == bytes([0x11, 0x10, 0x11, 0x00])
    (size,) = struct.unpack(">I", frame[4:8])
    assert size == len(frame) - 8
    assert json.loads(gzip.decompress(frame[8:])) == payload


def test_client_frames_never_carry_sequence():
    frame = encode_frame(MessageType.CLIENT_AUDIO_ONLY, b"\x01\x02")
    (size,) = struct.unpack(">I", frame[4:8])
    assert size == len(frame) - 8


# ---------------------------------------------------------------------
# Encode -> decode
# ---------------------------------------------------------------------

@pytest.mark.parametrize("compression", list(Compression))
@pytest.mark.parametrize(
    "flags",
    [MessageFlags.NO_SEQUENCE, MessageFlags.LAST_NO_SEQUENCE],
)
def test_audio_frame_round_trip(compression: Compression, flags: MessageFlags):
    pcm = bytes(range(256)) * 4
    decoded = decode_frame(
        encode_frame(MessageType.CLIENT_AUDIO_ONLY, pcm, flags=flags, compression=compression)
    )

    assert decoded.message_type == MessageType.CLIENT_AUDIO_ONLY
    assert decoded.flags == flags
    assert decoded.compression == compression
    assert decoded.sequence is None
    assert decoded.payload == pcm
    assert decoded.is_last is bool(flags & 0b0010)


def test_sequence_round_trip_when_flag_set():
    decoded = decode_frame(
        encode_frame(
            MessageType.SERVER_FULL_RESPONSE,
            {"result": {"text": "hi"}},
            flags=MessageFlags.LAST_WITH_SEQUENCE,
            serialization=Serialization.JSON,
            sequence=-7,
        )
    )
    assert decoded.has_sequence
    assert decoded.is_last
    assert decoded.sequence == -7
    assert decoded.payload == {"result": {"text": "hi"}}


def test_empty_last_audio_packet_round_trip():
    decoded = decode_frame(
        encode_frame(MessageType.CLIENT_AUDIO_ONLY, b"", flags=MessageFlags.LAST_NO_SEQUENCE)
    )
    assert decoded.is_last
    assert decoded.payload == b""


def test_encode_rejects_sequence_without_flag():
    with pytest.raises(ValueError):
        encode_frame(MessageType.CLIENT_AUDIO_ONLY, b"", sequence=1)


def test_encode_rejects_flag_without_sequence():
    with pytest.raises(ValueError):
        encode_frame(MessageType.CLIENT_AUDIO_ONLY, b"", flags=MessageFlags.POSITIVE_SEQUENCE)


def test_encode_requires_error_code_for_error_frames():
    with pytest.raises(ValueError):
        encode_frame(MessageType.SERVER_ERROR, "boom")


def test_compression_registry_covers_every_mode():
    assert set(COMPRESSION_CODECS) == set(Compression)


# ---------------------------------------------------------------------
# Server frames
# ---------------------------------------------------------------------

def test_decode_server_error_frame():
    frame = make_server_frame(
        MessageType.SERVER_ERROR,
        gzip.compress("bad request".encode("utf-8")),
        flags=MessageFlags.POSITIVE_SEQUENCE,
        serialization=Serialization.NONE,
        sequence=3,
        error_code=45000000,
    )
    decoded = decode_frame(frame)

    assert decoded.message_type == MessageType.SERVER_ERROR
    assert decoded.sequence == 3
    assert decoded.error_code == 45000000
    assert decoded.payload == "bad request"


def test_decode_uncompressed_error_text_is_not_json_parsed():
    frame = make_server_frame(
        MessageType.SERVER_ERROR,
        b'{"not": "parsed"}',
        compression=Compression.NONE,
        error_code=1,
    )
    assert decode_frame(frame).payload == '{"not": "parsed"}'


def test_decode_full_response_with_sequence():
    body = gzip.compress(json.dumps({"result": {"text": "你好"}}).encode("utf-8"))
    decoded = decode_frame(
        make_server_frame(
            MessageType.SERVER_FULL_RESPONSE,
            body,
            flags=MessageFlags.POSITIVE_SEQUENCE,
            sequence=12,
        )
    )
    assert decoded.sequence == 12
    assert not decoded.is_last
    assert decoded.payload == {"result": {"text": "你好"}}


def test_decode_empty_full_response_is_not_an_error():
    decoded = decode_frame(make_server_frame(MessageType.SERVER_FULL_RESPONSE, b""))
    assert decoded.payload is None


def test_decode_gzip_of_nothing_is_empty_response():
    decoded = decode_frame(
        make_server_frame(MessageType.SERVER_FULL_RESPONSE, gzip.compress(b""))
    )
    assert decoded.payload is None


def test_decode_unknown_type_is_kept_raw():
    frame = make_server_frame(0b0111, b"\xff\xfe", compression=Compression.GZIP)
    decoded = decode_frame(frame)

    assert not decoded.is_known_type
    assert decoded.payload == frame[4:]
    assert decoded.sequence is None
    assert decoded.error_code is None


@pytest.mark.parametrize(
    "data",
    [
        bytes([0x11, 0xB0, 0x00, 0x00]),
        bytes([0x11, 0xB0, 0x00, 0x00, 0x00, 0x00, 0x00, 0x09]),
        bytes([0x11, 0xB1, 0x00, 0x00, 0x00, 0x01]),
    ],
)
def test_decode_unknown_type_skips_body_validation(data: bytes):
    decoded = decode_frame(data)

    assert decoded.message_type == 0b1011
    assert not decoded.is_known_type
    assert decoded.payload == data[4:]


# ---------------------------------------------------------------------
# Malformed / undecodable input
# ---------------------------------------------------------------------

@pytest.mark.parametrize("data", [b"", b"\x11", b"\x11\x90\x11"])
def test_decode_rejects_short_frame(data: bytes):
    with pytest.raises(MalformedFrame):
        decode_frame(data)


def test_decode_rejects_missing_size_field():
    with pytest.raises(MalformedFrame):
        decode_frame(build_header(MessageType.SERVER_FULL_RESPONSE, 0, 1, 1) + b"\x00\x00")


def test_decode_rejects_missing_sequence():
    header = build_header(MessageType.SERVER_FULL_RESPONSE, MessageFlags.POSITIVE_SEQUENCE, 1, 1)
    with pytest.raises(MalformedFrame):
        decode_frame(header + b"\x00\x01")


def test_decode_rejects_size_mismatch():
    frame = make_server_frame(MessageType.SERVER_FULL_RESPONSE, gzip.compress(b"{}"))
    with pytest.raises(MalformedFrame):
        decode_frame(frame[:-1])
    with pytest.raises(MalformedFrame):
        decode_frame(frame + b"\x00")


def test_decode_surfaces_bad_gzip():
    frame = make_server_frame(MessageType.SERVER_FULL_RESPONSE, b"definitely not gzip")
    with pytest.raises(DecodeError):
        decode_frame(frame)


def test_decode_surfaces_bad_json():
    frame = make_server_frame(MessageType.SERVER_FULL_RESPONSE, gzip.compress(b"{oops"))
    with pytest.raises(DecodeError):
        decode_frame(frame)
