# pylint: disable=missing-module-docstring,missing-function-docstring

from audio.queues import OutboundAudioQueue


# ---------------------------------------------------------------------
# drain semantics
# ---------------------------------------------------------------------

def test_drain_concatenates_in_arrival_order():
    q = OutboundAudioQueue()
    q.push(b"\x01")
    q.push(b"\x02\x03")
    q.push(b"\x04")

    assert q.drain() == b"\x01\x02\x03\x04"
    assert q.is_empty()
    assert q.pending_bytes == 0


def test_drain_empty_returns_empty_bytes():
    q = OutboundAudioQueue()
    assert q.drain() == b""
    assert q.counters.drains == 0


def test_consecutive_drains_never_overlap():
    q = OutboundAudioQueue()
    q.push(b"a")
    first = q.drain()
    q.push(b"b")
    second = q.drain()

    assert (first, second) == (b"a", b"b")


def test_empty_chunks_are_ignored():
    q = OutboundAudioQueue()
    q.push(b"")

    assert len(q) == 0
    assert q.counters.chunks_in == 0


def test_clear_and_snapshot():
    q = OutboundAudioQueue()
    q.push(b"\x00\x00")
    q.push(bytearray(b"\x00\x00\x00"))

    assert q.snapshot() == {
        "chunks": 2,
        "pending_bytes": 5,
        "chunks_in": 2,
        "bytes_in": 5,
        "drains": 0,
    }

    q.clear()
    assert len(q) == 0
    assert q.pending_bytes == 0
    assert q.counters.bytes_in == 5
