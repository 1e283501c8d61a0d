"""
Doubao (Volc) bidirectional streaming ASR client.

Core model:
- One WebSocket connection per session. The client is created at session
  start and discarded at session end; it never reconnects.
- Authentication rides on the HTTP upgrade headers; the first frame on the
  socket is a gzip+JSON CLIENT_FULL_REQUEST describing audio format and
  recognition options.
- Audio is NOT sent per call. send_audio() appends to an OutboundAudioQueue
  and a flush timer drains it every flush_interval_ms into one gzip
  CLIENT_AUDIO_ONLY frame.
- finish() stops the timer and sends whatever is left with the last-packet
  flag, even if nothing is left.

Result delivery:
- SERVER_FULL_RESPONSE -> ASRResult (partial unless the frame is last)
- SERVER_ERROR         -> soft error result "<code>: <message>"
- undecodable frame    -> soft error result
- abnormal close       -> soft error result, then on_close()

Design constraints:
- Client must not touch session state; it only calls on_result / on_close.
- Errors after connect() resolved are delivered as results, never raised
  out of the background tasks.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosedError

from adapters.asr.base import ASRClient, CloseCallback, ResultCallback
from audio.queues import OutboundAudioQueue
from config import ASRConfig
from constants import ASR_MAX_MESSAGE_BYTES, ASR_RESULT_TYPE
from errors import InvalidStateError, ServerProtocolError, TransportError
from observability.logger import log_event
from observability.metrics import timed
from protocol.binary import (
    BinaryProtocolError,
    Compression,
    MessageFlags,
    MessageType,
    Serialization,
    decode_frame,
    encode_frame,
)
from protocol.transcript import ASRResult, parse_full_response
from session.connection_status import ConnectionPhase


_COMPONENT = "asr_client"

WebSocketConnect = Callable[..., Awaitable[Any]]


def build_init_request(config: ASRConfig) -> dict[str, Any]:
    """JSON body of the initial CLIENT_FULL_REQUEST frame."""
    return {
        "user": {"uid": config.user_id},
        "audio": {
            "format": "pcm",
            "codec": "raw",
            "rate": config.audio.sample_rate,
            "bits": config.audio.bit_depth,
            "channel": config.audio.channels,
        },
        "request": {
            "model_name": config.request.model_name,
            "enable_itn": config.request.enable_itn,
            "enable_punc": config.request.enable_punc,
            "enable_ddc": config.request.enable_ddc,
            "show_utterances": config.request.show_utterances,
            "result_type": ASR_RESULT_TYPE,
        },
    }


def build_auth_headers(config: ASRConfig, connect_id: str) -> dict[str, str]:
    """Upgrade headers; request and connect IDs share one UUID."""
    return {
        "X-Api-Resource-Id": config.resource_id,
        "X-Api-Request-Id": connect_id,
        "X-Api-Connect-Id": connect_id,
        "X-Api-Access-Key": config.access_key,
        "X-Api-App-Key": config.app_key,
    }


class DoubaoStreamingASRClient(ASRClient):
    """
    Single-use streaming client for the Doubao bigmodel_async endpoint.

    Args:
        config: Session configuration (credentials, endpoint, pacing)
        on_result: Called synchronously for every result, soft errors included
        on_close: Called once if the server closes the connection first
        ws_connect: websockets-compatible connect(); replaced by fakes in tests
    """

    def __init__(
        self,
        config: ASRConfig,
        on_result: ResultCallback,
        *,
        on_close: CloseCallback | None = None,
        ws_connect: WebSocketConnect = connect,
    ) -> None:
        self._config = config
        self._on_result = on_result
        self._on_close = on_close
        self._ws_connect = ws_connect

        self._phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
        self._ws: Any = None
        self._connect_id: str | None = None

        self._queue = OutboundAudioQueue()

        self._recv_task: asyncio.Task[None] | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._flush_stop: asyncio.Event | None = None

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionPhase:
        return self._phase

    @property
    def connect_id(self) -> str | None:
        return self._connect_id

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        if self._phase is not ConnectionPhase.DISCONNECTED:
            raise InvalidStateError(
                f"connect() requires {ConnectionPhase.DISCONNECTED.value}, "
                f"client is {self._phase.value}"
            )

        self._phase = ConnectionPhase.CONNECTING
        self._connect_id = str(uuid.uuid4())

        log_event({
            "event_type": "ASR_CONNECTING",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
            "endpoint": self._config.endpoint_url,
        })

        try:
            with timed("asr_connect_latency", component=_COMPONENT):
                self._ws = await self._ws_connect(
                    self._config.endpoint_url,
                    additional_headers=build_auth_headers(self._config, self._connect_id),
                    open_timeout=self._config.connect_timeout_s,
                    max_size=ASR_MAX_MESSAGE_BYTES,
                )
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._ws = None
            self._phase = ConnectionPhase.DISCONNECTED
            log_event({
                "event_type": "ASR_CONNECT_FAILED",
                "level": "error",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "error": repr(e),
            })
            raise TransportError(f"ASR connect failed: {e!r}") from e

        init_frame = encode_frame(
            MessageType.CLIENT_FULL_REQUEST,
            build_init_request(self._config),
            flags=MessageFlags.NO_SEQUENCE,
            serialization=Serialization.JSON,
            compression=Compression.GZIP,
        )
        try:
            await self._ws.send(init_frame)
        except Exception as e:  # pylint: disable=broad-exception-caught
            await self._discard_transport()
            self._phase = ConnectionPhase.DISCONNECTED
            log_event({
                "event_type": "ASR_CONNECT_FAILED",
                "level": "error",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "stage": "init_request",
                "error": repr(e),
            })
            raise TransportError(f"ASR init request failed: {e!r}") from e

        log_event({
            "event_type": "ASR_INIT_REQUEST_SENT",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
            "frame_bytes": len(init_frame),
        })

        self._phase = ConnectionPhase.CONNECTED
        self._recv_task = asyncio.create_task(self._recv_loop(self._ws))
        self._start_flush_timer()

        log_event({
            "event_type": "ASR_CONNECTED",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
        })

    def send_audio(self, chunk: bytes) -> None:
        if self._phase is not ConnectionPhase.CONNECTED:
            # Backpressure policy: drop, never buffer for a future connection
            log_event({
                "event_type": "ASR_AUDIO_DROPPED",
                "level": "warning",
                "component": _COMPONENT,
                "phase": self._phase.value,
                "bytes": len(chunk),
            })
            return
        self._queue.push(chunk)

    async def finish(self) -> None:
        await self._stop_flush_timer(graceful=True)

        if self._phase is not ConnectionPhase.CONNECTED:
            log_event({
                "event_type": "ASR_FINISH_SKIPPED",
                "component": _COMPONENT,
                "phase": self._phase.value,
            })
            return

        audio = self._queue.drain()
        await self._send_frame(
            encode_frame(
                MessageType.CLIENT_AUDIO_ONLY,
                audio,
                flags=MessageFlags.LAST_NO_SEQUENCE,
                compression=Compression.GZIP,
            )
        )
        log_event({
            "event_type": "ASR_LAST_PACKET_SENT",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
            "bytes": len(audio),
        })

    async def close(self) -> None:
        if self._phase is ConnectionPhase.DISCONNECTED and self._ws is None:
            self._queue.clear()
            return

        self._phase = ConnectionPhase.CLOSING
        await self._stop_flush_timer(graceful=False)

        recv_task = self._recv_task
        self._recv_task = None
        if (
            recv_task is not None
            and recv_task is not asyncio.current_task()
            and not recv_task.done()
        ):
            recv_task.cancel()
            await asyncio.gather(recv_task, return_exceptions=True)

        await self._discard_transport()
        self._queue.clear()
        self._phase = ConnectionPhase.DISCONNECTED

        log_event({
            "event_type": "ASR_TRANSPORT_CLOSED",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
            "initiator": "client",
        })

    # -------------------------------------------------------------------------
    # Flush timer
    # -------------------------------------------------------------------------

    def _start_flush_timer(self) -> None:
        # At most one timer per connection
        if self._flush_task is not None:
            return
        self._flush_stop = asyncio.Event()
        self._flush_task = asyncio.create_task(self._flush_loop(self._flush_stop))

    async def _stop_flush_timer(self, *, graceful: bool) -> None:
        """
        graceful=True lets an in-progress flush finish sending; otherwise the
        task is cancelled.
        """
        task = self._flush_task
        self._flush_task = None
        if self._flush_stop is not None:
            self._flush_stop.set()
            self._flush_stop = None

        if task is None or task is asyncio.current_task():
            return
        if not graceful:
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _flush_loop(self, stop: asyncio.Event) -> None:
        interval_s = self._config.flush_interval_ms / 1000
        while True:
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_s)
                return
            except asyncio.TimeoutError:
                pass
            await self._flush_queued_audio()

    async def _flush_queued_audio(self) -> None:
        if self._phase is not ConnectionPhase.CONNECTED or self._queue.is_empty():
            return

        audio = self._queue.drain()
        frame = encode_frame(
            MessageType.CLIENT_AUDIO_ONLY,
            audio,
            flags=MessageFlags.NO_SEQUENCE,
            compression=Compression.GZIP,
        )
        try:
            await self._send_frame(frame)
        except TransportError:
            # Already logged; the receive loop reports the close itself
            return

    # -------------------------------------------------------------------------
    # Transport helpers
    # -------------------------------------------------------------------------

    async def _send_frame(self, frame: bytes) -> None:
        ws = self._ws
        if ws is None:
            raise TransportError("ASR transport is not open")
        try:
            await ws.send(frame)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "ASR_SEND_FAILED",
                "level": "error",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "frame_bytes": len(frame),
                "error": repr(e),
            })
            raise TransportError(f"ASR send failed: {e!r}") from e

    async def _discard_transport(self) -> None:
        ws = self._ws
        self._ws = None
        if ws is None:
            return
        try:
            await ws.close()
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "ASR_CLOSE_FAILED",
                "level": "warning",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "error": repr(e),
            })

    # -------------------------------------------------------------------------
    # Receive path
    # -------------------------------------------------------------------------

    async def _recv_loop(self, ws: Any) -> None:
        error: Exception | None = None
        try:
            async for message in ws:
                if isinstance(message, str):
                    continue
                self._handle_response(message)
        except asyncio.CancelledError:
            return
        except ConnectionClosedError as e:
            error = e
        except Exception as e:  # pylint: disable=broad-exception-caught
            error = e

        self._handle_transport_closed(error)

    def _handle_transport_closed(self, error: Exception | None) -> None:
        """Server-side hang-up. Not reached when close() initiated the shutdown."""
        if self._phase is not ConnectionPhase.CONNECTED:
            return

        log_event({
            "event_type": "ASR_TRANSPORT_CLOSED",
            "level": "warning" if error is not None else "info",
            "component": _COMPONENT,
            "connect_id": self._connect_id,
            "initiator": "server",
            "error": repr(error) if error is not None else None,
        })

        self._phase = ConnectionPhase.DISCONNECTED
        self._ws = None
        self._recv_task = None
        self._queue.clear()

        stop = self._flush_stop
        task = self._flush_task
        self._flush_stop = None
        self._flush_task = None
        if stop is not None:
            stop.set()
        if task is not None and not task.done():
            task.cancel()

        if error is not None:
            self._deliver(ASRResult.from_error(f"transport closed: {error}"))
        if self._on_close is not None:
            self._on_close()

    def _handle_response(self, message: bytes) -> None:
        try:
            frame = decode_frame(message)
        except BinaryProtocolError as e:
            log_event({
                "event_type": "ASR_FRAME_DECODE_FAILED",
                "level": "warning",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "error_type": type(e).__name__,
                "error": str(e),
                "frame_bytes": len(message),
            })
            self._deliver(ASRResult.from_error(f"{type(e).__name__}: {e}"))
            return

        if not frame.is_known_type:
            log_event({
                "event_type": "ASR_UNKNOWN_FRAME_IGNORED",
                "level": "debug",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "message_type": frame.message_type,
                "frame_bytes": len(message),
            })
            return

        if frame.message_type == MessageType.SERVER_ERROR:
            server_error = ServerProtocolError(
                frame.error_code if frame.error_code is not None else 0,
                frame.payload,
            )
            log_event({
                "event_type": "ASR_SERVER_ERROR",
                "level": "error",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "code": server_error.code,
                "message": server_error.message,
            })
            self._deliver(ASRResult.from_error(str(server_error)))
            return

        if frame.message_type == MessageType.SERVER_FULL_RESPONSE:
            result = parse_full_response(frame.payload, is_last=frame.is_last)
            if result is not None:
                self._deliver(result)
            return

    def _deliver(self, result: ASRResult) -> None:
        try:
            self._on_result(result)
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "ASR_RESULT_CALLBACK_FAILED",
                "level": "error",
                "component": _COMPONENT,
                "connect_id": self._connect_id,
                "error": repr(e),
            })
