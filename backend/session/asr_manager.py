"""
Recognition session manager.

Owns the SessionState machine and zero-or-one protocol client:

    start_session()  Idle|Completed -> Connecting -> Ready
    send_audio()     Ready -> Recording (first chunk), forwards every chunk
    stop_session()   Ready|Recording -> Processing -> Completed
    cancel_session() any -> Idle

Responsibilities:
- Create a fresh client per session and always discard it at session end
- Aggregate partial results and the (single) final result
- Bounded wait for the final result, degrading to the last partial
- Record completed transcriptions in bounded history
- Emit session events to subscribers

Non-responsibilities:
- No framing or transport (adapters.asr)
- No rewriting (adapters.llm; callers chain the two)
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Callable, Optional

from adapters.asr.base import ASRClient, CloseCallback, ResultCallback
from adapters.asr.doubao_streaming import DoubaoStreamingASRClient
from config import ASRConfig
from errors import InvalidStateError, ResultTimeoutError
from observability.logger import log_event
from orchestrator.enums.state import SessionState
from orchestrator.events import EventRegistry, Listener, SessionEvent, SessionEventType
from orchestrator.transitions import Trigger, next_state
from protocol.transcript import ASRResult
from session.history import HistoryEntry, TranscriptionHistory


_COMPONENT = "asr_session"

TRANSPORT_CLOSED_MESSAGE = "transport closed by server"

ClientFactory = Callable[[ASRConfig, ResultCallback, CloseCallback], ASRClient]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _default_client_factory(
    config: ASRConfig,
    on_result: ResultCallback,
    on_close: CloseCallback,
) -> ASRClient:
    return DoubaoStreamingASRClient(config, on_result, on_close=on_close)


class ASRSessionManager:
    """
    High-level session API over a streaming ASR client.

    Usage:
        manager = ASRSessionManager(AppConfig.load_from_env().asr_config())
        manager.on("result", lambda ev: print(ev.result.text))

        await manager.start_session()
        manager.send_audio(pcm_chunk)
        result = await manager.stop_session()

    Setup failures are raised; failures during a live session arrive as
    `error` events.
    """

    def __init__(
        self,
        config: ASRConfig,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client_factory

        self._state: SessionState = SessionState.IDLE
        self._events = EventRegistry()
        self._history = TranscriptionHistory(config.max_history_size)

        # Per-session bookkeeping
        self._client: Optional[ASRClient] = None
        self._client_connected: bool = False
        self._transport_lost: bool = False
        self._session_id: Optional[str] = None
        self._session_start_ms: Optional[int] = None
        self._partial_results: list[ASRResult] = []
        self._final_result: Optional[ASRResult] = None

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ASRConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        """Most-recent-first."""
        return self._history.entries()

    @property
    def partial_results(self) -> tuple[ASRResult, ...]:
        return tuple(self._partial_results)

    @property
    def final_result(self) -> Optional[ASRResult]:
        return self._final_result

    def clear_history(self) -> None:
        self._history.clear()

    def get_history_entry(self, entry_id: str) -> Optional[HistoryEntry]:
        return self._history.get(entry_id)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(self, event_type: SessionEventType | str, listener: Listener) -> None:
        self._events.on(event_type, listener)

    def off(self, event_type: SessionEventType | str, listener: Listener) -> None:
        self._events.off(event_type, listener)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(self) -> None:
        """
        Open a new session.

        Raises:
            InvalidStateError: not Idle or Completed
            TransportError (or whatever connect() raised): state becomes Error
        """
        self._transition(Trigger.START)

        self._session_id = uuid.uuid4().hex
        self._session_start_ms = _now_ms()
        self._partial_results = []
        self._final_result = None
        self._transport_lost = False

        client: Optional[ASRClient] = None
        try:
            client = self._client_factory(
                self._config,
                self._handle_result,
                self._handle_client_closed,
            )
            self._client = client
            await client.connect()
        except Exception as e:
            if self._client is client:
                self._transition(Trigger.CONNECT_FAILED)
                self._emit(SessionEventType.ERROR, error=str(e))
                await self._cleanup()
            raise

        if self._client is not client:
            # cancel_session() ran while connect() was in flight
            await client.close()
            raise InvalidStateError("session was cancelled while connecting")

        self._client_connected = True
        self._transition(Trigger.CONNECTED)
        self._emit(SessionEventType.CONNECTED)

    def send_audio(self, chunk: bytes) -> None:
        """
        Forward one PCM16 chunk to the client.

        Raises:
            InvalidStateError: no session is active
        """
        if self._client is None:
            raise InvalidStateError("no active session; call start_session() first")

        if self._state is SessionState.READY:
            self._transition(Trigger.AUDIO)

        if self._state is not SessionState.RECORDING:
            log_event({
                "event_type": "SESSION_AUDIO_DROPPED",
                "level": "warning",
                "component": _COMPONENT,
                "session_id": self._session_id,
                "state": self._state.value,
                "bytes": len(chunk),
            })
            return

        self._client.send_audio(chunk)

    async def stop_session(self) -> ASRResult:
        """
        Send the last packet and wait for the final result.

        Returns the final result, or the last partial promoted to final when
        the wait times out.

        Raises:
            InvalidStateError: not Ready or Recording
            ResultTimeoutError: no final and no partial result in time
        """
        if self._client is None:
            raise InvalidStateError("no active session; call start_session() first")
        if self._state not in (SessionState.READY, SessionState.RECORDING):
            raise InvalidStateError(
                f"stop_session() requires ready or recording, state is {self._state.value}"
            )

        client = self._client
        self._transition(Trigger.STOP)

        try:
            await client.finish()
            result = await self._wait_for_final_result()

            self._transition(Trigger.FINALIZED)
            if self._config.auto_save_history and result.text:
                self._record_history(result)
            return result
        except Exception as e:
            if self._state is SessionState.PROCESSING:
                self._transition(Trigger.FAILED)
                self._emit(SessionEventType.ERROR, error=str(e))
            raise
        finally:
            await self._cleanup()

    async def cancel_session(self) -> None:
        """Abort any session, drop buffered results, return to Idle. Always safe."""
        await self._cleanup()
        self._partial_results = []
        self._final_result = None
        self._transition(Trigger.CANCEL)

    # ------------------------------------------------------------------
    # Client callbacks
    # ------------------------------------------------------------------

    def _handle_result(self, result: ASRResult) -> None:
        if result.error is not None:
            self._emit(SessionEventType.ERROR, result=result, error=result.error)
            return

        self._emit(SessionEventType.RESULT, result=result)

        if result.is_partial:
            self._partial_results.append(result)
        elif self._final_result is None:
            self._final_result = result
        else:
            log_event({
                "event_type": "SESSION_DUPLICATE_FINAL_IGNORED",
                "level": "warning",
                "component": _COMPONENT,
                "session_id": self._session_id,
                "char_count": len(result.text),
            })

    def _handle_client_closed(self) -> None:
        """Server closed the connection."""
        self._transport_lost = True
        if not self._client_connected:
            return
        self._client_connected = False
        self._emit(SessionEventType.DISCONNECTED)

        if self._state in (SessionState.READY, SessionState.RECORDING):
            self._transition(Trigger.TRANSPORT_LOST)
            self._emit(SessionEventType.ERROR, error=TRANSPORT_CLOSED_MESSAGE)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _wait_for_final_result(self) -> ASRResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.final_result_timeout_ms / 1000
        poll_s = self._config.final_result_poll_ms / 1000

        while self._final_result is None:
            if self._state is not SessionState.PROCESSING:
                raise InvalidStateError("session was cancelled while awaiting the final result")
            if self._transport_lost or loop.time() >= deadline:
                return self._last_partial_as_final()
            await asyncio.sleep(poll_s)

        return self._final_result

    def _last_partial_as_final(self) -> ASRResult:
        if not self._partial_results:
            raise ResultTimeoutError(
                f"no final result within {self._config.final_result_timeout_ms} ms"
            )
        result = self._partial_results[-1].as_final()
        log_event({
            "event_type": "SESSION_FINAL_TIMEOUT_DEGRADED",
            "level": "warning",
            "component": _COMPONENT,
            "session_id": self._session_id,
            "partials": len(self._partial_results),
            "transport_lost": self._transport_lost,
        })
        return result

    def _record_history(self, result: ASRResult) -> None:
        end_ms = _now_ms()
        start_ms = self._session_start_ms if self._session_start_ms is not None else end_ms
        self._history.add(
            HistoryEntry(
                id=self._session_id or uuid.uuid4().hex,
                text=result.text,
                start_time=start_ms,
                end_time=end_ms,
                duration_ms=end_ms - start_ms,
            )
        )

    async def _cleanup(self) -> None:
        """Close and discard the client. Emits `disconnected` if it was still up."""
        client = self._client
        was_connected = self._client_connected

        self._client = None
        self._client_connected = False
        self._session_start_ms = None

        if client is not None:
            await client.close()
        if was_connected:
            self._emit(SessionEventType.DISCONNECTED)

    def _transition(self, trigger: Trigger) -> None:
        new_state = next_state(self._state, trigger)
        if new_state is self._state:
            return

        previous = self._state
        self._state = new_state
        log_event({
            "event_type": "SESSION_STATE_CHANGED",
            "component": _COMPONENT,
            "session_id": self._session_id,
            "from": previous.value,
            "to": new_state.value,
            "trigger": trigger.value,
        })
        self._emit(SessionEventType.STATE_CHANGE)

    def _emit(
        self,
        event_type: SessionEventType,
        *,
        result: Optional[ASRResult] = None,
        error: Optional[str] = None,
    ) -> None:
        self._events.emit(
            SessionEvent(
                type=event_type,
                timestamp_ms=_now_ms(),
                state=self._state,
                result=result,
                error=error,
            )
        )
