"""Recording/playback session state machine for VoiceMemo.

The controller owns the single current State and the one backend handle that
goes with it. UI events arrive as request_* calls; results leave as tagged
events through a single sink callable.

  IDLE --record--> RECORDING --record--> IDLE
  IDLE --play----> PLAYING   --stop / natural end--> IDLE

Requests that do not fit the current state are ignored.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol, Union

from .common.debug import dbg, warn
from .common.errors import BackendOpenError, PermissionDenied
from .permissions import PermissionGate, PermissionStatus
from .timer import TickTimer, format_elapsed


class State(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PLAYING = "playing"


class TickKind(Enum):
    SAMPLE = "sample"  # draw a live amplitude sample
    REPLAY = "replay"  # redraw from recorded amplitude history


# ---------- Backend collaborators ----------
class CaptureHandle(Protocol):
    def current_amplitude(self) -> float: ...

    def close(self) -> None: ...


class CaptureBackend(Protocol):
    def open(self, path: Path) -> CaptureHandle: ...


class PlaybackHandle(Protocol):
    def on_completion(self, callback: Callable[[], None]) -> None: ...

    def close(self) -> None: ...


class PlaybackBackend(Protocol):
    def open(self, path: Path) -> PlaybackHandle: ...


# ---------- Observer events ----------
@dataclass(frozen=True)
class Affordances:
    record_enabled: bool
    record_shows_stop: bool
    play_enabled: bool
    stop_enabled: bool

    @classmethod
    def for_state(cls, state: State) -> "Affordances":
        if state is State.RECORDING:
            return cls(record_enabled=True, record_shows_stop=True, play_enabled=False, stop_enabled=False)
        if state is State.PLAYING:
            return cls(record_enabled=False, record_shows_stop=False, play_enabled=False, stop_enabled=True)
        return cls(record_enabled=True, record_shows_stop=False, play_enabled=True, stop_enabled=False)


@dataclass(frozen=True)
class StateChanged:
    state: State
    affordances: Affordances


@dataclass(frozen=True)
class WaveformReset:
    # False before a recording (drop history), True before playback (rewind only)
    keep_history: bool


@dataclass(frozen=True)
class TimerTick:
    elapsed_ms: int
    state: State
    kind: TickKind
    amplitude: Optional[float] = None

    @property
    def display(self) -> str:
        return format_elapsed(self.elapsed_ms)


@dataclass(frozen=True)
class SessionFailed:
    attempted: State
    error: Exception


SessionEvent = Union[StateChanged, WaveformReset, TimerTick, SessionFailed]
EventSink = Callable[[SessionEvent], None]
Dispatch = Callable[[Callable[[], None]], None]


class SessionController:
    """Mediate every transition between IDLE, RECORDING and PLAYING.

    Transitions are serialized by a re-entrant lock. Ticks arrive on the
    timer thread and only read state; the sink must not call back into
    request_* from a tick. Natural playback completion fires on the audio
    backend thread, so it is posted through `dispatch` (the GUI passes its
    inbox queue's ``put``) and then takes the same path as `request_stop()` on
    the control thread. Run it inline only with synchronous fakes.
    """

    def __init__(
        self,
        capture: CaptureBackend,
        playback: PlaybackBackend,
        permissions: PermissionGate,
        sink: EventSink,
        *,
        path: str | Path,
        dispatch: Dispatch,
        timer: Optional[TickTimer] = None,
    ) -> None:
        self._capture = capture
        self._playback = playback
        self._permissions = permissions
        self._sink = sink
        self._path = Path(path)
        self._timer = timer if timer is not None else TickTimer()
        self._timer.set_callback(self._on_tick)
        self._dispatch = dispatch
        self._lock = threading.RLock()

        self._state = State.IDLE
        self._recorder: Optional[CaptureHandle] = None
        self._player: Optional[PlaybackHandle] = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_timer_armed(self) -> bool:
        return self._timer.is_armed

    @property
    def has_backend_handle(self) -> bool:
        return self._recorder is not None or self._player is not None

    # ---------- Requests ----------
    def request_record_toggle(self) -> None:
        with self._lock:
            if self._state is State.RECORDING:
                self._release()
            elif self._state is State.IDLE:
                self._record_if_permitted()
            else:
                dbg("session", "record ignored while playing")

    def request_play(self) -> None:
        with self._lock:
            if self._state is not State.IDLE:
                dbg("session", f"play ignored in {self._state.value}")
                return
            self._start_playing()

    def request_stop(self) -> None:
        with self._lock:
            if self._state is not State.PLAYING:
                dbg("session", f"stop ignored in {self._state.value}")
                return
            self._release()

    def on_permission_result(self, granted: bool) -> None:
        if not granted:
            self._permissions.handle_denial()
            self._emit(SessionFailed(State.RECORDING, PermissionDenied()))
            return
        with self._lock:
            if self._state is State.IDLE:
                self._start_recording()

    def shutdown(self) -> None:
        """Release whatever session is active; used when the app exits."""
        with self._lock:
            if self._state is not State.IDLE:
                self._release()

    # ---------- Transitions ----------
    def _record_if_permitted(self) -> None:
        status = self._permissions.check_permission()
        dbg("session", f"permission {status.value}")
        if status is PermissionStatus.GRANTED:
            self._start_recording()
        elif status is PermissionStatus.NEEDS_RATIONALE:
            self._permissions.show_rationale(self.on_permission_result)
        else:
            self._permissions.request_permission(self.on_permission_result)

    def _start_recording(self) -> None:
        try:
            handle = self._capture.open(self._path)
        except BackendOpenError as e:
            warn(f"recording not started: {e}")
            self._emit(SessionFailed(State.RECORDING, e))
            return
        self._recorder = handle
        self._state = State.RECORDING
        self._emit(WaveformReset(keep_history=False))
        self._arm()
        self._emit(StateChanged(self._state, Affordances.for_state(self._state)))

    def _start_playing(self) -> None:
        try:
            handle = self._playback.open(self._path)
        except BackendOpenError as e:
            warn(f"playback not started: {e}")
            self._emit(SessionFailed(State.PLAYING, e))
            return
        self._player = handle
        self._state = State.PLAYING
        self._emit(WaveformReset(keep_history=True))
        self._arm()
        self._emit(StateChanged(self._state, Affordances.for_state(self._state)))
        # Registered last: a handle that already finished reports immediately
        handle.on_completion(
            lambda: self._dispatch(lambda: self._on_playback_complete(handle))
        )

    def _arm(self) -> None:
        try:
            self._timer.start()
        except RuntimeError:
            # Thread could not be started; do not keep the handle open
            self._release(notify=False)
            raise

    def _release(self, notify: bool = True) -> None:
        # Disarm first: stop() waits out an in-flight tick that may still read the handle
        self._timer.stop()
        recorder, player = self._recorder, self._player
        self._recorder = self._player = None
        previous, self._state = self._state, State.IDLE
        dbg("session", f"{previous.value} -> idle")
        try:
            if recorder is not None:
                recorder.close()
            if player is not None:
                player.close()
        finally:
            if notify:
                self._emit(StateChanged(State.IDLE, Affordances.for_state(State.IDLE)))

    def _on_playback_complete(self, handle: PlaybackHandle) -> None:
        with self._lock:
            if self._player is not handle:
                dbg("session", "completion for a released player ignored")
                return
            self._release()

    # ---------- Ticks (timer thread) ----------
    def _on_tick(self, elapsed_ms: int) -> None:
        state = self._state
        if state is State.RECORDING:
            recorder = self._recorder
            amplitude = recorder.current_amplitude() if recorder is not None else 0.0
            self._emit(TimerTick(elapsed_ms, state, TickKind.SAMPLE, amplitude))
        elif state is State.PLAYING:
            self._emit(TimerTick(elapsed_ms, state, TickKind.REPLAY))

    def _emit(self, event: SessionEvent) -> None:
        self._sink(event)
