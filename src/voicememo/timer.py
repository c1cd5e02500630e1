"""Restartable periodic tick source for VoiceMemo.

Drives waveform sampling and the elapsed-time label while a session is active.

Usage:
  timer = TickTimer(100, on_tick=lambda ms: print(format_elapsed(ms)))
  timer.start()
  ...
  timer.stop()
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .common.debug import dbg, warn


DEFAULT_INTERVAL_MS = 100

TickCallback = Callable[[int], None]


def format_elapsed(elapsed_ms: int) -> str:
    """Return `elapsed_ms` as MM:SS.hh, e.g. 125430 -> "02:05.43"."""
    minutes = elapsed_ms // 60_000
    seconds = (elapsed_ms // 1000) % 60
    hundredths = (elapsed_ms % 1000) // 10
    return f"{minutes:02d}:{seconds:02d}.{hundredths:02d}"


class TickTimer:
    """Invoke a callback with the elapsed milliseconds at a fixed cadence.

    Each `start()` spawns a fresh worker thread tagged with a generation number.
    The callback runs while holding the timer lock and only if the worker's
    generation is still current; `stop()` bumps the generation under that same
    lock, so once it returns no callback can fire.
    """

    def __init__(
        self,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        on_tick: Optional[TickCallback] = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval_ms} ms")
        self._interval_ms = int(interval_ms)
        self._on_tick = on_tick
        # Re-entrant so the callback itself may call stop()/start()
        self._lock = threading.RLock()
        self._generation = 0
        self._armed = False
        self._wake: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def is_armed(self) -> bool:
        return self._armed

    def set_callback(self, on_tick: Optional[TickCallback]) -> None:
        with self._lock:
            self._on_tick = on_tick

    # ---------- Public API ----------
    def start(self) -> None:
        """Arm the timer from zero, discarding any previous run."""
        self.stop()
        with self._lock:
            self._generation += 1
            wake = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(self._generation, wake, time.monotonic()),
                name="TickTimer",
                daemon=True,
            )
            self._wake = wake
            self._thread = thread
            self._armed = True
            thread.start()
        dbg("timer", f"armed every {self._interval_ms} ms")

    def stop(self) -> None:
        with self._lock:
            if not self._armed:
                return
            self._armed = False
            self._generation += 1
            wake, thread = self._wake, self._thread
            self._wake = self._thread = None
            if wake is not None:
                wake.set()
        # The stale worker exits on its next generation check; joining from
        # inside the callback would deadlock on ourselves.
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        dbg("timer", "disarmed")

    # ---------- Internals ----------
    def _run(self, generation: int, wake: threading.Event, started_at: float) -> None:
        interval = self._interval_ms / 1000.0
        deadline = started_at
        while True:
            deadline += interval
            if wake.wait(max(0.0, deadline - time.monotonic())):
                return
            with self._lock:
                if generation != self._generation:
                    return
                elapsed_ms = max(0, int((time.monotonic() - started_at) * 1000))
                callback = self._on_tick
                if callback is not None:
                    try:
                        callback(elapsed_ms)
                    except Exception as e:  # noqa: BLE001
                        warn(f"tick callback failed: {e}")
            # A slow consumer pushes the schedule back rather than queueing catch-up ticks
            deadline = max(deadline, time.monotonic())
