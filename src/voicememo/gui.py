"""VoiceMemo Tk window.

A thin observer over SessionController: three buttons, the elapsed-time label
and a waveform canvas. All session logic lives in `session.py`.
"""

from __future__ import annotations

import queue
import threading
import tkinter as tk
from tkinter import ttk, messagebox
from typing import Callable, Optional

from .common.errors import PermissionDenied
from .common.fs import recording_path
from .common.settings import Settings, load_settings, save_settings
from .permissions import DesktopPermissionGate, PermissionGate
from .player import PlaybackConfig, SoundDevicePlayback
from .recorder import CaptureConfig, SoundDeviceCapture
from .session import (
    CaptureBackend,
    PlaybackBackend,
    SessionController,
    SessionEvent,
    SessionFailed,
    State,
    StateChanged,
    TickKind,
    TimerTick,
    WaveformReset,
)
from .timer import TickTimer, format_elapsed
from .waveform import AmplitudeHistory


BAR_WIDTH = 4
BAR_GAP = 2
INBOX_POLL_MS = 20
_STATUS_TEXT = {
    State.IDLE: "Ready",
    State.RECORDING: "Recording…",
    State.PLAYING: "Playing…",
}


class VoiceMemoApp(tk.Tk):
    def __init__(
        self,
        settings: Optional[Settings] = None,
        capture: Optional[CaptureBackend] = None,
        playback: Optional[PlaybackBackend] = None,
        permissions: Optional[PermissionGate] = None,
    ) -> None:
        super().__init__()
        self.title("VoiceMemo")
        self.resizable(True, True)

        self._settings: Settings = settings or load_settings()
        self._history = AmplitudeHistory()
        # Events and work posted from the timer and PortAudio threads; drained on
        # the Tk loop. Calling into Tk from those threads could block on a main
        # thread that is itself waiting in TickTimer.stop().
        self._pending_events: queue.Queue[SessionEvent] = queue.Queue()
        self._inbox: queue.Queue[Callable[[], None]] = queue.Queue()
        self._inbox_job: Optional[str] = None
        self._build_ui()
        self._restore_window_geometry()

        s = self._settings
        self.controller = SessionController(
            capture or SoundDeviceCapture(CaptureConfig.from_settings(s)),
            playback or SoundDevicePlayback(PlaybackConfig.from_settings(s)),
            permissions or DesktopPermissionGate(s, notify=self._notify),
            self._on_session_event,
            path=recording_path(s),
            timer=TickTimer(s.tick_interval_ms),
            dispatch=self._inbox.put,
        )
        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self._schedule_inbox_poll()

    def _build_ui(self) -> None:
        frm = ttk.Frame(self, padding=12)
        frm.pack(fill="both", expand=True)

        self.timer_var = tk.StringVar(value=format_elapsed(0))
        ttk.Label(frm, textvariable=self.timer_var, font=("Courier", 28)).pack(pady=(0, 8))

        self.canvas = tk.Canvas(frm, height=120, bg="white", highlightthickness=0)
        self.canvas.pack(fill="x", expand=True)
        self.canvas.bind("<Configure>", lambda _e: self._redraw_waveform())

        buttons = ttk.Frame(frm)
        buttons.pack(pady=(10, 0))
        self.btn_record = ttk.Button(buttons, text="🔴 Record", command=self._on_record)
        self.btn_play = ttk.Button(buttons, text="▶ Play", command=self._on_play)
        self.btn_stop = ttk.Button(buttons, text="⏹ Stop", command=self._on_stop)
        for b in (self.btn_record, self.btn_play, self.btn_stop):
            b.pack(side="left", padx=4)
        self.btn_stop.state(["disabled"])

        self.status_var = tk.StringVar(value=_STATUS_TEXT[State.IDLE])
        ttk.Label(frm, textvariable=self.status_var).pack(anchor="w", pady=(8, 0))

    # ------- Button handlers -------
    def _on_record(self) -> None:
        self.controller.request_record_toggle()

    def _on_play(self) -> None:
        self.controller.request_play()

    def _on_stop(self) -> None:
        self.controller.request_stop()

    # ------- Session events -------
    def _on_session_event(self, event: SessionEvent) -> None:
        if threading.current_thread() is threading.main_thread():
            # Ticks queued before this event must land first
            self._flush_pending_events()
            self._apply_event(event)
        else:
            self._pending_events.put(event)

    def _flush_pending_events(self) -> None:
        while True:
            try:
                event = self._pending_events.get_nowait()
            except queue.Empty:
                return
            self._apply_event(event)

    def _drain_inbox(self) -> None:
        self._flush_pending_events()
        while True:
            try:
                fn = self._inbox.get_nowait()
            except queue.Empty:
                return
            fn()

    def _schedule_inbox_poll(self) -> None:
        self._drain_inbox()
        self._inbox_job = self.after(INBOX_POLL_MS, self._schedule_inbox_poll)

    def _apply_event(self, event: SessionEvent) -> None:
        if isinstance(event, TimerTick):
            self.timer_var.set(event.display)
            if event.kind is TickKind.SAMPLE:
                self._history.add(event.amplitude or 0.0)
            else:
                self._history.replay_next()
            self._redraw_waveform()
        elif isinstance(event, StateChanged):
            aff = event.affordances
            self.btn_record.configure(text="⏹ Stop" if aff.record_shows_stop else "🔴 Record")
            self.btn_record.state(["!disabled" if aff.record_enabled else "disabled"])
            self.btn_play.state(["!disabled" if aff.play_enabled else "disabled"])
            self.btn_stop.state(["!disabled" if aff.stop_enabled else "disabled"])
            self.status_var.set(_STATUS_TEXT[event.state])
        elif isinstance(event, WaveformReset):
            if event.keep_history:
                self._history.rewind()
            else:
                self._history.clear()
            self.timer_var.set(format_elapsed(0))
            self._redraw_waveform()
        elif isinstance(event, SessionFailed):
            if isinstance(event.error, PermissionDenied):
                self.status_var.set("Microphone unavailable")
            else:
                messagebox.showerror(f"Failed to start {event.attempted.value}", str(event.error))
                self.status_var.set(_STATUS_TEXT[self.controller.state])

    def _redraw_waveform(self) -> None:
        c = self.canvas
        c.delete("wave")
        width = max(1, c.winfo_width())
        height = max(1, c.winfo_height())
        values = self._history.window(width // (BAR_WIDTH + BAR_GAP))
        mid = height / 2
        # Newest sample on the right edge
        x = width - len(values) * (BAR_WIDTH + BAR_GAP)
        for v in values:
            half = max(1.0, float(v) * (height - 4) / 2)
            c.create_rectangle(x, mid - half, x + BAR_WIDTH, mid + half, fill="#e02424", outline="", tags="wave")
            x += BAR_WIDTH + BAR_GAP

    def _notify(self, message: str) -> None:
        messagebox.showinfo("Microphone access", message)

    # ------- Lifecycle -------
    def _restore_window_geometry(self) -> None:
        width = self._settings.window_width
        height = self._settings.window_height
        if width and height:
            self.geometry(f"{max(360, width)}x{max(260, height)}")
        else:
            self.minsize(360, 260)

    def _persist_geometry(self) -> None:
        try:
            self._settings.window_width = max(360, int(self.winfo_width()))
            self._settings.window_height = max(260, int(self.winfo_height()))
        except tk.TclError:
            return

    def _on_close(self) -> None:
        if self._inbox_job is not None:
            self.after_cancel(self._inbox_job)
            self._inbox_job = None
        try:
            self.controller.shutdown()
        finally:
            self._persist_geometry()
            save_settings(self._settings)
            self.destroy()


def main() -> None:
    app = VoiceMemoApp()
    app.mainloop()


if __name__ == "__main__":
    main()
