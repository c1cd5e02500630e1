"""Playback backend for VoiceMemo.

Decodes the recording with soundfile and streams it through a sounddevice
output stream, reporting natural end-of-file to registered listeners.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from .common.debug import dbg, warn
from .common.errors import BackendOpenError
from .common.settings import Settings


@dataclass
class PlaybackConfig:
    device: str = ""  # empty selects the default output device
    blocksize: int = 1024

    @classmethod
    def from_settings(cls, s: Settings) -> "PlaybackConfig":
        return cls(device=s.output_device)


class SoundDevicePlayback:
    def __init__(self, cfg: Optional[PlaybackConfig] = None) -> None:
        self._cfg = cfg or PlaybackConfig()

    def open(self, path: Path) -> "PlaybackSession":
        session = PlaybackSession(self._cfg, Path(path))
        try:
            session.start()
        except (sd.PortAudioError, sf.LibsndfileError, OSError, ValueError, RuntimeError) as e:
            session.close()
            raise BackendOpenError("playback", path, e) from e
        return session


class PlaybackSession:
    """Play one decoded file once.

    Completion listeners fire a single time, from the PortAudio thread, and only
    when the data ran out; closing the session early does not count as completion.
    """

    def __init__(self, cfg: PlaybackConfig, path: Path) -> None:
        self._cfg = cfg
        self._path = path
        self._data: Optional[np.ndarray] = None
        self._pos = 0
        self._stream: Optional[sd.OutputStream] = None
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []
        self._drained = False
        self._finished = False
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    def start(self) -> None:
        if not self._path.exists():
            raise FileNotFoundError(f"No recording at {self._path}")
        data, samplerate = sf.read(str(self._path), dtype="float32", always_2d=True)
        self._data = data
        self._pos = 0
        device = _find_output_device(self._cfg.device) if self._cfg.device else None
        self._stream = sd.OutputStream(
            device=device,
            channels=data.shape[1],
            samplerate=samplerate,
            blocksize=self._cfg.blocksize,
            dtype="float32",
            callback=self._callback,
            finished_callback=self._on_finished,
        )
        self._stream.start()
        dbg("player", f"playing {self._path} ({len(data)} frames @ {samplerate} Hz)")

    def on_completion(self, callback: Callable[[], None]) -> None:
        with self._lock:
            already_done = self._finished and not self._closed
            if not already_done:
                self._listeners.append(callback)
        if already_done:
            callback()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._listeners.clear()
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
            finally:
                stream.close()
        self._data = None
        dbg("player", "playback closed")

    # ---------- Internals ----------
    def _callback(self, outdata: np.ndarray, frames: int, time_info, status) -> None:  # type: ignore[override]
        if status:
            dbg("player", f"audio status: {status}")
        data = self._data
        if data is None:
            outdata.fill(0)
            raise sd.CallbackStop
        chunk = data[self._pos:self._pos + frames]
        n = len(chunk)
        outdata[:n] = chunk
        if n < frames:
            outdata[n:] = 0
            self._drained = True
            raise sd.CallbackStop
        self._pos += n

    def _on_finished(self) -> None:
        with self._lock:
            if not self._drained or self._closed or self._finished:
                return
            self._finished = True
            listeners = list(self._listeners)
            self._listeners.clear()
        for cb in listeners:
            try:
                cb()
            except Exception as e:  # noqa: BLE001
                warn(f"playback completion listener failed: {e}")


def _find_output_device(name: str) -> int:
    devs = sd.query_devices()
    for i, d in enumerate(devs):
        if d.get("name") == name and d.get("max_output_channels", 0) > 0:
            return i
    raise ValueError(
        f"Output device named '{name}' not found or has no output channels.\n"
        f"Available output devices: {list_output_devices()}"
    )


def list_output_devices() -> list[str]:
    """Return names of output-capable devices."""
    devs = sd.query_devices()
    return [d["name"] for d in devs if d.get("max_output_channels", 0) > 0]
