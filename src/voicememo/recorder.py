"""Microphone capture backend for VoiceMemo.

Encapsulates a sounddevice input stream feeding a soundfile writer thread, and
tracks the peak input level for the waveform view.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from .common.debug import dbg, warn
from .common.encoding import subtype_for_bit_depth
from .common.errors import BackendOpenError
from .common.settings import Settings


# Sentinel used to signal the writer thread to finish after draining
_SENTINEL: None = None

# Peak level reported as a 16-bit magnitude, matching MediaRecorder-style meters
MAX_AMPLITUDE = 32767


@dataclass
class CaptureConfig:
    sample_rate: int = 16_000
    channels: int = 1
    blocksize: int = 1024
    device: str = ""  # empty selects the default input device
    file_format: str = "wav"  # wav|flac
    bit_depth: int = 16

    @classmethod
    def from_settings(cls, s: Settings) -> "CaptureConfig":
        return cls(
            sample_rate=s.sample_rate,
            channels=s.channels,
            device=s.input_device,
            file_format=s.file_format,
            bit_depth=s.bit_depth,
        )


class SoundDeviceCapture:
    """Open capture sessions that record the default (or named) input to a file.

    Usage:
      capture = SoundDeviceCapture(CaptureConfig())
      session = capture.open(path)
      ...
      session.close()
    """

    def __init__(self, cfg: Optional[CaptureConfig] = None) -> None:
        self._cfg = cfg or CaptureConfig()

    def open(self, path: Path) -> "CaptureSession":
        session = CaptureSession(self._cfg, Path(path))
        try:
            session.start()
        except (sd.PortAudioError, sf.LibsndfileError, OSError, ValueError, RuntimeError) as e:
            session.close()
            raise BackendOpenError("capture", path, e) from e
        return session


class CaptureSession:
    def __init__(self, cfg: CaptureConfig, path: Path) -> None:
        self._cfg = cfg
        self._path = path
        self._stream: Optional[sd.InputStream] = None
        self._file: Optional[sf.SoundFile] = None
        self._queue: Optional[queue.Queue] = None
        self._writer_thread: Optional[threading.Thread] = None
        self._peak = 0.0
        self._peak_lock = threading.Lock()
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    def start(self) -> None:
        cfg = self._cfg
        device = _find_input_device(cfg.device) if cfg.device else None
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Mode "w" truncates: each recording replaces the previous one
        self._file = sf.SoundFile(
            str(self._path),
            mode="w",
            samplerate=cfg.sample_rate,
            channels=cfg.channels,
            format=cfg.file_format.upper(),
            subtype=subtype_for_bit_depth(cfg.bit_depth),
        )
        self._queue = queue.Queue(maxsize=100)
        self._writer_thread = threading.Thread(
            target=self._writer, args=(self._queue, self._file), name="CaptureWriter", daemon=False
        )
        self._writer_thread.start()

        self._stream = sd.InputStream(
            device=device,
            channels=cfg.channels,
            samplerate=cfg.sample_rate,
            blocksize=cfg.blocksize,
            dtype="float32",
            callback=self._callback,
        )
        self._stream.start()
        dbg("recorder", f"capturing to {self._path}")

    def current_amplitude(self) -> float:
        """Return the peak level since the previous call (0..32767) and reset it."""
        with self._peak_lock:
            peak, self._peak = self._peak, 0.0
        return float(min(peak, 1.0) * MAX_AMPLITUDE)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        stream, self._stream = self._stream, None
        try:
            if stream is not None:
                try:
                    stream.stop()
                finally:
                    stream.close()
        finally:
            self._finish_writer()
        dbg("recorder", "capture closed")

    # ---------- Internals ----------
    def _finish_writer(self) -> None:
        # The stream is stopped, so only the writer consumes from here on and a
        # blocking put always gets through once it has drained the backlog
        if self._queue is not None:
            self._queue.put(_SENTINEL)
        # The file must outlive every write
        if self._writer_thread is not None:
            self._writer_thread.join()

        if self._file is not None:
            self._file.close()
        self._file = self._queue = self._writer_thread = None

    def _writer(self, q: queue.Queue, outfile: sf.SoundFile) -> None:
        failed = False
        while True:
            block = q.get()
            if block is _SENTINEL:
                break
            if failed:
                continue
            try:
                outfile.write(block)
            except (sf.LibsndfileError, OSError) as e:
                # Keep draining so close() can still hand over the sentinel
                warn(f"Failed writing {self._path}: {e}")
                failed = True

    def _callback(self, indata: np.ndarray, frames: int, time_info, status) -> None:  # type: ignore[override]
        if status:
            dbg("recorder", f"audio status: {status}")
        block_peak = float(np.abs(indata).max()) if frames else 0.0
        with self._peak_lock:
            if block_peak > self._peak:
                self._peak = block_peak
        if self._queue is not None:
            try:
                self._queue.put(indata.copy(), block=False)
            except queue.Full:
                pass


def _find_input_device(name: str) -> int:
    devs = sd.query_devices()
    for i, d in enumerate(devs):
        if d.get("name") == name and d.get("max_input_channels", 0) > 0:
            return i
    raise ValueError(
        f"Input device named '{name}' not found or has no input channels.\n"
        f"Available input devices: {list_input_devices()}"
    )


def list_input_devices() -> list[str]:
    """Return names of input-capable devices."""
    devs = sd.query_devices()
    return [d["name"] for d in devs if d.get("max_input_channels", 0) > 0]
