"""Amplitude history behind the waveform view.

Samples are appended while recording and walked again by a replay cursor
during playback, one per timer tick.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


class AmplitudeHistory:
    def __init__(self, max_amplitude: float = 32767.0) -> None:
        if max_amplitude <= 0:
            raise ValueError("max_amplitude must be positive")
        self._max = float(max_amplitude)
        self._samples: list[float] = []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def cursor(self) -> int:
        return self._cursor

    def add(self, amplitude: float) -> None:
        self._samples.append(max(0.0, float(amplitude)))
        self._cursor = len(self._samples)

    def clear(self) -> None:
        """Drop all samples, ahead of a new recording."""
        self._samples.clear()
        self._cursor = 0

    def rewind(self) -> None:
        """Restart replay from the first sample, keeping the history."""
        self._cursor = 0

    def replay_next(self) -> Optional[float]:
        if self._cursor >= len(self._samples):
            return None
        value = self._samples[self._cursor]
        self._cursor += 1
        return value

    def recorded(self) -> np.ndarray:
        return self._normalize(self._samples)

    def replayed(self) -> np.ndarray:
        return self._normalize(self._samples[: self._cursor])

    def window(self, count: int) -> np.ndarray:
        """Trailing `count` samples up to the cursor, normalized to 0..1."""
        if count <= 0:
            return np.zeros(0, dtype=np.float32)
        return self.replayed()[-count:]

    def _normalize(self, values: list[float]) -> np.ndarray:
        arr = np.asarray(values, dtype=np.float32) / self._max
        return np.clip(arr, 0.0, 1.0)
