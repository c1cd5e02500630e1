import numpy as np
import pytest

from voicememo.waveform import AmplitudeHistory


def test_replay_walks_recorded_samples() -> None:
    h = AmplitudeHistory(max_amplitude=100)
    for v in (10, 50, 200):
        h.add(v)
    assert len(h) == 3
    np.testing.assert_allclose(h.recorded(), [0.1, 0.5, 1.0])

    h.rewind()
    assert h.replayed().size == 0
    assert h.replay_next() == 10
    assert h.replay_next() == 50
    np.testing.assert_allclose(h.window(1), [0.5])
    assert h.replay_next() == 200
    assert h.replay_next() is None


def test_clear_drops_history() -> None:
    h = AmplitudeHistory()
    h.add(1000)
    h.clear()
    assert len(h) == 0
    assert h.replay_next() is None
    assert h.window(10).size == 0


def test_negative_amplitude_clamps_to_zero() -> None:
    h = AmplitudeHistory(max_amplitude=10)
    h.add(-5)
    np.testing.assert_allclose(h.recorded(), [0.0])


def test_invalid_scale_rejected() -> None:
    with pytest.raises(ValueError):
        AmplitudeHistory(max_amplitude=0)
