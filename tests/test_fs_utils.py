from pathlib import Path


from voicememo.common.fs import cache_dir, recording_path
from voicememo.common.settings import Settings


def test_recording_path_defaults_to_cache(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("VOICEMEMO_CACHE_DIR", str(tmp_path))
    assert cache_dir() == tmp_path
    assert recording_path(Settings()) == tmp_path / "audiorecord.wav"
    assert recording_path(Settings(file_format="flac")) == tmp_path / "audiorecord.flac"


def test_recording_path_is_stable_across_calls(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("VOICEMEMO_CACHE_DIR", str(tmp_path))
    first = recording_path(Settings())
    first.write_bytes(b"old take")
    # Same file every time; a new recording overwrites it
    assert recording_path(Settings()) == first


def test_explicit_recording_path_wins(tmp_path: Path) -> None:
    target = tmp_path / "memo.flac"
    assert recording_path(Settings(recording_path=str(target))) == target
