import json
from pathlib import Path

from voicememo.common.settings import load_settings, save_settings, Settings


def test_settings_load_defaults_and_roundtrip(tmp_path: Path, monkeypatch) -> None:
    # Direct settings file to temp location
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("VOICEMEMO_SETTINGS_PATH", str(settings_file))

    s = load_settings()
    # Defaults
    assert isinstance(s, Settings)
    assert s.tick_interval_ms == 100
    assert s.file_format == "wav"
    assert s.rationale_shown is False

    # Modify and save
    s.input_device = "USB Mic"
    s.rationale_shown = True
    s.file_format = "flac"
    save_settings(s)

    # Reload and verify persistence
    s2 = load_settings()
    assert s2.input_device == "USB Mic"
    assert s2.rationale_shown is True
    assert s2.file_format == "flac"

    # Check file contents are valid JSON
    data = json.loads(settings_file.read_text())
    assert data["input_device"] == "USB Mic"


def test_unknown_and_invalid_values_fall_back(tmp_path: Path, monkeypatch) -> None:
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("VOICEMEMO_SETTINGS_PATH", str(settings_file))

    settings_file.write_text(
        json.dumps(
            {
                "output_device": "Speakers",
                "unknown_key": 123,
                "sample_rate": "fast",  # wrong type; should fallback to default
                "file_format": "mp3",  # not supported for the cache file
                "tick_interval_ms": 0,
            }
        )
    )

    s = load_settings()
    assert s.output_device == "Speakers"
    assert s.sample_rate == 16_000
    assert s.file_format == "wav"
    assert s.tick_interval_ms == 100


def test_corrupt_file_yields_defaults(tmp_path: Path, monkeypatch) -> None:
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("VOICEMEMO_SETTINGS_PATH", str(settings_file))
    settings_file.write_text("{not json")

    assert load_settings() == Settings()


def test_directory_override_appends_filename(tmp_path: Path, monkeypatch) -> None:
    from voicememo.common.settings import get_settings_path

    monkeypatch.setenv("VOICEMEMO_SETTINGS_PATH", str(tmp_path / "conf"))
    assert get_settings_path() == tmp_path / "conf" / "settings.json"
