"""Settings persistence for VoiceMemo.

Stores and retrieves recorder preferences so that they persist across app launches.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import os
import sys
from pathlib import Path
from typing import Any


APP_NAME = "VoiceMemo"


def _default_config_dir() -> Path:
    # Allow tests or callers to override location
    override = os.environ.get("VOICEMEMO_SETTINGS_PATH")
    if override:
        p = Path(override).expanduser()
        # If the override looks like a file path, use it directly
        if p.suffix:
            return p
        # Else treat as directory and append filename
        return p / "settings.json"

    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / APP_NAME
    elif sys.platform.startswith("win"):
        base = (
            Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
            / APP_NAME
        )
    else:
        base = (
            Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
            / APP_NAME.lower()
        )
    return base / "settings.json"


@dataclass
class Settings:
    # Recording target; empty means the default file in the cache directory
    recording_path: str = ""
    file_format: str = "wav"  # wav | flac
    sample_rate: int = 16_000
    bit_depth: int = 16  # 16 or 24
    channels: int = 1

    # Devices by name; empty selects the PortAudio default
    input_device: str = ""
    output_device: str = ""

    # Timer cadence for waveform sampling and the elapsed-time label
    tick_interval_ms: int = 100

    # Set once the microphone rationale has been shown to the user
    rationale_shown: bool = False

    window_width: int = 0
    window_height: int = 0


def get_settings_path() -> Path:
    return _default_config_dir()


def load_settings() -> Settings:
    path = get_settings_path()
    try:
        if path.exists():
            raw = json.loads(path.read_text())
        else:
            raw = {}
    except Exception:
        raw = {}

    # Only keep known keys; fall back to defaults for missing/invalid entries
    defaults = asdict(Settings())
    data: dict[str, Any] = {}
    for k, v in defaults.items():
        if k in raw and type(raw[k]) is type(v):  # noqa: E721 - strict type match
            data[k] = raw[k]
        else:
            data[k] = v
    if data["file_format"] not in ("wav", "flac"):
        data["file_format"] = defaults["file_format"]
    if data["tick_interval_ms"] <= 0:
        data["tick_interval_ms"] = defaults["tick_interval_ms"]
    return Settings(**data)


def save_settings(s: Settings) -> None:
    path = get_settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(s), indent=2))
    except Exception:
        # Best-effort persistence; ignore write errors
        pass
