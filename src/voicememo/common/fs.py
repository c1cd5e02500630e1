"""Filesystem helpers for VoiceMemo.

The app keeps exactly one recording: a fixed file in the per-user cache
directory that every new recording overwrites.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from .encoding import format_default_extension, replace_extension
from .settings import APP_NAME, Settings


RECORDING_BASENAME = "audiorecord"


def cache_dir() -> Path:
    """Return the per-user cache directory (not created).

    VOICEMEMO_CACHE_DIR overrides the platform default.
    """
    override = os.environ.get("VOICEMEMO_CACHE_DIR")
    if override:
        return Path(override).expanduser()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches" / APP_NAME
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / APP_NAME / "Cache"
    base = Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))
    return base / APP_NAME.lower()


def recording_path(settings: Settings) -> Path:
    """Return the single recording file for `settings`.

    Examples:
    - defaults -> "<cache>/audiorecord.wav"
    - file_format="flac" -> "<cache>/audiorecord.flac"
    - recording_path="~/memo.wav" -> "/home/me/memo.wav" (used as-is)
    """
    if settings.recording_path:
        return Path(settings.recording_path).expanduser()
    ext = format_default_extension(settings.file_format)  # type: ignore[arg-type]
    return cache_dir() / replace_extension(RECORDING_BASENAME, ext)
