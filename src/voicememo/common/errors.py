"""Exceptions shared by the session controller and the audio backends."""

from __future__ import annotations

from pathlib import Path


class VoiceMemoError(Exception):
    pass


class BackendOpenError(VoiceMemoError):
    """A capture or playback backend could not be prepared for `path`."""

    def __init__(self, kind: str, path: str | Path, cause: BaseException | None = None) -> None:
        self.kind = kind
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to open {kind} for {self.path}{detail}")


class PermissionDenied(VoiceMemoError):
    def __init__(self, message: str = "Microphone access was denied") -> None:
        super().__init__(message)
