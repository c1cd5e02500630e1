"""Microphone permission gate.

The session controller only asks for a status and forwards the result of a
request; deciding between the rationale and the system settings lives here.
"""

from __future__ import annotations

import subprocess
import sys
from enum import Enum
from typing import Callable, Optional, Protocol

from .common.debug import dbg, warn
from .common.settings import Settings, save_settings


PermissionCallback = Callable[[bool], None]

RATIONALE_MESSAGE = (
    "VoiceMemo needs access to a microphone to record. "
    "Connect an input device or allow microphone access, then try again."
)
SETTINGS_MESSAGE = (
    "Microphone access is still unavailable. Enable it for VoiceMemo (or the Python "
    "interpreter) in your system privacy settings and restart the app."
)

_MAC_MICROPHONE_PANE = (
    "x-apple.systempreferences:com.apple.preference.security?Privacy_Microphone"
)


class PermissionStatus(Enum):
    GRANTED = "granted"
    DENIED = "denied"
    NEEDS_RATIONALE = "needs_rationale"


class DenialAction(Enum):
    SHOW_RATIONALE = "show_rationale"
    OPEN_SETTINGS = "open_settings"


def denial_action(rationale_shown: bool) -> DenialAction:
    """The rationale is offered once; after that the user is sent to settings."""
    return DenialAction.OPEN_SETTINGS if rationale_shown else DenialAction.SHOW_RATIONALE


class PermissionGate(Protocol):
    def check_permission(self) -> PermissionStatus: ...

    def request_permission(self, on_result: PermissionCallback) -> None: ...

    def show_rationale(self, on_result: PermissionCallback) -> None: ...

    def handle_denial(self) -> None: ...


def _has_input_device() -> bool:
    # Imported lazily so the gate can be constructed without PortAudio
    from .recorder import list_input_devices

    try:
        return bool(list_input_devices())
    except Exception as e:  # noqa: BLE001
        dbg("permissions", f"device probe failed: {e}")
        return False


class DesktopPermissionGate:
    """Desktop stand-in for an OS microphone permission.

    Access counts as granted when PortAudio reports at least one input device.
    Whether the rationale was already shown is remembered in the settings file.
    """

    def __init__(
        self,
        settings: Settings,
        probe: Optional[Callable[[], bool]] = None,
        notify: Optional[Callable[[str], None]] = None,
        persist: Callable[[Settings], None] = save_settings,
    ) -> None:
        self._settings = settings
        self._probe = probe or _has_input_device
        self._notify = notify or warn
        self._persist = persist

    def check_permission(self) -> PermissionStatus:
        if self._probe():
            return PermissionStatus.GRANTED
        if self._settings.rationale_shown:
            return PermissionStatus.DENIED
        return PermissionStatus.NEEDS_RATIONALE

    def request_permission(self, on_result: PermissionCallback) -> None:
        on_result(self._probe())

    def show_rationale(self, on_result: PermissionCallback) -> None:
        self._notify(RATIONALE_MESSAGE)
        if not self._settings.rationale_shown:
            self._settings.rationale_shown = True
            self._persist(self._settings)
        self.request_permission(on_result)

    def handle_denial(self) -> None:
        action = denial_action(self._settings.rationale_shown)
        dbg("permissions", f"denied -> {action.value}")
        if action is DenialAction.SHOW_RATIONALE:
            # The next record press asks again; a second denial goes to settings
            self._notify(RATIONALE_MESSAGE)
            self._settings.rationale_shown = True
            self._persist(self._settings)
        else:
            self._notify(SETTINGS_MESSAGE)
            open_privacy_settings()


def open_privacy_settings() -> None:
    """Open the OS microphone privacy pane where one exists (macOS only)."""
    if sys.platform != "darwin":
        return
    try:
        subprocess.run(["open", _MAC_MICROPHONE_PANE], check=False)
    except OSError as e:
        dbg("permissions", f"could not open settings: {e}")
