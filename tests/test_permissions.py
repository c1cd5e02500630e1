from voicememo.common.settings import Settings
from voicememo.permissions import (
    DenialAction,
    DesktopPermissionGate,
    PermissionStatus,
    RATIONALE_MESSAGE,
    SETTINGS_MESSAGE,
    denial_action,
)


def _gate(settings: Settings, available: bool):
    messages: list[str] = []
    saved: list[bool] = []
    gate = DesktopPermissionGate(
        settings,
        probe=lambda: available,
        notify=messages.append,
        persist=lambda s: saved.append(s.rationale_shown),
    )
    return gate, messages, saved


def test_denial_action_rationale_once_then_settings() -> None:
    assert denial_action(False) is DenialAction.SHOW_RATIONALE
    assert denial_action(True) is DenialAction.OPEN_SETTINGS


def test_granted_when_input_device_present() -> None:
    gate, messages, _ = _gate(Settings(), available=True)
    assert gate.check_permission() is PermissionStatus.GRANTED

    results: list[bool] = []
    gate.request_permission(results.append)
    assert results == [True]
    assert messages == []


def test_missing_device_needs_rationale_first() -> None:
    s = Settings()
    gate, messages, saved = _gate(s, available=False)
    assert gate.check_permission() is PermissionStatus.NEEDS_RATIONALE

    results: list[bool] = []
    gate.show_rationale(results.append)
    assert messages == [RATIONALE_MESSAGE]
    assert results == [False]
    assert s.rationale_shown is True
    assert saved == [True]
    assert gate.check_permission() is PermissionStatus.DENIED


def test_handle_denial_escalates_to_settings(monkeypatch) -> None:
    opened: list[bool] = []
    monkeypatch.setattr(
        "voicememo.permissions.open_privacy_settings", lambda: opened.append(True)
    )
    s = Settings()
    gate, messages, _ = _gate(s, available=False)

    gate.handle_denial()
    assert messages == [RATIONALE_MESSAGE]
    assert opened == []

    gate.handle_denial()
    assert messages == [RATIONALE_MESSAGE, SETTINGS_MESSAGE]
    assert opened == [True]
