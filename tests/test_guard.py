"""Tests for the read-only guard."""

import os
import stat
from pathlib import Path

import pytest

from rhlock.guard import ReadOnlyGuard, is_read_only, set_read_only
from rhlock.models import GuardState, LockDescriptor

LOCKED_BY_OTHER = LockDescriptor(is_locked=True, sentinel_owner_machine="STUDIO-MAC")
LOCKED_BY_SELF = LockDescriptor(
    is_locked=True, is_locked_by_current_actor=True, sentinel_owner_machine="OFFICE-PC"
)


class RecordingScheduler:
    """Collects scheduled actions so tests decide when they run."""

    def __init__(self):
        self.calls = []

    def __call__(self, delay, action):
        self.calls.append((delay, action))

    def run_all(self):
        for _, action in self.calls:
            action()


@pytest.fixture
def doc(tmp_path: Path) -> Path:
    path = tmp_path / "report.3dm"
    path.write_bytes(b"3dm")
    os.chmod(path, 0o644)
    yield path
    os.chmod(path, 0o644)


def test_attribute_helpers(doc: Path):
    assert is_read_only(doc) is False
    set_read_only(doc, True)
    assert is_read_only(doc) is True
    assert not os.stat(doc).st_mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)
    set_read_only(doc, False)
    assert is_read_only(doc) is False


def test_protect_and_restore_writable_file(doc: Path):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(restore_delay=3.0, scheduler=scheduler)

    session = guard.begin_protected_open(doc, LOCKED_BY_OTHER)

    assert session.original_read_only is False
    assert is_read_only(doc) is True
    assert guard.state(doc) == GuardState.LOCKED_PROTECTING

    guard.schedule_restore(doc)

    assert guard.state(doc) == GuardState.PROTECTED_OPEN
    assert [delay for delay, _ in scheduler.calls] == [3.0]
    assert is_read_only(doc) is True

    scheduler.run_all()

    assert is_read_only(doc) is False
    assert guard.state(doc) == GuardState.IDLE


def test_already_read_only_file_is_never_restored(doc: Path):
    set_read_only(doc, True)
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    session = guard.begin_protected_open(doc, LOCKED_BY_OTHER)
    guard.schedule_restore(doc)

    assert session.original_read_only is True
    assert scheduler.calls == []
    assert is_read_only(doc) is True
    assert guard.state(doc) == GuardState.IDLE


@pytest.mark.parametrize("descriptor", [LockDescriptor(), LOCKED_BY_SELF])
def test_unlocked_or_self_locked_stays_idle(doc: Path, descriptor):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    assert guard.begin_protected_open(doc, descriptor) is None
    guard.schedule_restore(doc)

    assert is_read_only(doc) is False
    assert scheduler.calls == []
    assert guard.state(doc) == GuardState.IDLE


def test_missing_file_is_not_fatal(tmp_path: Path):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)
    missing = tmp_path / "gone.3dm"

    session = guard.begin_protected_open(missing, LOCKED_BY_OTHER)
    guard.schedule_restore(missing)
    scheduler.run_all()

    assert session.original_read_only is False
    assert guard.state(missing) == GuardState.IDLE


def test_restore_is_unconditional(doc: Path):
    """Restore clears read-only even if it was set again externally in between"""
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    guard.begin_protected_open(doc, LOCKED_BY_OTHER)
    guard.schedule_restore(doc)
    set_read_only(doc, True)
    scheduler.run_all()

    assert is_read_only(doc) is False


def test_overlapping_sessions_keep_first_original_state(doc: Path):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    first = guard.begin_protected_open(doc, LOCKED_BY_OTHER)
    second = guard.begin_protected_open(str(doc), LOCKED_BY_OTHER)

    assert second is first
    assert second.original_read_only is False

    guard.schedule_restore(doc)
    scheduler.run_all()

    assert is_read_only(doc) is False


def test_sessions_are_keyed_by_absolute_path(doc: Path, monkeypatch):
    monkeypatch.chdir(doc.parent)
    guard = ReadOnlyGuard(scheduler=RecordingScheduler())

    guard.begin_protected_open("report.3dm", LOCKED_BY_OTHER)

    assert guard.session(doc).path == str(doc)


def test_open_with_protection_sees_read_only_file(doc: Path):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)
    observed = []

    result = guard.open_with_protection(doc, LOCKED_BY_OTHER, lambda p: observed.append(is_read_only(p)) or "opened")

    assert result == "opened"
    assert observed == [True]
    assert len(scheduler.calls) == 1
    scheduler.run_all()
    assert is_read_only(doc) is False


def test_open_with_protection_restores_when_opener_fails(doc: Path):
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    def opener(path):
        raise OSError("editor missing")

    with pytest.raises(OSError):
        guard.open_with_protection(doc, LOCKED_BY_OTHER, opener)

    scheduler.run_all()
    assert is_read_only(doc) is False


def test_default_scheduler_runs_restore_on_timer(doc: Path):
    guard = ReadOnlyGuard(restore_delay=0.05)

    guard.begin_protected_open(doc, LOCKED_BY_OTHER)
    guard.schedule_restore(doc)
    guard.wait(timeout=5)

    assert is_read_only(doc) is False
    assert guard.state(doc) == GuardState.IDLE


def test_overlapping_open_invalidates_earlier_restore(doc: Path):
    """A restore scheduled by the first open must not unprotect a second open"""
    scheduler = RecordingScheduler()
    guard = ReadOnlyGuard(scheduler=scheduler)

    guard.begin_protected_open(doc, LOCKED_BY_OTHER)
    guard.schedule_restore(doc)
    guard.begin_protected_open(doc, LOCKED_BY_OTHER)

    _, first_restore = scheduler.calls[0]
    first_restore()

    assert is_read_only(doc) is True
    assert guard.state(doc) == GuardState.LOCKED_PROTECTING

    guard.schedule_restore(doc)
    _, second_restore = scheduler.calls[1]
    second_restore()

    assert is_read_only(doc) is False
    assert guard.state(doc) == GuardState.IDLE
