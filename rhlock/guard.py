"""Read-only protection of a file locked by someone else while it is opened.

Flow for one open:

    begin_protected_open()   IDLE -> LOCKED_PROTECTING  (file set read-only)
    <host opens the file>         -> PROTECTED_OPEN
    schedule_restore()            -> RESTORING after restore_delay seconds
    <restore runs>                -> IDLE               (read-only cleared)

A file that was already read-only is never made writable again. The restore
runs on a daemon timer; if the process exits first the restore is skipped.
"""

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar, Union

from .models import GuardState, LockDescriptor, ReadOnlySessionState

log = logging.getLogger(__name__)

DEFAULT_RESTORE_DELAY_SECONDS = 5.0

_WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH

Scheduler = Callable[[float, Callable[[], None]], None]
T = TypeVar("T")


def is_read_only(path: Union[str, Path]) -> bool:
    """True if the owner write bit is cleared (the READONLY attribute on Windows)."""
    return not os.stat(path).st_mode & stat.S_IWUSR


def set_read_only(path: Union[str, Path], read_only: bool) -> None:
    mode = stat.S_IMODE(os.stat(path).st_mode)
    if read_only:
        os.chmod(path, mode & ~_WRITE_BITS)
    else:
        os.chmod(path, mode | stat.S_IWUSR)


def _resolve(path: Union[str, Path]) -> str:
    return os.path.abspath(os.fspath(path))


class ReadOnlyGuard:
    """Tracks protected-open sessions keyed by absolute path."""

    def __init__(
        self,
        restore_delay: float = DEFAULT_RESTORE_DELAY_SECONDS,
        scheduler: Optional[Scheduler] = None,
    ):
        self.restore_delay = restore_delay
        self._scheduler = scheduler or self._timer_scheduler
        self._sessions: Dict[str, ReadOnlySessionState] = {}
        self._timers: list = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, scheduler: Optional[Scheduler] = None) -> "ReadOnlyGuard":
        """Create a guard using the configured restore delay."""
        return cls(restore_delay=config.restore_delay_seconds, scheduler=scheduler)

    def _timer_scheduler(self, delay: float, action: Callable[[], None]) -> None:
        timer = threading.Timer(delay, action)
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def state(self, path: Union[str, Path]) -> GuardState:
        """Session state for a path; IDLE when there is no session."""
        with self._lock:
            session = self._sessions.get(_resolve(path))
        return session.state if session else GuardState.IDLE

    def session(self, path: Union[str, Path]) -> Optional[ReadOnlySessionState]:
        """Open session for a path, or None."""
        with self._lock:
            return self._sessions.get(_resolve(path))

    def begin_protected_open(
        self, path: Union[str, Path], descriptor: LockDescriptor
    ) -> Optional[ReadOnlySessionState]:
        """Set the file read-only if it is locked by someone else.

        Returns the session, or None when the file needs no protection.
        """
        if not descriptor.should_open_read_only:
            return None

        key = _resolve(path)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                try:
                    original = is_read_only(key)
                except OSError as e:
                    log.debug(f"Cannot read attributes of {key}, assuming writable: {e}")
                    original = False
                session = ReadOnlySessionState(path=key, original_read_only=original)
                self._sessions[key] = session
            else:
                # Overlapping open: the first session saw the real original state,
                # and any restore it already scheduled is now stale.
                session.state = GuardState.LOCKED_PROTECTING
                session.generation += 1

        try:
            set_read_only(key, True)
        except OSError as e:
            log.debug(f"Cannot set {key} read-only: {e}")
        log.info(f"Protecting {key} (locked by {descriptor.display_description})")
        return session

    def schedule_restore(self, path: Union[str, Path]) -> None:
        """Hand the session over to a delayed restore; fire and forget."""
        key = _resolve(path)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return
            session.state = GuardState.PROTECTED_OPEN
            if session.original_read_only:
                del self._sessions[key]
                log.debug(f"{key} was read-only before protection; leaving it read-only")
                return
            generation = session.generation

        self._scheduler(self.restore_delay, lambda: self._restore(key, generation))

    def _restore(self, key: str, generation: int) -> None:
        with self._lock:
            session = self._sessions.get(key)
            if session is None or session.generation != generation:
                log.debug(f"Skipping stale restore of {key}")
                return
            session.state = GuardState.RESTORING

        try:
            # Unconditional: a read-only flag set by someone else meanwhile is lost.
            set_read_only(key, False)
            log.info(f"Restored write access to {key}")
        except OSError as e:
            log.debug(f"Cannot restore write access to {key}: {e}")
        finally:
            with self._lock:
                if self._sessions.get(key) is session:
                    del self._sessions[key]

    def open_with_protection(
        self,
        path: Union[str, Path],
        descriptor: LockDescriptor,
        opener: Callable[[Union[str, Path]], T],
    ) -> T:
        """Run opener(path) with the file protected when locked by someone else."""
        session = self.begin_protected_open(path, descriptor)
        try:
            return opener(path)
        finally:
            if session is not None:
                self.schedule_restore(path)

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until restores scheduled on timer threads have run."""
        with self._lock:
            timers = list(self._timers)
        for timer in timers:
            timer.join(timeout)
