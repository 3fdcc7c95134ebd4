"""rhlock data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

SELF_DESCRIPTION = "you (this machine)"
OTHER_DESCRIPTION = "another user"


class LockStatus(str, Enum):
    """Lock status enumeration."""
    FREE = "free"
    HELD_BY_CURRENT_ACTOR = "held_by_current_actor"
    HELD_BY_OTHER = "held_by_other"


class GuardState(str, Enum):
    """Read-only guard session states."""
    IDLE = "idle"
    LOCKED_PROTECTING = "locked_protecting"
    PROTECTED_OPEN = "protected_open"
    RESTORING = "restoring"


@dataclass(frozen=True)
class RegistryLockInfo:
    """Lock information reported by the lock registry."""
    is_locked: bool
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


@dataclass(frozen=True)
class LockDescriptor:
    """Merged lock status of a document.

    ``is_locked_by_current_actor`` is derived from the sentinel file only;
    registry identity adds detail but never marks a lock as ours.
    """
    is_locked: bool = False
    is_locked_by_current_actor: bool = False
    sentinel_owner_machine: Optional[str] = None
    registry_owner_name: Optional[str] = None
    registry_owner_email: Optional[str] = None

    @property
    def display_description(self) -> Optional[str]:
        """Human readable lock owner, or None when unlocked."""
        if not self.is_locked:
            return None
        if self.registry_owner_name:
            return self.registry_owner_name
        if self.is_locked_by_current_actor:
            return SELF_DESCRIPTION
        if self.sentinel_owner_machine:
            return f"{OTHER_DESCRIPTION} ({self.sentinel_owner_machine})"
        return OTHER_DESCRIPTION

    @property
    def status(self) -> LockStatus:
        """Free, held by this machine, or held by someone else."""
        if not self.is_locked:
            return LockStatus.FREE
        if self.is_locked_by_current_actor:
            return LockStatus.HELD_BY_CURRENT_ACTOR
        return LockStatus.HELD_BY_OTHER

    @property
    def should_open_read_only(self) -> bool:
        """True if another user holds the lock."""
        return self.is_locked and not self.is_locked_by_current_actor

    def to_dict(self) -> dict:
        """Serialize the descriptor, including derived fields."""
        return {
            "is_locked": self.is_locked,
            "is_locked_by_current_actor": self.is_locked_by_current_actor,
            "status": self.status.value,
            "sentinel_owner_machine": self.sentinel_owner_machine,
            "registry_owner_name": self.registry_owner_name,
            "registry_owner_email": self.registry_owner_email,
            "description": self.display_description,
        }


@dataclass
class ReadOnlySessionState:
    """Bookkeeping for one protected open of a file."""
    path: str
    original_read_only: bool
    state: GuardState = GuardState.LOCKED_PROTECTING
    # Bumped by every overlapping open; only the newest restore may run.
    generation: int = 0
