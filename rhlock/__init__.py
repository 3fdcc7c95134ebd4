"""rhlock - editor lock detection for documents on shared drives."""

from .config import LockCheckConfig, load_config
from .exceptions import (
    RhlockError,
    ConfigError,
    NetworkError,
    RegistryError,
    RegistryStatusError,
    RegistryResponseError,
    RegistryDisabledError,
)
from .guard import ReadOnlyGuard
from .models import (
    GuardState,
    LockDescriptor,
    LockStatus,
    ReadOnlySessionState,
    RegistryLockInfo,
)
from .reconciler import LockReconciler
from .registry import LockRegistryClient, decode_registry_body
from .scope import PathScopeFilter, in_scope
from .sentinel import SentinelStore, parse_machine_token

__version__ = "1.0.0"
__all__ = [
    "LockCheckConfig",
    "load_config",
    "RhlockError",
    "ConfigError",
    "NetworkError",
    "RegistryError",
    "RegistryStatusError",
    "RegistryResponseError",
    "RegistryDisabledError",
    "ReadOnlyGuard",
    "GuardState",
    "LockDescriptor",
    "LockStatus",
    "ReadOnlySessionState",
    "RegistryLockInfo",
    "LockReconciler",
    "LockRegistryClient",
    "decode_registry_body",
    "PathScopeFilter",
    "in_scope",
    "SentinelStore",
    "parse_machine_token",
]
