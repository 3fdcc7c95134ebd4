"""Merges sentinel and registry evidence into one LockDescriptor."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from .models import LockDescriptor
from .registry import LockRegistryClient
from .scope import PathScopeFilter
from .sentinel import SentinelStore

log = logging.getLogger(__name__)


class LockReconciler:
    """Builds a fresh LockDescriptor for a document on every call.

    The sentinel decides whether the lock is ours. The registry can only add
    a lock the sentinel missed, or owner details; it never clears a lock.
    """

    def __init__(
        self,
        sentinels: SentinelStore,
        registry: Optional[LockRegistryClient] = None,
        scope: Optional[PathScopeFilter] = None,
    ):
        self.sentinels = sentinels
        self.registry = registry
        self.scope = scope or PathScopeFilter(None)

    @classmethod
    def from_config(cls, config, transport=None) -> "LockReconciler":
        """Wire sentinel store, registry client and scope filter from config."""
        return cls(
            sentinels=SentinelStore(machine_name=config.machine_name),
            registry=LockRegistryClient.from_config(config, transport=transport),
            scope=PathScopeFilter(config.shared_drive_root),
        )

    def reconcile(self, document_path: Union[str, Path]) -> LockDescriptor:
        """Current lock status of a document. Never raises."""
        is_locked = False
        by_self = False
        owner_name = None
        owner_email = None

        # A sentinel locks the file even when no machine name can be read from it.
        owner_machine = None
        if self.sentinels.exists(document_path):
            is_locked = True
            owner_machine = self.sentinels.read_owner_machine(document_path)
            by_self = self.sentinels.is_local_machine(owner_machine)

        # Queried even for our own sentinel so owner details stay current.
        if self.registry is not None and self.scope.in_scope(document_path):
            info = self.registry.query_lock_info(os.path.abspath(document_path))
            if info is not None and info.is_locked:
                is_locked = True
                owner_name = info.owner_name or None
                owner_email = info.owner_email or None

        descriptor = LockDescriptor(
            is_locked=is_locked,
            is_locked_by_current_actor=by_self,
            sentinel_owner_machine=owner_machine,
            registry_owner_name=owner_name,
            registry_owner_email=owner_email,
        )
        log.debug(f"Lock status for {document_path}: {descriptor.status.value}")
        return descriptor

    def close(self) -> None:
        if self.registry is not None:
            self.registry.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
