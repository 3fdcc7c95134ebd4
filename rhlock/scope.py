"""Shared-drive scope test that gates lock registry queries."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _normalize(path: PathLike) -> str:
    full = os.path.abspath(os.path.expanduser(os.fspath(path)))
    return os.path.normpath(full).casefold()


def in_scope(path: Optional[PathLike], configured_root: Optional[PathLike]) -> bool:
    """Return True if path is the configured root or lies under it.

    Comparison is case-insensitive. An empty root disables the scope, and a
    path that cannot be resolved is treated as out of scope.
    """
    if not path or not configured_root or not str(configured_root).strip():
        return False
    try:
        root = _normalize(configured_root)
        target = _normalize(path)
    except (OSError, TypeError, ValueError) as e:
        log.debug(f"Cannot resolve {path!r} against root {configured_root!r}: {e}")
        return False

    if target == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return target.startswith(prefix)


class PathScopeFilter:
    """Holds the shared-drive root configured for this host."""

    def __init__(self, root: Optional[PathLike]):
        self.root = root

    @property
    def enabled(self) -> bool:
        return bool(self.root and str(self.root).strip())

    def in_scope(self, path: Optional[PathLike]) -> bool:
        return in_scope(path, self.root)
