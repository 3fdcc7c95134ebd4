"""Sentinel (.rhl) files left next to a document by the editor while it is open."""

import logging
import os
import socket
from pathlib import Path
from typing import Optional, Union

log = logging.getLogger(__name__)

SENTINEL_SUFFIX = ".rhl"

_PRINTABLE_MIN = 32
_PRINTABLE_MAX = 126


def local_machine_name() -> str:
    """Name of this machine as the editor records it in sentinel files."""
    name = os.environ.get("COMPUTERNAME")
    if name:
        return name
    return socket.gethostname().split(".")[0]


def parse_machine_token(data: bytes) -> Optional[str]:
    """Extract the machine name from raw sentinel bytes.

    The token is the leading run of printable ASCII before the first NUL
    byte (or the end of data). Anything after the NUL is ignored.
    """
    if not data:
        return None
    head = data.split(b"\x00", 1)[0]
    end = 0
    for byte in head:
        if not _PRINTABLE_MIN <= byte <= _PRINTABLE_MAX:
            break
        end += 1
    token = head[:end].decode("ascii").strip()
    return token or None


class SentinelStore:
    """Reads the sentinel file for a document path."""

    def __init__(self, machine_name: Optional[str] = None):
        self.machine_name = machine_name or local_machine_name()

    def locate(self, document_path: Union[str, Path]) -> Path:
        """Path of the sentinel file: <document name>.rhl in the same folder."""
        document = Path(document_path)
        return document.parent / (document.name + SENTINEL_SUFFIX)

    def exists(self, document_path: Union[str, Path]) -> bool:
        """True if the sentinel file is present, whatever its contents."""
        try:
            return self.locate(document_path).is_file()
        except (OSError, ValueError):
            return False

    def read_owner_machine(self, document_path: Union[str, Path]) -> Optional[str]:
        """Machine name recorded in the sentinel, or None if there is none."""
        try:
            sentinel = self.locate(document_path)
            data = sentinel.read_bytes()
        except (OSError, ValueError) as e:
            log.debug(f"No readable sentinel for {document_path}: {e}")
            return None
        return parse_machine_token(data)

    def is_owned_by_self(self, document_path: Union[str, Path]) -> bool:
        """True if the sentinel was written by this machine."""
        owner = self.read_owner_machine(document_path)
        return self.is_local_machine(owner)

    def is_local_machine(self, owner: Optional[str]) -> bool:
        """Case-insensitive comparison with the local machine name."""
        if not owner:
            return False
        return owner.casefold() == self.machine_name.casefold()
