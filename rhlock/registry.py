"""Lock registry client.

The registry is an optional HTTP service that knows who holds a lock on a
shared-drive file. It may be missing entirely, so ``query_lock_info`` turns
every failure into ``None`` and never raises.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import httpx

from .exceptions import (
    NetworkError,
    RegistryDisabledError,
    RegistryResponseError,
    RegistryStatusError,
    RhlockError,
)
from .models import RegistryLockInfo

log = logging.getLogger(__name__)

LOCK_ENDPOINT = "/api/is-file-locked"
DEFAULT_TIMEOUT_MS = 2000
MIN_TIMEOUT_MS = 500

LOCKED_KEY = "locked"
OWNER_NAME_KEY = "locked_by"
OWNER_EMAIL_KEY = "locked_by_email"


def clamp_timeout_ms(timeout_ms: Optional[int]) -> int:
    """Apply the 500 ms floor to a configured timeout."""
    try:
        value = int(timeout_ms)
    except (TypeError, ValueError):
        return MIN_TIMEOUT_MS
    return max(MIN_TIMEOUT_MS, value)


# Response body decoding.
#
# Two shapes exist: the legacy plain-text TRUE/FALSE answer and the JSON
# answer returned with details=true. The JSON one is read by scanning for the
# three known keys rather than parsing it; escaped quotes and nested objects
# are not supported.

@dataclass(frozen=True)
class LegacyBody:
    locked: bool


@dataclass(frozen=True)
class DetailedBody:
    locked: bool
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


RegistryBody = Union[LegacyBody, DetailedBody]


def _string_end(text: str, start: int) -> int:
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == '"':
            return i
        i += 1
    return -1


def _scan_keys(text: str) -> Dict[str, int]:
    """Map each object key to the offset just past its colon.

    String literals are skipped as a whole, so key-like text inside a value
    is never mistaken for a key. The first occurrence of a key wins.
    """
    keys: Dict[str, int] = {}
    i = 0
    while i < len(text):
        if text[i] != '"':
            i += 1
            continue
        end = _string_end(text, i)
        if end < 0:
            break
        j = end + 1
        while j < len(text) and text[j].isspace():
            j += 1
        if j < len(text) and text[j] == ":":
            keys.setdefault(text[i + 1:end], j + 1)
            i = j + 1
        else:
            i = end + 1
    return keys


def _bool_after(text: str, offset: int) -> bool:
    rest = text[offset:].lstrip()
    if not rest.startswith("true"):
        return False
    return len(rest) == 4 or not rest[4].isalnum()


def _string_after(text: str, offset: int) -> Optional[str]:
    rest = text[offset:].lstrip()
    if not rest.startswith('"'):
        return None
    end = rest.find('"', 1)
    if end < 0:
        return None
    value = rest[1:end].strip()
    return value or None


def parse_registry_body(text: Optional[str]) -> Optional[RegistryBody]:
    """Classify a response body as legacy or detailed, or None if malformed."""
    if not text:
        return None
    stripped = text.strip()
    token = stripped.upper()
    if token == "TRUE":
        return LegacyBody(locked=True)
    if token == "FALSE":
        return LegacyBody(locked=False)
    if not stripped.startswith("{"):
        return None

    keys = _scan_keys(stripped)
    if LOCKED_KEY not in keys:
        return None
    name_at = keys.get(OWNER_NAME_KEY)
    email_at = keys.get(OWNER_EMAIL_KEY)
    return DetailedBody(
        locked=_bool_after(stripped, keys[LOCKED_KEY]),
        owner_name=_string_after(stripped, name_at) if name_at is not None else None,
        owner_email=_string_after(stripped, email_at) if email_at is not None else None,
    )


def decode_registry_body(text: Optional[str]) -> Optional[RegistryLockInfo]:
    """Decode a registry response body into RegistryLockInfo."""
    body = parse_registry_body(text)
    if body is None:
        return None
    if isinstance(body, LegacyBody):
        return RegistryLockInfo(is_locked=body.locked)
    return RegistryLockInfo(
        is_locked=body.locked,
        owner_name=body.owner_name,
        owner_email=body.owner_email,
    )


class LockRegistryClient:
    """Client for the optional lock registry service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS,
        transport: httpx.BaseTransport = None,
    ):
        """Initialize the registry client.

        Args:
            base_url: Registry base URL, e.g. http://127.0.0.1:5000. Empty
                disables every query.
            timeout_ms: Request timeout in milliseconds, at least 500
            transport: Optional httpx transport, used by tests
        """
        self.base_url = (base_url or "").strip().rstrip("/")
        self.timeout_ms = clamp_timeout_ms(timeout_ms)
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport = None) -> "LockRegistryClient":
        """Create a client from a LockCheckConfig."""
        return cls(
            base_url=config.registry_base_url,
            timeout_ms=config.registry_timeout_ms,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        """True if a registry base URL is configured."""
        return bool(self.base_url)

    @property
    def client(self) -> httpx.Client:
        """HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout_ms / 1000.0,
                headers={"Connection": "close"},
                transport=self._transport,
            )
        return self._client

    def _handle_response(self, response: httpx.Response) -> RegistryLockInfo:
        """Turn an HTTP response into lock info or raise."""
        if not response.is_success:
            raise RegistryStatusError(
                f"Lock registry returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        info = decode_registry_body(response.text)
        if info is None:
            raise RegistryResponseError(f"Unrecognized lock registry response: {response.text[:200]!r}")
        return info

    def fetch_lock_info(self, document_path: Union[str, Path]) -> RegistryLockInfo:
        """Ask the registry whether a file is locked.

        Args:
            document_path: Absolute path of the document

        Returns:
            RegistryLockInfo as reported by the registry

        Raises:
            RegistryDisabledError: no base URL is configured
            NetworkError: connection failure or timeout
            RegistryStatusError: non-success status code
            RegistryResponseError: empty or malformed body
        """
        if not self.enabled:
            raise RegistryDisabledError("No lock registry URL configured")

        try:
            response = self.client.get(
                f"{self.base_url}{LOCK_ENDPOINT}",
                params={"path": str(document_path), "details": "true"},
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Lock registry timed out after {self.timeout_ms} ms: {e}")
        except httpx.RequestError as e:
            raise NetworkError(f"Network error querying lock registry: {e}")
        except httpx.InvalidURL as e:
            raise NetworkError(f"Invalid lock registry URL {self.base_url!r}: {e}")

        return self._handle_response(response)

    def query_lock_info(self, document_path: Union[str, Path]) -> Optional[RegistryLockInfo]:
        """Best-effort variant of fetch_lock_info; returns None on any failure."""
        if not self.enabled:
            return None
        try:
            return self.fetch_lock_info(document_path)
        except RhlockError as e:
            log.debug(f"Lock registry unavailable for {document_path}: {e}")
            return None

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
