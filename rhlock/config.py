"""Configuration loading."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError
from .registry import DEFAULT_TIMEOUT_MS, clamp_timeout_ms

log = logging.getLogger(__name__)

CONFIG_ENV = "RHLOCK_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".rhlock.json"


@dataclass
class LockCheckConfig:
    shared_drive_root: Optional[str] = "G:\\"
    registry_base_url: Optional[str] = "http://127.0.0.1:5000"
    registry_timeout_ms: int = DEFAULT_TIMEOUT_MS
    restore_delay_seconds: float = 5.0
    machine_name: Optional[str] = None

    def __post_init__(self):
        self.registry_timeout_ms = clamp_timeout_ms(self.registry_timeout_ms)


def _read_config_file(config_path: Path) -> dict:
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")
    section = data.get("rhlock", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'rhlock' section in {config_path} must be an object")
    return section


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning(f"Ignoring {name}={raw!r}: not an integer")
        return default


def load_config(path: Optional[str] = None) -> LockCheckConfig:
    """
    Load lock check configuration from file or defaults.

    Priority:
    1. Explicit path argument
    2. RHLOCK_CONFIG environment variable
    3. ~/.rhlock.json
    4. Defaults

    RHLOCK_SHARED_DRIVE_ROOT, RHLOCK_REGISTRY_URL, RHLOCK_REGISTRY_TIMEOUT_MS and
    RHLOCK_MACHINE_NAME override whatever the file says. A config file that
    cannot be read is logged and the defaults are used instead.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV, str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)
    data: dict = {}
    if config_path.exists():
        try:
            data = _read_config_file(config_path)
        except ConfigError as e:
            log.warning(f"{e}; using defaults")

    defaults = LockCheckConfig()

    timeout_ms = data.get("registry_timeout_ms", defaults.registry_timeout_ms)
    if not isinstance(timeout_ms, int) or isinstance(timeout_ms, bool):
        log.warning(f"Ignoring registry_timeout_ms={timeout_ms!r}: not an integer")
        timeout_ms = defaults.registry_timeout_ms

    restore_delay = data.get("restore_delay_seconds", defaults.restore_delay_seconds)
    if not isinstance(restore_delay, (int, float)) or isinstance(restore_delay, bool) or restore_delay < 0:
        log.warning(f"Ignoring restore_delay_seconds={restore_delay!r}")
        restore_delay = defaults.restore_delay_seconds

    return LockCheckConfig(
        shared_drive_root=os.environ.get(
            "RHLOCK_SHARED_DRIVE_ROOT",
            data.get("shared_drive_root", defaults.shared_drive_root),
        ),
        registry_base_url=os.environ.get(
            "RHLOCK_REGISTRY_URL",
            data.get("registry_base_url", defaults.registry_base_url),
        ),
        registry_timeout_ms=_env_int("RHLOCK_REGISTRY_TIMEOUT_MS", timeout_ms),
        restore_delay_seconds=float(restore_delay),
        machine_name=os.environ.get("RHLOCK_MACHINE_NAME", data.get("machine_name")) or None,
    )
