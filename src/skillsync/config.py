"""Persisted platform selection (.agents-common/config.json) and run options."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from skillsync.platforms import (
    COMMON_DIR,
    PLATFORM_MAP,
    PlatformConfig,
    get_platform_configs,
    known_platforms,
)
from skillsync.writer import write_json

if TYPE_CHECKING:
    from skillsync.prompts import Prompter

logger = logging.getLogger(__name__)

CONFIG_PATH = f"{COMMON_DIR}/config.json"
CONFIG_VERSION = 1


class ConfigError(Exception):
    """Raised when a config cannot be written because it is invalid."""


@dataclass
class SyncConfig:
    version: int = CONFIG_VERSION
    assistants: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"version": self.version, "assistants": list(self.assistants)}


@dataclass
class SyncOptions:
    root: Path = field(default_factory=Path.cwd)
    fail_on_conflict: bool = False
    dry_run: bool = False
    list_mode: bool = False
    home_mode: bool = False
    reconfigure: bool = False
    targets: list[str] | None = None
    verbose: bool = False

    def apply_env(self) -> SyncOptions:
        """Apply SKILLSYNC_* environment overrides in place."""
        if env_fail := os.environ.get("SKILLSYNC_FAIL_ON_CONFLICT"):
            if env_fail.lower() in ("true", "1", "yes"):
                self.fail_on_conflict = True
        if self.home_mode:
            self.root = home_dir()
        return self


def home_dir() -> Path:
    if env_home := os.environ.get("SKILLSYNC_HOME"):
        return Path(env_home)
    return Path.home()


def config_path(root: Path) -> Path:
    return root / CONFIG_PATH


def _validation_error(data: object) -> str | None:
    if not isinstance(data, dict):
        return "config must be a JSON object"
    version = data.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        return "version must be a number"
    if version != CONFIG_VERSION:
        return f"unsupported version {version} (expected {CONFIG_VERSION})"
    assistants = data.get("assistants")
    if not isinstance(assistants, list):
        return "assistants must be an array"
    if not assistants:
        return "assistants array cannot be empty"
    for name in assistants:
        if not isinstance(name, str) or not name.strip():
            return "assistant name must be a non-empty string"
    return None


def read_config(root: Path) -> SyncConfig | None:
    """Load the stored config. Missing or invalid content reads as None."""
    path = config_path(root)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Config file is corrupted: {e}, will recreate")
        return None
    if error := _validation_error(data):
        logger.warning(f"Invalid config: {error}")
        return None
    return SyncConfig(version=data["version"], assistants=list(data["assistants"]))


def write_config(root: Path, config: SyncConfig) -> Path:
    """Validate and persist config atomically. Raises ConfigError."""
    if error := _validation_error(config.to_dict()):
        raise ConfigError(f"Invalid config: {error}")
    for name in config.assistants:
        if name not in PLATFORM_MAP:
            raise ConfigError(f'Invalid config: unknown assistant "{name}"')
    return write_json(config_path(root), config.to_dict())


def detect_available_platforms(root: Path, *, home_mode: bool = False) -> list[str]:
    """Platforms whose top-level folder (e.g. `.claude`) exists under root."""
    return [
        platform.name
        for platform in get_platform_configs(home_mode=home_mode)
        if platform.root_dir(root).is_dir()
    ]


def _select_platforms(root: Path, prompter: Prompter, message: str, *, home_mode: bool) -> SyncConfig:
    detected = detect_available_platforms(root, home_mode=home_mode)
    if not detected:
        print("No assistant folders found.")
    selected = prompter.choose_many(message, known_platforms(), detected)
    config = SyncConfig(assistants=selected)
    _ = write_config(root, config)
    return config


def ensure_config(root: Path, prompter: Prompter, *, home_mode: bool = False) -> SyncConfig:
    """Return the stored config, asking for the platform selection when absent."""
    existing = read_config(root)
    if existing is not None:
        return existing
    return _select_platforms(root, prompter, "Select assistants to set up:", home_mode=home_mode)


def reconfigure(root: Path, prompter: Prompter, *, home_mode: bool = False) -> SyncConfig:
    config = _select_platforms(root, prompter, "Select assistants to sync:", home_mode=home_mode)
    print(f"Configured assistants: {', '.join(config.assistants)}")
    return config


def enabled_platforms(
    config: SyncConfig,
    *,
    targets: list[str] | None = None,
    home_mode: bool = False,
) -> list[PlatformConfig]:
    """Platform configs for the enabled names, optionally restricted to targets."""
    names = config.assistants
    if targets:
        names = [name for name in names if name in targets]
        missing = [name for name in targets if name not in config.assistants]
        if missing:
            logger.warning(f"Targets not enabled in config ignored: {', '.join(missing)}")
    return get_platform_configs(names, home_mode=home_mode)
