"""Configuration loading utilities for the directory watcher."""
from __future__ import annotations

import logging
import math
import os
import threading
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml # type: ignore


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file or a config value is invalid."""


@dataclass(frozen=True)
class WatcherConfig:
    """Options describing how a directory watcher polls.

    ``interval`` is the polling period in seconds. ``pattern`` is a shell glob
    matched against base names, so it may not contain path separators.
    ``preload`` primes the snapshot silently so the first scan is not reported.
    """

    interval: float = 2.0
    recursive: bool = False
    pattern: str = "*"
    preload: bool = False

    def __post_init__(self) -> None:
        for config_field in fields(self):
            error = _FIELD_CHECKS[config_field.name](getattr(self, config_field.name))
            if error is not None:
                raise ConfigError(f"{config_field.name} {error}")


@dataclass
class ObserverConfig:
    """Callback observer definition loaded from the configuration file."""

    name: str
    module: str
    function: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    root_path: Path
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    observers: List[ObserverConfig] = field(default_factory=list)


def config_from_options(options: Mapping[str, Any], base: Optional[WatcherConfig] = None) -> WatcherConfig:
    """Build a config from a loose option mapping.

    Recognized keys are the :class:`WatcherConfig` field names. Unknown keys
    and values of the wrong type or range are logged and ignored; this never
    raises because of the options themselves.
    """

    accepted: Dict[str, Any] = {}
    for key, value in options.items():
        check = _FIELD_CHECKS.get(key)
        if check is None:
            logger.warning("Unused option: %s (%r)", key, value)
            continue
        error = check(value)
        if error is not None:
            logger.warning("Ignoring option %s=%r: %s %s", key, value, key, error)
            continue
        accepted[key] = value
    return replace(base or WatcherConfig(), **accepted)


def load_config(path: Path) -> AppConfig:
    """Load and validate the YAML configuration file."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    root_path, watcher_cfg = _parse_watch_config(data.get("watch"), config_path=path)
    observers_cfg = _parse_observers_config(data.get("observers", []))

    return AppConfig(root_path=root_path, watcher=watcher_cfg, observers=observers_cfg)


def _parse_watch_config(raw: Any, *, config_path: Path):
    if not isinstance(raw, dict):
        raise ConfigError("'watch' section must be a mapping")

    root_path_raw = raw.get("path")
    if not isinstance(root_path_raw, str):
        raise ConfigError("watch.path must be a string")

    root_path = Path(root_path_raw).expanduser()
    if not root_path.is_absolute():
        root_path = (config_path.parent / root_path).resolve()

    unknown = sorted(set(raw) - {"path"} - set(_FIELD_CHECKS))
    if unknown:
        raise ConfigError(f"Unknown watch options: {', '.join(unknown)}")

    settings = {key: value for key, value in raw.items() if key in _FIELD_CHECKS}
    try:
        watcher_cfg = WatcherConfig(**settings)
    except ConfigError as exc:
        raise ConfigError(f"watch.{exc}") from exc

    return root_path, watcher_cfg


def _parse_observers_config(raw: Any) -> List[ObserverConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("'observers' section must be a list")

    observers: List[ObserverConfig] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"observers[{index}] must be a mapping")

        name = item.get("name") or f"observer_{index}"
        module = item.get("module")
        function = item.get("function")
        options = item.get("options", {})

        if not isinstance(module, str) or not isinstance(function, str):
            raise ConfigError(f"observers[{index}] must include 'module' and 'function' strings")
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ConfigError(f"observers[{index}].options must be a mapping if provided")

        observer_cfg = ObserverConfig(name=str(name), module=module, function=function, options=options)
        logger.info("Loaded observer '%s' (%s.%s)", observer_cfg.name, observer_cfg.module, observer_cfg.function)
        observers.append(observer_cfg)

    return observers


def _check_interval(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "must be numeric"
    if isinstance(value, float) and math.isnan(value) or value <= 0:
        return "must be positive"
    if value > threading.TIMEOUT_MAX:
        return f"must be finite and at most {threading.TIMEOUT_MAX} seconds"
    return None


def _check_bool(value: Any) -> Optional[str]:
    if not isinstance(value, bool):
        return "must be a boolean"
    return None


def _check_pattern(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "must be a string"
    if not value:
        return "must not be empty"
    if "/" in value or (os.altsep and os.altsep in value) or os.sep in value:
        return "must match base names and may not contain path separators"
    return None


_FIELD_CHECKS: Dict[str, Callable[[Any], Optional[str]]] = {
    "interval": _check_interval,
    "recursive": _check_bool,
    "pattern": _check_pattern,
    "preload": _check_bool,
}
