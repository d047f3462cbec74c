"""Command-line entry point for the directory watcher."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, load_config
from .observers import CallbackObserver, ObserverLoadError, load_callback
from .sample_observers import log_batch
from .watcher import DirectoryWatcher, WatchPathError


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Poll a directory and report added, changed and deleted files")
    parser.add_argument(
        "--config",
        default="dirwatch.yaml",
        help="Path to the YAML configuration file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    try:
        watcher = build_watcher(Path(args.config))
    except (ConfigError, ObserverLoadError, WatchPathError) as exc:
        logging.error("%s", exc)
        raise SystemExit(2) from exc

    watcher.run()


def build_watcher(config_path: Path) -> DirectoryWatcher:
    """Create a watcher with the observers named in the configuration file."""

    app_config = load_config(config_path)
    watcher = DirectoryWatcher(app_config.root_path, app_config.watcher)

    for observer_cfg in app_config.observers:
        callback = load_callback(observer_cfg.module, observer_cfg.function)
        watcher.add_observer(CallbackObserver(callback, name=observer_cfg.name, options=observer_cfg.options))

    if not app_config.observers:
        watcher.add_observer(CallbackObserver(log_batch, name="log_batch", options={}))

    return watcher


if __name__ == "__main__":
    main()
