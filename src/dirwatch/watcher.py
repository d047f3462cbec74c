"""Polling directory watcher: scan, diff and notify on a fixed interval."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Optional, Union

from .config import WatcherConfig, config_from_options
from .events import EventBatch
from .observers import BaseObserver, Observer, ObserverLike, ObserverRegistry
from .snapshot import Snapshot, compute_changes
from .traversal import ScanStrategy, select_strategy

logger = logging.getLogger(__name__)


class WatchPathError(OSError):
    """The path handed to a watcher cannot be watched."""


class PathNotFoundError(WatchPathError, FileNotFoundError):
    """The watched path does not exist or cannot be accessed."""


class PathNotDirectoryError(WatchPathError, NotADirectoryError):
    """The watched path exists but is not a directory."""


class WatcherRunningError(RuntimeError):
    """The operation is only allowed while the watcher is stopped."""


@dataclass
class WatcherStats:
    """Counters kept by the watcher for observability."""

    ticks: int = 0
    batches_delivered: int = 0
    events_emitted: int = 0
    scan_errors: int = 0


class DirectoryWatcher:
    """Polls a directory and reports added, changed and deleted files.

    Usage::

        watcher = DirectoryWatcher("incoming", WatcherConfig(pattern="*.txt"))
        observer = watcher.add_new_observer()
        watcher.start()
        for batch in observer:
            print(f"{len(batch)} files changed at {batch.at}")

    The snapshot starts empty, so unless ``preload`` is set the first scan
    reports every matching file as added. Change detection relies on
    modification time alone: an edit that leaves mtime unchanged (coarse
    filesystem timestamps, clock skew) is not reported.
    """

    def __init__(self, path: Union[str, Path], config: Optional[WatcherConfig] = None):
        self._path = _validate_root(Path(path))
        self._config = config or WatcherConfig()
        self._snapshot = Snapshot()
        self._observers = ObserverRegistry()
        self._stats = WatcherStats()
        self._strategy: ScanStrategy = select_strategy(self._config.recursive)
        self._tick_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_options(cls, path: Union[str, Path], options: Mapping[str, Any]) -> "DirectoryWatcher":
        """Create a watcher from a loose option mapping (bad options are logged and skipped)."""

        return cls(path, config_from_options(options))

    def __enter__(self) -> "DirectoryWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.stop()
        return False

    def __repr__(self) -> str:
        state = "running" if self.running else "stopped"
        return f"DirectoryWatcher({str(self._path)!r}, {state})"

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config(self) -> WatcherConfig:
        return self._config

    @config.setter
    def config(self, config: WatcherConfig) -> None:
        with self._state_lock:
            if self._stop_event is not None:
                raise WatcherRunningError("Cannot change configuration while the watcher is running")
            self._config = config
            self._strategy = select_strategy(config.recursive)

    def configure(self, **changes: Any) -> WatcherConfig:
        """Replace individual config fields; only allowed while stopped."""

        self.config = replace(self._config, **changes)
        return self._config

    @property
    def stats(self) -> WatcherStats:
        return self._stats

    @property
    def running(self) -> bool:
        with self._state_lock:
            return self._stop_event is not None

    def tracked_paths(self) -> FrozenSet[Path]:
        """Paths currently held in the snapshot."""

        with self._tick_lock:
            return frozenset(self._snapshot)

    def add_observer(self, observer: ObserverLike) -> BaseObserver:
        return self._observers.add(observer)

    def add_new_observer(self, **kwargs: Any) -> Observer:
        return self._observers.add_new(**kwargs)

    def remove_observer(self, observer: BaseObserver) -> bool:
        return self._observers.remove(observer)

    def start(self) -> bool:
        """Start polling on a background thread; returns False if already running."""

        with self._state_lock:
            if self._stop_event is not None:
                return False
            self._strategy = select_strategy(self._config.recursive)
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._loop,
                args=(stop_event, self._strategy, self._config),
                name=f"DirectoryWatcher[{self._path.name}]",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
        logger.info(
            "Starting watcher for %s (pattern=%s, recursive=%s, interval=%ss)",
            self._path,
            self._config.pattern,
            self._config.recursive,
            self._config.interval,
        )
        thread.start()
        return True

    def stop(self) -> bool:
        """Stop scheduling ticks. A tick already in flight is allowed to finish."""

        with self._state_lock:
            if self._stop_event is None:
                return False
            self._stop_event.set()
            self._stop_event = None
        logger.info("Stopping watcher for %s", self._path)
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the last loop thread to exit; returns False on timeout."""

        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def run(self) -> None:
        """Poll in the foreground until interrupted."""

        self.start()
        try:
            while self.running:
                self.join(timeout=0.5)
        except KeyboardInterrupt:
            logger.info("Watcher interrupted by user")
        finally:
            self.stop()
            logger.info(
                "Watcher stopped after %s ticks, %s events",
                self._stats.ticks,
                self._stats.events_emitted,
            )

    def poll(self, notify: bool = True) -> EventBatch:
        """Run one scan synchronously and return its batch."""

        return self._tick(self._strategy, self._config, notify=notify)

    def _loop(self, stop_event: threading.Event, strategy: ScanStrategy, config: WatcherConfig) -> None:
        started_at = time.monotonic()
        self._safe_tick(strategy, config, notify=not config.preload)
        while not stop_event.is_set():
            self._sleep_until_next_tick(started_at, config.interval, stop_event)
            if stop_event.is_set():
                break
            started_at = time.monotonic()
            self._safe_tick(strategy, config, notify=True)
        logger.debug("Watcher loop for %s exited", self._path)

    def _sleep_until_next_tick(self, started_at: float, interval: float, stop_event: threading.Event) -> None:
        elapsed = time.monotonic() - started_at
        remaining = max(interval - elapsed, 0.0)
        if remaining > 0:
            stop_event.wait(remaining)

    def _safe_tick(self, strategy: ScanStrategy, config: WatcherConfig, *, notify: bool) -> None:
        try:
            self._tick(strategy, config, notify=notify)
        except Exception:  # pragma: no cover - protective logging
            self._stats.scan_errors += 1
            logger.exception("Scan of %s failed", self._path)

    def _tick(self, strategy: ScanStrategy, config: WatcherConfig, *, notify: bool) -> EventBatch:
        with self._tick_lock:
            at = datetime.now()
            if not self._path.is_dir():
                logger.warning("Watched path %s is missing; every tracked file counts as deleted", self._path)
            entries = strategy(self._path, config.pattern)
            batch = compute_changes(self._snapshot, entries, at=at)
            self._stats.ticks += 1
            self._stats.events_emitted += len(batch)
            logger.debug("Scan of %s found %s events", self._path, len(batch))
            if notify and self._observers.notify(batch):
                self._stats.batches_delivered += 1
            return batch


def _validate_root(path: Path) -> Path:
    try:
        is_dir = path.is_dir()
        exists = is_dir or path.exists()
    except OSError as exc:
        raise PathNotFoundError(f"Cannot access watched path: {path}") from exc
    if not exists:
        raise PathNotFoundError(f"Watched path does not exist: {path}")
    if not is_dir:
        raise PathNotDirectoryError(f"Provided path is not a directory: {path}")
    return path
