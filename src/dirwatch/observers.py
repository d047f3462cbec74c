"""Observer endpoints and fan-out delivery of event batches."""
from __future__ import annotations

import importlib
import logging
import queue
import threading
from abc import ABC, abstractmethod
from enum import Enum
from types import ModuleType
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .events import EventBatch

logger = logging.getLogger(__name__)


BatchCallback = Callable[..., None]


class ObserverLoadError(RuntimeError):
    """Raised when a configured callback observer cannot be imported."""


class OverflowPolicy(str, Enum):
    """What a bounded :class:`Observer` does when its queue is full.

    BLOCK waits for the consumer (up to ``put_timeout`` if one is set), which
    stalls the scan loop and every other observer while it waits.
    DROP_OLDEST discards the oldest queued batch to make room.
    DROP_NEWEST discards the incoming batch.
    """

    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


class BaseObserver(ABC):
    """Endpoint that receives event batches from a watcher."""

    @abstractmethod
    def deliver(self, batch: EventBatch) -> bool:
        """Hand over one batch; return False if it was dropped or failed."""


class Observer(BaseObserver):
    """Queue-backed delivery channel consumed by the subscriber's own thread.

    The default queue is unbounded, so delivery never waits on a slow consumer.
    """

    def __init__(
        self,
        maxsize: int = 0,
        overflow: OverflowPolicy = OverflowPolicy.BLOCK,
        put_timeout: Optional[float] = None,
    ):
        if maxsize < 0:
            raise ValueError("maxsize must not be negative")
        self.overflow = OverflowPolicy(overflow)
        self.put_timeout = put_timeout
        self.dropped = 0
        self._queue: "queue.Queue[EventBatch]" = queue.Queue(maxsize=maxsize)

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def __len__(self) -> int:
        return self._queue.qsize()

    def __iter__(self) -> Iterator[EventBatch]:
        while True:
            yield self._queue.get()

    def __repr__(self) -> str:
        return f"Observer(maxsize={self.maxsize}, overflow={self.overflow.value}, pending={len(self)})"

    def deliver(self, batch: EventBatch) -> bool:
        if self.overflow is OverflowPolicy.BLOCK:
            try:
                self._queue.put(batch, timeout=self.put_timeout)
            except queue.Full:
                return self._drop("timed out after %ss" % self.put_timeout)
            return True

        while True:
            try:
                self._queue.put_nowait(batch)
                return True
            except queue.Full:
                if self.overflow is OverflowPolicy.DROP_NEWEST:
                    return self._drop("queue full, discarding newest batch")
            try:
                self._queue.get_nowait()
            except queue.Empty:
                continue
            self._drop("queue full, discarded oldest batch")

    def get(self, block: bool = True, timeout: Optional[float] = None) -> EventBatch:
        """Return the next batch, raising :class:`queue.Empty` on timeout."""

        return self._queue.get(block=block, timeout=timeout)

    def get_nowait(self) -> EventBatch:
        return self._queue.get_nowait()

    def drain(self) -> List[EventBatch]:
        batches: List[EventBatch] = []
        while True:
            try:
                batches.append(self._queue.get_nowait())
            except queue.Empty:
                return batches

    def _drop(self, reason: str) -> bool:
        self.dropped += 1
        logger.warning("Observer dropped a batch (%s); %s dropped so far", reason, self.dropped)
        return False


class CallbackObserver(BaseObserver):
    """Runs a callable for every batch, on the watcher's scan thread.

    When ``options`` is given the callback is invoked as
    ``callback(batch, options)``, otherwise as ``callback(batch)``.
    """

    def __init__(
        self,
        callback: BatchCallback,
        name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ):
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {callback!r}")
        self.callback = callback
        self.name = name or getattr(callback, "__name__", repr(callback))
        self.options = options

    def __repr__(self) -> str:
        return f"CallbackObserver({self.name})"

    def deliver(self, batch: EventBatch) -> bool:
        logger.debug("Dispatching batch of %s events to %s", len(batch), self.name)
        try:
            if self.options is None:
                self.callback(batch)
            else:
                self.callback(batch, self.options)
        except Exception:  # pragma: no cover - protective logging
            logger.exception("Observer %s failed for batch at %s", self.name, batch.at)
            return False
        return True


ObserverLike = Union[BaseObserver, BatchCallback]


class ObserverRegistry:
    """Holds registered observers and fans batches out to them."""

    def __init__(self):
        self._observers: List[BaseObserver] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)

    def __iter__(self) -> Iterator[BaseObserver]:
        with self._lock:
            return iter(list(self._observers))

    def add(self, observer: ObserverLike) -> BaseObserver:
        """Attach an observer; plain callables are wrapped in :class:`CallbackObserver`."""

        if not isinstance(observer, BaseObserver):
            observer = CallbackObserver(observer)
        with self._lock:
            self._observers.append(observer)
        return observer

    def add_new(self, **kwargs: Any) -> Observer:
        """Create, attach and return a fresh :class:`Observer`."""

        observer = new_observer(**kwargs)
        self.add(observer)
        return observer

    def remove(self, observer: BaseObserver) -> bool:
        with self._lock:
            try:
                self._observers.remove(observer)
            except ValueError:
                return False
        return True

    def notify(self, batch: EventBatch) -> int:
        """Deliver ``batch`` to every observer in registration order.

        Empty batches are never delivered. Returns how many observers accepted
        the batch.
        """

        if not batch.events:
            return 0
        with self._lock:
            observers = list(self._observers)
        delivered = 0
        for observer in observers:
            if self._safe_deliver(observer, batch):
                delivered += 1
        return delivered

    def _safe_deliver(self, observer: BaseObserver, batch: EventBatch) -> bool:
        try:
            return bool(observer.deliver(batch))
        except Exception:  # pragma: no cover - protective logging
            logger.exception("Observer %r failed for batch at %s", observer, batch.at)
            return False


def new_observer(**kwargs: Any) -> Observer:
    return Observer(**kwargs)


def load_callback(module_path: str, function: str) -> BatchCallback:
    """Import ``function`` from ``module_path`` for use as a callback observer."""

    module = _import_module(module_path)
    try:
        callback = getattr(module, function)
    except AttributeError as exc:
        raise ObserverLoadError(f"Could not find function '{function}' in {module_path}") from exc

    if not callable(callback):
        raise ObserverLoadError(f"Attribute '{function}' in {module_path} is not callable")
    return callback


def _import_module(module_path: str) -> ModuleType:
    try:
        return importlib.import_module(module_path)
    except ImportError as exc:
        raise ObserverLoadError(f"Unable to import observer module '{module_path}'") from exc
