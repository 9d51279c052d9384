"""Processor that validates incoming DAG events and connects them in order."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from time import monotonic
from typing import Callable, Iterable, Optional

from vassalo.dag import BaseEvent, Metric, events_metric
from vassalo.gossip.dagordering import Callback as BufferCallback
from vassalo.gossip.dagordering import EventsBuffer, SpilledEventError
from vassalo.hashing import Event

MIB = 1024 * 1024
_POLL_INTERVAL = 0.05


class BusyError(Exception):
    """The events semaphore could not be acquired in time."""

    def __init__(self, message: str = "failed to acquire events semaphore") -> None:
        super().__init__(message)


@dataclass
class Config:
    """Processor limits; the semaphore timeout is in seconds."""

    events_buffer_limit: Metric = field(default_factory=lambda: Metric(num=3000, size=10 * MIB))
    events_semaphore_timeout: float = 10.0
    max_tasks: int = 128


def default_config(scale: Optional[Callable[[int], int]] = None) -> Config:
    """Return the default configuration, scaling the memory limit with ``scale``."""
    scale = scale or (lambda value: value)
    return Config(
        # kept small: every insertion into the ordering buffer is O(n)
        events_buffer_limit=Metric(num=3000, size=scale(10 * MIB)),
        events_semaphore_timeout=10.0,
        max_tasks=128,
    )


@dataclass
class EventCallback:
    """Event hooks.

    ``process`` and ``check_parents`` raise to reject an event.
    ``check_parentless`` reports its verdict by calling ``checked`` with
    an exception or None, possibly from another thread.
    """

    process: Callable[[BaseEvent], None]
    get: Callable[[Event], Optional[BaseEvent]]
    exists: Callable[[Event], bool]
    check_parents: Optional[Callable[[BaseEvent, list], None]]
    check_parentless: Callable[[BaseEvent, Callable[[Optional[BaseException]], None]], None]
    released: Optional[Callable[[BaseEvent, str, Optional[BaseException]], None]] = None


@dataclass
class Callback:
    event: EventCallback
    highest_lamport: Callable[[], int]


class _MetricSemaphore:
    """Counts events and bytes in flight against a limit."""

    def __init__(self, limit: Metric) -> None:
        self._limit = limit
        self._processing = Metric()
        self._terminated = False
        self._cond = threading.Condition()

    def _fits(self, metric: Metric) -> bool:
        return (
            self._processing.num + metric.num <= self._limit.num
            and self._processing.size + metric.size <= self._limit.size
        )

    def acquire(self, metric: Metric, timeout: float) -> bool:
        deadline = monotonic() + timeout
        with self._cond:
            while not self._fits(metric):
                remaining = deadline - monotonic()
                if self._terminated or remaining <= 0:
                    return False
                self._cond.wait(remaining)
            self._processing = Metric(
                num=self._processing.num + metric.num,
                size=self._processing.size + metric.size,
            )
            return True

    def release(self, metric: Metric) -> None:
        with self._cond:
            self._processing = Metric(
                num=max(0, self._processing.num - metric.num),
                size=max(0, self._processing.size - metric.size),
            )
            self._cond.notify_all()

    def terminate(self) -> None:
        with self._cond:
            self._terminated = True
            self._cond.notify_all()


class _Workers:
    """A bounded task queue served by worker threads until quit is set."""

    def __init__(self, quit_event: threading.Event, max_tasks: int) -> None:
        self._quit = quit_event
        self._tasks: queue.Queue = queue.Queue(maxsize=max(1, max_tasks))
        self._threads: list[threading.Thread] = []

    def start(self, count: int) -> None:
        for _ in range(count):
            thread = threading.Thread(target=self._run, daemon=True)
            thread.start()
            self._threads.append(thread)

    def _run(self) -> None:
        while not self._quit.is_set():
            try:
                task = self._tasks.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue
            task()

    def enqueue(self, task: Callable[[], None]) -> None:
        while True:
            if self._quit.is_set():
                raise RuntimeError("workers are stopped")
            try:
                self._tasks.put(task, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def tasks_count(self) -> int:
        return self._tasks.qsize()

    def join(self) -> None:
        for thread in self._threads:
            thread.join()


@dataclass
class _CheckResult:
    event: BaseEvent
    err: Optional[BaseException]
    pos: int


class Processor:
    """Checks incoming events and passes them through the ordering buffer."""

    def __init__(
        self,
        config: Config,
        callback: Callback,
        semaphore_limit: Optional[Metric] = None,
    ) -> None:
        self._cfg = config
        self._quit = threading.Event()
        self._semaphore = _MetricSemaphore(semaphore_limit or config.events_buffer_limit)

        user_released = callback.event.released

        def released(event: BaseEvent, peer: str, err: Optional[BaseException]) -> None:
            self._semaphore.release(Metric(num=1, size=event.size()))
            if user_released is not None:
                user_released(event, peer, err)

        self._released = released
        self._callback = callback
        self._buffer = EventsBuffer(
            config.events_buffer_limit,
            BufferCallback(
                process=callback.event.process,
                get=callback.event.get,
                exists=callback.event.exists,
                released=released,
                check=callback.event.check_parents,
            ),
        )
        self._inserter = _Workers(self._quit, config.max_tasks)
        self._checker = _Workers(self._quit, config.max_tasks)

    def start(self) -> None:
        self._inserter.start(1)
        self._checker.start(1)

    def stop(self) -> None:
        """Cancel pending work, wait for the workers and release buffered events."""
        self._quit.set()
        self._semaphore.terminate()
        self._inserter.join()
        self._checker.join()
        self._buffer.clear()

    def overloaded(self) -> bool:
        """Return True if too many tasks are queued."""
        threshold = self._cfg.max_tasks * 3 // 4
        return (
            self._checker.tasks_count() > threshold
            or self._inserter.tasks_count() > threshold
        )

    def enqueue(
        self,
        peer: str,
        events: Iterable[BaseEvent],
        ordered: bool = False,
        notify_announces: Optional[Callable[[list[Event]], None]] = None,
        done: Optional[Callable[[], None]] = None,
    ) -> None:
        """Schedule events for checking and connecting.

        Raise BusyError if too many events are in flight.
        """
        events = list(events)
        if not self._semaphore.acquire(events_metric(events), self._cfg.events_semaphore_timeout):
            raise BusyError()

        results: queue.Queue = queue.Queue()

        def check_all() -> None:
            for pos, event in enumerate(events):
                self._callback.event.check_parentless(
                    event,
                    lambda err, event=event, pos=pos: results.put(_CheckResult(event, err, pos)),
                )

        self._checker.enqueue(check_all)

        def insert_all() -> None:
            try:
                self._insert(peer, len(events), ordered, results, notify_announces)
            finally:
                if done is not None:
                    done()

        self._inserter.enqueue(insert_all)

    def _insert(
        self,
        peer: str,
        count: int,
        ordered: bool,
        results: queue.Queue,
        notify_announces: Optional[Callable[[list[Event]], None]],
    ) -> None:
        to_request: list[Event] = []
        waiting: dict[int, _CheckResult] = {}
        processed = 0
        while processed < count:
            try:
                res = results.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if self._quit.is_set():
                    return
                continue
            if ordered:
                waiting[res.pos] = res
                while processed in waiting:
                    ready = waiting.pop(processed)
                    to_request.extend(self._process(peer, ready.event, ready.err))
                    processed += 1
            else:
                to_request.extend(self._process(peer, res.event, res.err))
                processed += 1

        # request unknown parents
        if notify_announces is not None and to_request:
            notify_announces(to_request)

    def _process(
        self, peer: str, event: BaseEvent, err: Optional[BaseException]
    ) -> list[Event]:
        if err is not None:
            self._released(event, peer, err)
            return []
        highest = self._callback.highest_lamport()
        max_diff = 1 + self._cfg.events_buffer_limit.num
        if event.lamport > highest + max_diff:
            self._released(event, peer, SpilledEventError())
            return []
        complete = self._buffer.push_event(event, peer)
        if not complete and event.lamport <= highest + max_diff // 10:
            return list(event.parents)
        return []

    def is_buffered(self, event_id: Event) -> bool:
        return self._buffer.is_buffered(event_id)

    def clear(self) -> None:
        self._buffer.clear()

    def total_buffered(self) -> Metric:
        return self._buffer.total()

    def tasks_count(self) -> int:
        return self._inserter.tasks_count() + self._checker.tasks_count()