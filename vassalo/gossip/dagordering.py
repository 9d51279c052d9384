"""Ordering buffer that connects DAG events only after all their parents."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from vassalo.dag import BaseEvent, Metric
from vassalo.hashing import Event


class DuplicateEventError(Exception):
    """The event is already waiting in the buffer."""

    def __init__(self, message: str = "event is already buffered") -> None:
        super().__init__(message)


class AlreadyConnectedEventError(Exception):
    """The event is already connected to the DAG."""

    def __init__(self, message: str = "event is already connected") -> None:
        super().__init__(message)


class SpilledEventError(Exception):
    """The event was dropped to keep the buffer within its limits."""

    def __init__(self, message: str = "event is spilled") -> None:
        super().__init__(message)


@dataclass
class Callback:
    """Hooks of the buffer.

    ``process`` and ``check`` signal failure by raising; the exception is
    passed to ``released`` as the reason the event was dropped.
    """

    process: Callable[[BaseEvent], None]
    get: Callable[[Event], Optional[BaseEvent]]
    exists: Callable[[Event], bool]
    released: Optional[Callable[[BaseEvent, str, Optional[BaseException]], None]] = None
    check: Optional[Callable[[BaseEvent, list], None]] = None


@dataclass(eq=False)
class _Pending:
    event: BaseEvent
    peer: str
    err: Optional[BaseException] = None
    released: bool = False


class _IncompleteEvents:
    """Insertion-ordered, weighted store of events waiting for parents."""

    def __init__(self) -> None:
        self._items: OrderedDict[bytes, tuple[_Pending, int]] = OrderedDict()
        self._weight = 0
        self._lock = threading.Lock()

    def add(self, key: bytes, item: _Pending, weight: int) -> None:
        with self._lock:
            old = self._items.pop(key, None)
            if old is not None:
                self._weight -= old[1]
            self._items[key] = (item, weight)
            self._weight += weight

    def remove(self, key: bytes) -> None:
        with self._lock:
            old = self._items.pop(key, None)
            if old is not None:
                self._weight -= old[1]

    def pop_oldest(self) -> Optional[_Pending]:
        with self._lock:
            if not self._items:
                return None
            _, (item, weight) = self._items.popitem(last=False)
            self._weight -= weight
            return item

    def values(self) -> list[_Pending]:
        with self._lock:
            return [item for item, _ in self._items.values()]

    def total(self) -> tuple[int, int]:
        with self._lock:
            return len(self._items), self._weight

    def __contains__(self, key: bytes) -> bool:
        with self._lock:
            return key in self._items


class EventsBuffer:
    """Holds events until their parents are known, then processes them in order."""

    def __init__(self, limit: Metric, callback: Callback) -> None:
        self._limit = limit
        self._callback = callback
        self._incompletes = _IncompleteEvents()
        self._lock = threading.Lock()

    def push_event(self, event: BaseEvent, peer: str = "") -> bool:
        """Push an event; return True if it was processed right away."""
        pending = _Pending(event, peer)
        with self._lock:
            if event.id in self._incompletes:
                self._drop(pending, DuplicateEventError())
                self._release(pending)
                return False
            complete = self._push(pending)
            self._spill(self._limit)
            return complete

    def is_buffered(self, event_id: Event) -> bool:
        return event_id in self._incompletes

    def clear(self) -> None:
        """Release every buffered event as spilled."""
        with self._lock:
            self._spill(Metric())

    def total(self) -> Metric:
        """Return the number and summed size of buffered events."""
        num, weight = self._incompletes.total()
        return Metric(num=num, size=weight)

    def _push(self, root: _Pending) -> bool:
        ok = self._connect(root, recheck=False)
        if ok is None:
            return False
        if not ok:
            self._incompletes.remove(root.event.id)
            return False

        # Connecting an event may complete buffered children; walk them depth first.
        snapshot = self._incompletes.values()
        stack = [(root, iter(snapshot))]
        while stack:
            parent, candidates = stack[-1]
            parent_id = parent.event.id
            child = next((c for c in candidates if parent_id in c.event.parents), None)
            if child is None:
                stack.pop()
                self._incompletes.remove(parent_id)
                continue
            child_ok = self._connect(child, recheck=True)
            if child_ok is None:
                continue
            if child_ok:
                stack.append((child, iter(snapshot)))
            else:
                self._incompletes.remove(child.event.id)
        return True

    def _connect(self, pending: _Pending, recheck: bool) -> Optional[bool]:
        """Try to connect an event.

        Return None if it is already connected or still incomplete, otherwise
        whether processing succeeded.
        """
        event = pending.event
        if self._callback.exists(event.id):
            self._incompletes.remove(event.id)
            if not recheck:
                self._drop(pending, AlreadyConnectedEventError())
            self._release(pending)
            return None
        parents = self._complete_parents(event)
        if parents is None:
            if not recheck:
                self._incompletes.add(event.id, pending, event.size())
            return None
        ok = self._process_complete(pending, parents)
        self._release(pending)
        return ok

    def _complete_parents(self, event: BaseEvent) -> Optional[list[BaseEvent]]:
        parents = []
        for parent_id in event.parents:
            parent = self._callback.get(parent_id)
            if parent is None:
                return None
            parents.append(parent)
        return parents

    def _process_complete(self, pending: _Pending, parents: list[BaseEvent]) -> bool:
        if self._callback.check is not None:
            try:
                self._callback.check(pending.event, parents)
            except Exception as err:
                self._drop(pending, err)
                return False
        try:
            self._callback.process(pending.event)
        except Exception as err:
            pending.err = err
            return False
        return True

    def _spill(self, limit: Metric) -> None:
        while True:
            num, weight = self._incompletes.total()
            if num <= limit.num and weight <= limit.size:
                return
            pending = self._incompletes.pop_oldest()
            if pending is None:
                return
            self._drop(pending, SpilledEventError())
            self._release(pending)

    @staticmethod
    def _drop(pending: _Pending, err: BaseException) -> None:
        if pending.err is None:
            pending.err = err

    def _release(self, pending: _Pending) -> None:
        if self._callback.released is not None and not pending.released:
            self._callback.released(pending.event, pending.peer, pending.err)
        pending.released = True