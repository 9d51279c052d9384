"""Downloader that requests chunks from a single peer as earlier ones get processed."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable, Hashable, Optional


class TerminatedError(Exception):
    def __init__(self, message: str = "terminated") -> None:
        super().__init__(message)


@dataclass
class EpochDownloaderConfig:
    """Download limits; the recheck interval is in seconds."""

    recheck_interval: float
    default_chunk_items_num: int
    default_chunk_items_size: int
    parallel_chunks_download: int


@dataclass
class EpochDownloaderCallbacks:
    is_processed: Callable[[Hashable], bool]
    request_chunks: Callable[[int, int, int], Any]
    suspend: Callable[[], bool]
    done: Callable[[], bool]


class BasePeerLeecher:
    """Keeps ``parallel_chunks_download`` chunk requests in flight with one peer."""

    def __init__(self, config: EpochDownloaderConfig, callbacks: EpochDownloaderCallbacks) -> None:
        self._cfg = config
        self._callbacks = callbacks
        self._capacity = config.parallel_chunks_download * 2
        self._received: queue.Queue = queue.Queue(maxsize=max(1, self._capacity))
        self._processing: list[Hashable] = []
        self._total_requested = 0
        self._total_processed = 0
        self._quit = threading.Event()
        self._quit_lock = threading.Lock()
        self._done = False
        self._thread: Optional[threading.Thread] = None

    @property
    def total_requested(self) -> int:
        return self._total_requested

    @property
    def total_processed(self) -> int:
        return self._total_processed

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Terminate and wait for the background thread."""
        self.terminate()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def terminate(self) -> None:
        with self._quit_lock:
            if not self._done:
                self._quit.set()
                self._done = True

    def stopped(self) -> bool:
        return self._done

    def notify_chunk_received(self, chunk_id: Hashable) -> None:
        """Report a received chunk. Raise TerminatedError if stopped."""
        while True:
            if self._quit.is_set():
                raise TerminatedError()
            try:
                self._received.put(chunk_id, timeout=min(self._cfg.recheck_interval, 0.05))
                return
            except queue.Full:
                continue

    def _loop(self) -> None:
        interval = self._cfg.recheck_interval
        next_tick = monotonic() + interval
        while not self._quit.is_set():
            remaining = next_tick - monotonic()
            if remaining <= 0:
                next_tick = monotonic() + interval
                self._routine()
                continue
            try:
                chunk_id = self._received.get(timeout=remaining)
            except queue.Empty:
                continue
            if self._done:
                self.terminate()
                continue
            if len(self._processing) < self._capacity:
                self._processing.append(chunk_id)
                self._routine()

    def _routine(self) -> None:
        if self._callbacks.done():
            self.terminate()
            return
        self._sweep_processed()
        self._try_to_sync()

    def _sweep_processed(self) -> None:
        not_processed = []
        for chunk_id in self._processing:
            if self._callbacks.is_processed(chunk_id):
                self._total_processed += 1
            else:
                not_processed.append(chunk_id)
        self._processing = not_processed

    def _try_to_sync(self) -> None:
        if self._callbacks.suspend():
            return
        target = self._total_processed + self._cfg.parallel_chunks_download
        if self._total_requested < target:
            to_send = target - self._total_requested
            self._total_requested += to_send
            self._callbacks.request_chunks(
                self._cfg.default_chunk_items_num,
                self._cfg.default_chunk_items_size,
                to_send,
            )