"""Generic downloader that keeps one session running with one of its peers."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class Callbacks:
    select_session_peer_candidates: Callable[[], list]
    should_terminate_session: Callable[[], bool]
    start_session: Callable[[list], None]
    terminate_session: Callable[[], None]
    ongoing_session: Callable[[], bool]
    ongoing_session_peer: Callable[[], str]


class BaseLeecher:
    """Rechecks the session every ``recheck_interval`` seconds and restarts it as needed."""

    def __init__(self, recheck_interval: float, callbacks: Callbacks) -> None:
        self._callbacks = callbacks
        self._recheck_interval = recheck_interval
        self.peers: set[str] = set()
        self.quit = threading.Event()
        self.lock = threading.RLock()
        self.terminated = False
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self.quit.wait(self._recheck_interval):
            with self.lock:
                self.routine()

    def routine(self) -> None:
        """Terminate a session that should end and start one if none is running."""
        if self.terminated:
            return
        callbacks = self._callbacks
        if callbacks.ongoing_session() and callbacks.should_terminate_session():
            callbacks.terminate_session()
        if not callbacks.ongoing_session():
            candidates = callbacks.select_session_peer_candidates()
            if candidates:
                callbacks.start_session(candidates)

    def register_peer(self, peer: str) -> None:
        """Add a peer to download from; ignored once terminated."""
        with self.lock:
            if self.terminated:
                return
            self.peers.add(peer)

    def peers_num(self) -> int:
        with self.lock:
            return len(self.peers)

    def unregister_peer(self, peer: str) -> None:
        """Remove a peer, ending its session if it has one."""
        with self.lock:
            if self._callbacks.ongoing_session_peer() == peer:
                self._callbacks.terminate_session()
                self.routine()
            self.peers.discard(peer)

    def terminate(self) -> None:
        with self.lock:
            self.terminated = True
            self.quit.set()
            self._callbacks.terminate_session()

    def stop(self) -> None:
        """Terminate and wait for the background thread."""
        self.terminate()
        if self._thread is not None:
            self._thread.join()