"""
Tail Follower Module - Background polling for appended lines

Handles:
- Fixed interval polling on a background thread
- Extending the index and moving the window to the new end
- Skipping a tick while the previous one is still running
- Clean cancellation with no callbacks after stop
"""
import logging
from threading import Event, Lock, Thread
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.1  # seconds

UpdateCallback = Callable[[int, int], None]


class TailFollower:
    """Background worker that follows a growing source"""

    def __init__(self, source, interval: float = DEFAULT_INTERVAL,
                 on_update: Optional[UpdateCallback] = None):
        """
        Initialize the tail follower

        Args:
            source: SourceHandle to poll (needs ``refresh`` and ``follow_end``)
            interval: Seconds between polls
            on_update: Called with (old_total, new_total) when lines were appended
        """
        self.source = source
        self.interval = interval
        self.on_update = on_update

        self.stop_event = Event()
        self._tick_lock = Lock()

        self.worker_thread: Optional[Thread] = None
        self.is_running = False
        self.last_total = 0

    def start(self) -> None:
        """Start polling in the background"""
        if self.is_running:
            return

        self.stop_event.clear()
        self.last_total = self.source.total_lines()
        self.worker_thread = Thread(target=self._worker_loop, daemon=True)
        self.worker_thread.start()
        self.is_running = True
        logger.info(f"Tail mode started for {self.source.path}")

    def stop(self) -> None:
        """Stop polling and wait for the running tick to finish"""
        if not self.is_running:
            return

        self.stop_event.set()
        if self.worker_thread:
            self.worker_thread.join(timeout=2.0)
            if self.worker_thread.is_alive():
                logger.warning("Tail worker did not stop within 2s")
        self.is_running = False
        logger.info(f"Tail mode stopped for {self.source.path}")

    def tick(self) -> bool:
        """
        Poll once

        Returns:
            True if new lines were picked up; False if nothing changed or
            another tick was still in progress
        """
        if not self._tick_lock.acquire(blocking=False):
            return False
        try:
            old_total, new_total = self.source.refresh()
            if new_total <= old_total:
                self.last_total = new_total
                return False

            self.source.follow_end()
            self.last_total = new_total
            if self.on_update and not self.stop_event.is_set():
                self.on_update(old_total, new_total)
            return True
        finally:
            self._tick_lock.release()

    def _worker_loop(self) -> None:
        """Main worker loop - runs in background thread"""
        while not self.stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                # Keep following; the file may reappear or become readable again
                logger.warning(f"Tail update failed for {self.source.path}: {e}")
            self.stop_event.wait(self.interval)
