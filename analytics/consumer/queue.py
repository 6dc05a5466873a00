from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

from analytics.config.log_codes import QUEUE_CLOSED, QUEUE_RECORD_DROPPED
from .callbacks import (
    ConsumerCallbacks,
    NullConsumerCallbacks,
    QueuePressure,
    calculate_queue_pressure,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedQueue(Generic[T]):
    """
    Thread-safe FIFO with a fixed capacity. Records in, batches out.

    Overflow never blocks and never raises: enqueue() returns False and the
    record is dropped. Many producers may enqueue concurrently; a single
    consumer drains with dequeue_all().
    """

    def __init__(self, capacity: int, callbacks: Optional[ConsumerCallbacks] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.capacity = capacity
        self.callbacks = callbacks or NullConsumerCallbacks()

        self._items: Deque[T] = deque()
        self._cond = threading.Condition(threading.Lock())
        self._threshold: Optional[int] = None
        self._wakeup = False
        self._closed = False
        self._last_pressure = QueuePressure.LOW

    def enqueue(self, record: T) -> bool:
        with self._cond:
            closed = self._closed
            if closed:
                accepted = False
            else:
                accepted = len(self._items) < self.capacity
                if accepted:
                    self._items.append(record)
                    if self._threshold is not None and len(self._items) >= self._threshold:
                        self._cond.notify_all()
            current_size = len(self._items)
            pressure = self._pressure_change(current_size)

        if not accepted:
            logger.debug(
                QUEUE_RECORD_DROPPED,
                extra={"current_size": current_size, "max_size": self.capacity, "closed": closed},
            )
            self._notify("record_dropped", current_size, self.capacity)

        self._notify_pressure(pressure, current_size)
        return accepted

    def dequeue_all(self, max_items: Optional[int] = None) -> List[T]:
        """
        Remove and return queued records from the head, oldest first.

        Args:
            max_items: Upper bound on the number of records returned; None takes everything.
        """
        with self._cond:
            if max_items is None or max_items >= len(self._items):
                batch = list(self._items)
                self._items.clear()
            else:
                batch = [self._items.popleft() for _ in range(max_items)]
            current_size = len(self._items)
            pressure = self._pressure_change(current_size)

        self._notify_pressure(pressure, current_size)

        return batch

    def wait(self, threshold: int, timeout: Optional[float] = None) -> bool:
        """
        Block until at least `threshold` records are queued, wake() is called,
        the queue is closed, or `timeout` seconds pass.

        Returns:
            bool: Whether the threshold was reached.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            self._threshold = threshold
            try:
                while (
                    len(self._items) < threshold
                    and not self._wakeup
                    and not self._closed
                ):
                    if deadline is None:
                        self._cond.wait()
                        continue

                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)

                self._wakeup = False
                return len(self._items) >= threshold
            finally:
                self._threshold = None

    def wake(self) -> None:
        with self._cond:
            self._wakeup = True
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        logger.debug(QUEUE_CLOSED)

    def is_closed(self) -> bool:
        return self._closed

    def length(self) -> int:
        with self._cond:
            return len(self._items)

    def __len__(self) -> int:
        return self.length()

    def _pressure_change(self, current_size: int) -> Optional[QueuePressure]:
        # Caller holds _cond
        current_pressure = calculate_queue_pressure(current_size, self.capacity)
        if current_pressure == self._last_pressure:
            return None

        self._last_pressure = current_pressure
        return current_pressure

    def _notify_pressure(self, pressure: Optional[QueuePressure], current_size: int) -> None:
        if pressure is not None:
            self._notify("queue_pressure", pressure, current_size, self.capacity)

    def _notify(self, name: str, *args) -> None:
        try:
            getattr(self.callbacks, name)(*args)
        except Exception:
            # Never let callback errors crash the queue
            logger.debug("Queue callback %s failed", name, exc_info=True)
