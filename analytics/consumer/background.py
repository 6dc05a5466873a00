from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential_jitter,
)

from analytics.config.log_codes import (
    DISPATCH_BATCH_FAILED,
    DISPATCH_BATCH_SENT,
    DISPATCH_CALLBACK_FAILED,
    DISPATCH_DRAIN_ABANDONED,
    DISPATCH_STARTED,
    DISPATCH_STOPPED,
    DISPATCH_STOPPING,
)
from analytics.errors import DeliveryError, RetryableDeliveryError
from analytics.events.models import EventRecord
from .callbacks import ConsumerCallbacks, NullConsumerCallbacks
from .config import BatchConfig
from .http import Transport
from .queue import BoundedQueue

logger = logging.getLogger(__name__)


class DispatchLoop:
    """
    The single background consumer of a client's queue.

    Runs on its own daemon thread: waits for the flush interval (or until a
    full batch is queued), drains the queue in batches of at most
    ``max_batch_size`` records and hands each batch to the transport. Failed
    batches are reported once through ``callbacks.error`` and dropped.
    """

    def __init__(
        self,
        queue: BoundedQueue[EventRecord],
        transport: Transport,
        secret: str,
        config: Optional[BatchConfig] = None,
        callbacks: Optional[ConsumerCallbacks] = None,
    ):
        self.queue = queue
        self.transport = transport
        self.secret = secret
        self.config = config or BatchConfig()
        self.callbacks = callbacks or NullConsumerCallbacks()

        self._stop_event = threading.Event()
        self._start_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        # Guards _in_flight so flush() can tell when nothing is pending
        self._state = threading.Condition()
        self._in_flight = False

    def start(self) -> None:
        with self._start_lock:
            if self._thread is not None:
                return

            self._thread = threading.Thread(
                target=self.run, name="analytics-dispatch", daemon=True
            )
            self._thread.start()

        logger.debug(
            DISPATCH_STARTED,
            extra={
                "max_batch_size": self.config.max_batch_size,
                "flush_interval": self.config.flush_interval,
            },
        )

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        while not self._stop_event.is_set():
            self.queue.wait(
                threshold=self.config.max_batch_size,
                timeout=self.config.flush_interval,
            )

            if self._stop_event.is_set():
                break

            while self._process_batch():
                if self._stop_event.is_set():
                    break

        self._final_drain()
        logger.debug(DISPATCH_STOPPED)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued record has been handed to the transport.

        Returns:
            bool: False if the timeout passed first or the loop is not running.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        self.queue.wake()

        with self._state:
            while len(self.queue) or self._in_flight:
                if not self.is_running():
                    return False

                wait_for = 0.1
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return False
                    wait_for = min(wait_for, remaining)

                self.queue.wake()
                self._state.wait(wait_for)

        return True

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Signal the loop to stop, close the queue to new records and wait for
        the final drain, which is bounded by ``shutdown_timeout``.

        Returns:
            bool: Whether the background thread has terminated.
        """
        logger.debug(DISPATCH_STOPPING, extra={"pending": len(self.queue)})

        self._stop_event.set()
        self.queue.close()

        if self._thread is None:
            return True

        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _final_drain(self) -> None:
        deadline = time.monotonic() + self.config.shutdown_timeout

        while time.monotonic() < deadline:
            if not self._process_batch():
                return

        abandoned = self.queue.dequeue_all()
        if abandoned:
            logger.warning(DISPATCH_DRAIN_ABANDONED, extra={"dropped": len(abandoned)})

    def _process_batch(self) -> bool:
        """
        Take one batch off the queue and deliver it.

        Returns:
            bool: False when the queue was empty.
        """
        with self._state:
            self._in_flight = True

        try:
            batch = self.queue.dequeue_all(max_items=self.config.max_batch_size)
            if not batch:
                return False

            self._deliver(batch)
            return True
        finally:
            with self._state:
                self._in_flight = False
                self._state.notify_all()

    def _retrying(self) -> Retrying:
        return Retrying(
            reraise=True,
            stop=(
                stop_after_attempt(self.config.max_retries + 1)
                | stop_when_event_set(self._stop_event)
            ),
            wait=wait_exponential_jitter(
                initial=self.config.retry_initial_wait,
                max=self.config.retry_max_wait,
            ),
            retry=retry_if_exception_type(RetryableDeliveryError),
            sleep=self._stop_event.wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

    def _deliver(self, batch: list[EventRecord]) -> None:
        try:
            for attempt in self._retrying():
                with attempt:
                    self.transport.post(self.secret, batch)
        except DeliveryError as e:
            logger.warning(
                DISPATCH_BATCH_FAILED,
                extra={"batch_size": len(batch), "status_code": e.status_code},
            )
            self._report_error(f"Batch delivery failed: {e.message}", e)
            return
        except Exception as e:
            logger.exception(DISPATCH_BATCH_FAILED, extra={"batch_size": len(batch)})
            error = DeliveryError(detail=str(e) or type(e).__name__, batch_size=len(batch))
            error.__cause__ = e
            self._report_error(f"Batch delivery failed: {error.message}", error)
            return

        logger.debug(DISPATCH_BATCH_SENT, extra={"batch_size": len(batch)})

        try:
            self.callbacks.batch_sent(len(batch))
        except Exception:
            logger.exception(DISPATCH_CALLBACK_FAILED, extra={"callback": "batch_sent"})

    def _report_error(self, message: str, error: DeliveryError) -> None:
        try:
            self.callbacks.error(message, error)
        except Exception:
            logger.exception(DISPATCH_CALLBACK_FAILED, extra={"callback": "error"})
