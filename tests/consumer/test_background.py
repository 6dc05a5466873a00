from __future__ import annotations

import time
from typing import Callable, Iterator
from unittest.mock import Mock

import pytest

from analytics.consumer.background import DispatchLoop
from analytics.consumer.callbacks import ConsumerCallbacks
from analytics.consumer.config import BatchConfig
from analytics.consumer.http import Transport
from analytics.consumer.queue import BoundedQueue
from analytics.errors import DeliveryError, RetryableDeliveryError


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.mark.unit
class TestDispatchLoop:
    """
    Test the background dispatch loop against a mocked transport.
    """

    @pytest.fixture
    def mock_transport(self) -> Mock:
        return Mock(spec=Transport)

    @pytest.fixture
    def mock_callbacks(self) -> Mock:
        return Mock(spec=ConsumerCallbacks)

    @pytest.fixture
    def queue(self) -> BoundedQueue:
        return BoundedQueue(100)

    @pytest.fixture
    def make_loop(
        self, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> Iterator[Callable[..., DispatchLoop]]:
        loops = []

        def _make(**batch_options) -> DispatchLoop:
            options = {"max_batch_size": 3, "flush_interval": 0.05, "shutdown_timeout": 1.0}
            options.update(batch_options)
            loop = DispatchLoop(
                queue,
                mock_transport,
                "secret",
                config=BatchConfig(**options),
                callbacks=mock_callbacks,
            )
            loops.append(loop)
            return loop

        yield _make

        for loop in loops:
            loop.stop(timeout=2.0)

    def test_delivers_fifo_batches_bounded_by_max_batch_size(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        for item in range(7):
            queue.enqueue(item)
        loop = make_loop()

        loop.start()

        assert loop.flush(timeout=2.0) is True
        batches = [call.args[1] for call in mock_transport.post.call_args_list]
        assert batches == [[0, 1, 2], [3, 4, 5], [6]]
        assert all(call.args[0] == "secret" for call in mock_transport.post.call_args_list)
        assert [c.args[0] for c in mock_callbacks.batch_sent.call_args_list] == [3, 3, 1]
        assert len(queue) == 0

    def test_failed_batch_reported_once_and_dropped(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        error = RetryableDeliveryError(status_code=503, batch_size=2)
        mock_transport.post.side_effect = error
        queue.enqueue("a")
        queue.enqueue("b")
        loop = make_loop()

        loop.start()
        loop.flush(timeout=2.0)

        assert mock_transport.post.call_count == 1
        mock_callbacks.error.assert_called_once()
        message, reported = mock_callbacks.error.call_args.args
        assert reported is error
        assert "HTTP 503" in message
        mock_callbacks.batch_sent.assert_not_called()
        assert len(queue) == 0

    def test_retryable_failure_retried_when_enabled(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        mock_transport.post.side_effect = [RetryableDeliveryError(status_code=503), Mock()]
        queue.enqueue("a")
        loop = make_loop(max_retries=2, retry_initial_wait=0.01, retry_max_wait=0.02)

        loop.start()
        assert wait_until(lambda: mock_callbacks.batch_sent.called)

        assert mock_transport.post.call_count == 2
        mock_callbacks.batch_sent.assert_called_once_with(1)
        mock_callbacks.error.assert_not_called()

    def test_retries_exhausted_reports_last_error(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        mock_transport.post.side_effect = RetryableDeliveryError(status_code=500)
        queue.enqueue("a")
        loop = make_loop(max_retries=2, retry_initial_wait=0.01, retry_max_wait=0.02)

        loop.start()
        assert wait_until(lambda: mock_callbacks.error.called)

        assert mock_transport.post.call_count == 3
        mock_callbacks.error.assert_called_once()

    def test_client_error_not_retried(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        mock_transport.post.side_effect = DeliveryError(status_code=400)
        queue.enqueue("a")
        loop = make_loop(max_retries=3, retry_initial_wait=0.01)

        loop.start()
        assert wait_until(lambda: mock_callbacks.error.called)

        assert mock_transport.post.call_count == 1

    def test_unexpected_exception_wrapped_in_delivery_error(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        mock_transport.post.side_effect = RuntimeError("boom")
        queue.enqueue("a")
        loop = make_loop()

        loop.start()
        assert wait_until(lambda: mock_callbacks.error.called)

        reported = mock_callbacks.error.call_args.args[1]
        assert isinstance(reported, DeliveryError)
        assert isinstance(reported.__cause__, RuntimeError)
        assert reported.batch_size == 1

    def test_failing_error_callback_does_not_stop_loop(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock, mock_callbacks: Mock
    ) -> None:
        mock_transport.post.side_effect = [DeliveryError(status_code=400), Mock()]
        mock_callbacks.error.side_effect = Exception("callback failed")
        queue.enqueue("a")
        loop = make_loop()

        loop.start()
        assert wait_until(lambda: mock_callbacks.error.called)
        queue.enqueue("b")

        assert wait_until(lambda: mock_callbacks.batch_sent.called)
        assert loop.is_running()
        assert mock_transport.post.call_args.args[1] == ["b"]

    def test_full_batch_wakes_loop_before_interval(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock
    ) -> None:
        loop = make_loop(max_batch_size=2, flush_interval=30.0)
        loop.start()
        time.sleep(0.05)

        queue.enqueue("a")
        queue.enqueue("b")

        assert wait_until(lambda: mock_transport.post.called, timeout=2.0)
        assert mock_transport.post.call_args.args[1] == ["a", "b"]

    def test_flush_wakes_loop_before_interval(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock
    ) -> None:
        loop = make_loop(max_batch_size=50, flush_interval=30.0)
        loop.start()
        queue.enqueue("a")

        assert loop.flush(timeout=2.0) is True
        mock_transport.post.assert_called_once_with("secret", ["a"])

    def test_stop_drains_pending_records(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock
    ) -> None:
        loop = make_loop(max_batch_size=50, flush_interval=30.0)
        loop.start()
        for item in range(5):
            queue.enqueue(item)

        assert loop.stop(timeout=2.0) is True

        mock_transport.post.assert_called_once_with("secret", [0, 1, 2, 3, 4])
        assert queue.is_closed()
        assert queue.enqueue("late") is False
        assert not loop.is_running()

    def test_stop_abandons_records_past_shutdown_timeout(
        self, make_loop, queue: BoundedQueue, mock_transport: Mock
    ) -> None:
        loop = make_loop(max_batch_size=50, flush_interval=30.0, shutdown_timeout=0)
        loop.start()
        for item in range(3):
            queue.enqueue(item)

        assert loop.stop(timeout=2.0) is True

        mock_transport.post.assert_not_called()
        assert len(queue) == 0

    def test_stop_without_start(self, make_loop, queue: BoundedQueue) -> None:
        loop = make_loop()

        assert loop.stop() is True
        assert queue.is_closed()

    def test_start_is_idempotent(self, make_loop) -> None:
        loop = make_loop()

        loop.start()
        thread = loop._thread
        loop.start()

        assert loop._thread is thread
        assert thread is not None and thread.daemon

    def test_flush_without_running_loop_returns_false(
        self, make_loop, queue: BoundedQueue
    ) -> None:
        loop = make_loop()
        queue.enqueue("a")

        assert loop.flush(timeout=0.1) is False

    def test_flush_on_empty_queue_returns_true(self, make_loop) -> None:
        loop = make_loop()
        loop.start()

        assert loop.flush(timeout=0.5) is True
