"""Callback interface for queue and delivery events."""

from enum import Enum
from typing import Callable, Optional, Protocol

from analytics.errors import DeliveryError


class QueuePressure(Enum):
    """Queue pressure levels."""

    LOW = "low"  # 0-30% full
    MEDIUM = "medium"  # 30-70% full
    HIGH = "high"  # 70-90% full
    CRITICAL = "critical"  # 90%+ full


class ConsumerCallbacks(Protocol):
    def batch_sent(self, count: int) -> None: ...
    def record_dropped(self, current_size: int, max_size: int) -> None: ...
    def error(self, message: str, exc: Exception) -> None: ...
    def queue_pressure(
        self, pressure: QueuePressure, current_size: int, max_size: int
    ) -> None: ...


class NullConsumerCallbacks:
    def batch_sent(self, count: int) -> None:
        pass

    def record_dropped(self, current_size: int, max_size: int) -> None:
        pass

    def error(self, message: str, exc: Exception) -> None:
        pass

    def queue_pressure(
        self, pressure: QueuePressure, current_size: int, max_size: int
    ) -> None:
        pass


class ErrorHandlerCallbacks(NullConsumerCallbacks):
    """
    Forwards delivery failures to a user supplied ``on_error(error)`` function.
    """

    def __init__(self, on_error: Optional[Callable[[DeliveryError], None]] = None):
        self.on_error = on_error

    def error(self, message: str, exc: Exception) -> None:
        if self.on_error is not None:
            self.on_error(exc)  # type: ignore[arg-type]


def calculate_queue_pressure(current_size: int, max_size: int) -> QueuePressure:
    """Calculate queue pressure level based on fill percentage."""
    if max_size == 0:
        return QueuePressure.LOW

    fill_percentage = (current_size / max_size) * 100

    if fill_percentage >= 90:
        return QueuePressure.CRITICAL
    elif fill_percentage >= 70:
        return QueuePressure.HIGH
    elif fill_percentage >= 30:
        return QueuePressure.MEDIUM
    else:
        return QueuePressure.LOW
