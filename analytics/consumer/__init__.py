from .config import BatchConfig, TransportConfig
from .callbacks import (
    ConsumerCallbacks,
    ErrorHandlerCallbacks,
    NullConsumerCallbacks,
    QueuePressure,
)
from .queue import BoundedQueue
from .http import Transport
from .background import DispatchLoop

__all__ = [
    "BatchConfig",
    "TransportConfig",
    "ConsumerCallbacks",
    "ErrorHandlerCallbacks",
    "NullConsumerCallbacks",
    "QueuePressure",
    "BoundedQueue",
    "Transport",
    "DispatchLoop",
]
