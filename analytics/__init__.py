from .client import Client
from .config import ClientConfig, load_client_config
from .consumer import BatchConfig, TransportConfig
from .errors import (
    AnalyticsError,
    ConfigurationError,
    DeliveryError,
    InvalidArgumentError,
    RetryableDeliveryError,
)
from .events import Action, EventRecord
from .meta import get_version

__version__ = get_version()

__all__ = [
    "Client",
    "ClientConfig",
    "load_client_config",
    "BatchConfig",
    "TransportConfig",
    "AnalyticsError",
    "ConfigurationError",
    "DeliveryError",
    "InvalidArgumentError",
    "RetryableDeliveryError",
    "Action",
    "EventRecord",
]
