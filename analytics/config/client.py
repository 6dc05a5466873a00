from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Optional

from analytics.constants import DEFAULT_MAX_QUEUE_SIZE
from analytics.consumer.config import BatchConfig, TransportConfig
from analytics.errors import ConfigurationError, DeliveryError

_TRANSPORT_FIELDS = {f.name for f in fields(TransportConfig)}
_BATCH_FIELDS = {f.name for f in fields(BatchConfig)}


@dataclass(frozen=True)
class ClientConfig:
    """
    Everything a Client needs, with documented defaults.

    Args:
        secret: Project secret sent with every batch. Required.
        max_queue_size: Records kept in memory before new ones are dropped.
        on_error: Called with a DeliveryError for every batch that could not be delivered.
        transport: Endpoint and HTTP options.
        batch: Batching, flushing and shutdown options.
        register_atexit: Flush and stop the dispatch loop at interpreter exit.
    """

    secret: Optional[str] = None
    max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE
    on_error: Optional[Callable[[DeliveryError], None]] = None
    transport: TransportConfig = field(default_factory=TransportConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    register_atexit: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.max_queue_size, int) or self.max_queue_size < 1:
            raise ConfigurationError("max_queue_size must be an integer of at least 1.")
        if self.on_error is not None and not callable(self.on_error):
            raise ConfigurationError("on_error must be callable.")

    @classmethod
    def from_options(cls, secret: Optional[str] = None, **options: Any) -> "ClientConfig":
        """
        Build a config from a flat set of keyword options, routing transport
        (url, path, use_ssl, headers, ...) and batch (max_batch_size,
        flush_interval, ...) names to the nested configs.

        Raises:
            ConfigurationError: On unknown or invalid options.
        """
        return cls(secret=secret).with_options(**options)

    def with_options(self, **options: Any) -> "ClientConfig":
        """
        Return a copy with the given options applied. A ``transport`` or
        ``batch`` config replaces the current one and flat field options are
        applied on top of it.

        Raises:
            ConfigurationError: On unknown or invalid options.
        """
        transport = options.pop("transport", self.transport)
        batch = options.pop("batch", self.batch)
        transport_options = {k: options.pop(k) for k in list(options) if k in _TRANSPORT_FIELDS}
        batch_options = {k: options.pop(k) for k in list(options) if k in _BATCH_FIELDS}

        client_fields = {f.name for f in fields(self)}
        unknown = set(options) - client_fields
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(sorted(unknown))}.")

        if not isinstance(transport, TransportConfig):
            raise ConfigurationError("transport must be a TransportConfig.")
        if not isinstance(batch, BatchConfig):
            raise ConfigurationError("batch must be a BatchConfig.")

        try:
            transport = replace(transport, **transport_options)
            batch = replace(batch, **batch_options)
            return replace(self, transport=transport, batch=batch, **options)
        except (TypeError, ValueError) as e:
            # Non-numeric values fail the comparisons in __post_init__
            raise ConfigurationError(str(e)) from e
