from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from analytics.constants import (
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PATH,
    DEFAULT_SHUTDOWN_TIMEOUT,
    DEFAULT_TIMEOUT,
    DEFAULT_URL,
    DEFAULT_USE_SSL,
)


@dataclass(frozen=True)
class BatchConfig:
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE  # Records per delivery attempt
    flush_interval: float = DEFAULT_FLUSH_INTERVAL  # Seconds between polls
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT  # Final drain budget
    max_retries: int = DEFAULT_MAX_RETRIES  # 0 disables retry
    retry_initial_wait: float = 0.5
    retry_max_wait: float = 10.0

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive")
        if self.shutdown_timeout < 0:
            raise ValueError("shutdown_timeout must not be negative")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")


@dataclass(frozen=True)
class TransportConfig:
    url: str = DEFAULT_URL
    path: str = DEFAULT_PATH
    use_ssl: bool = DEFAULT_USE_SSL
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    tls_mode: Optional[str] = None
    ca_bundle: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("url must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def endpoint(self) -> str:
        """
        Full URL of the collection endpoint. A url without scheme gets https
        when use_ssl is set and http otherwise.
        """
        base = self.url.strip().rstrip("/")
        if "://" not in base:
            scheme = "https" if self.use_ssl else "http"
            base = f"{scheme}://{base}"

        path = self.path.strip()
        if path and not path.startswith("/"):
            path = f"/{path}"

        return f"{base}{path}"
