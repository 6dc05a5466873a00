from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence
from uuid import UUID

import httpx

from analytics.config.tls import create_ssl_context
from analytics.constants import DEFAULT_HEADERS
from analytics.errors import DeliveryError, RetryableDeliveryError
from analytics.events.models import EventRecord
from analytics.meta import get_user_agent
from .config import TransportConfig

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 429}


class AnalyticsEncoder(json.JSONEncoder):
    """
    JSON encoder for values commonly found in event properties and traits.
    """

    def default(self, value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        elif isinstance(value, (Decimal, UUID)):
            return str(value)
        elif isinstance(value, Enum):
            return value.value
        elif isinstance(value, (set, frozenset)):
            return list(value)
        else:
            return super().default(value)


def _extract_detail(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase or None

    if isinstance(data, dict):
        detail = data.get("detail") or data.get("error") or data.get("message")
        return str(detail) if detail else None

    return None


class Transport:
    """
    Sends one batch per call to the collection endpoint as a JSON POST.

    Never retries; the caller decides what to do with a failure.

    Raises:
        ConfigurationError: If the TLS settings for an https endpoint are invalid.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config or TransportConfig()
        self.endpoint = self.config.endpoint

        headers = {"User-Agent": get_user_agent(), **DEFAULT_HEADERS, **self.config.headers}
        headers["Content-Type"] = "application/json"
        self.headers = headers

        self._owns_client = http_client is None
        if http_client is None:
            verify: Any = True
            if self.endpoint.startswith("https://"):
                verify = create_ssl_context(
                    mode=self.config.tls_mode, ca_bundle=self.config.ca_bundle
                )
            http_client = httpx.Client(timeout=self.config.timeout, verify=verify)
        self.client = http_client

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        # Injected clients belong to the caller
        if self._owns_client:
            self.client.close()

    def serialize(self, secret: str, batch: Sequence[EventRecord]) -> bytes:
        payload = {"secret": secret, "batch": [record.to_dict() for record in batch]}
        # NaN and Infinity are not valid JSON
        body = json.dumps(
            payload, cls=AnalyticsEncoder, separators=(",", ":"), allow_nan=False
        )
        return body.encode("utf-8")

    def post(self, secret: str, batch: Sequence[EventRecord]) -> httpx.Response:
        """
        Deliver a batch.

        Returns:
            httpx.Response: The 2xx response.

        Raises:
            RetryableDeliveryError: Connection failures, timeouts, 408, 429 and 5xx.
            DeliveryError: Any other non-2xx response or transport failure.
        """
        try:
            body = self.serialize(secret, batch)
        except (TypeError, ValueError) as e:
            raise DeliveryError(detail=f"Unable to serialize batch: {e}", batch_size=len(batch)) from e

        try:
            response = self.client.post(self.endpoint, content=body, headers=self.headers)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError) as e:
            raise RetryableDeliveryError(detail=str(e) or type(e).__name__, batch_size=len(batch)) from e
        except httpx.HTTPError as e:
            raise DeliveryError(detail=str(e) or type(e).__name__, batch_size=len(batch)) from e

        if response.is_success:
            if "json" in response.headers.get("content-type", ""):
                try:
                    logger.debug("Batch accepted: %s", response.json())
                except ValueError:
                    logger.debug("Batch accepted with malformed JSON body")
            return response

        detail = _extract_detail(response)
        status_code = response.status_code

        if status_code in RETRYABLE_STATUS_CODES or response.is_server_error:
            raise RetryableDeliveryError(
                status_code=status_code, detail=detail, batch_size=len(batch)
            )

        raise DeliveryError(status_code=status_code, detail=detail, batch_size=len(batch))
