from typing import Optional

from analytics.constants import (
    EXIT_CODE_CONFIGURATION_ERROR,
    EXIT_CODE_DELIVERY_FAILED,
    EXIT_CODE_INVALID_ARGUMENT,
)


class AnalyticsError(Exception):
    """
    Base exception for analytics client errors.

    Args:
        message (str): The error message.
    """

    def __init__(self, message: str = "An unexpected error occurred in the analytics client."):
        self.message = message
        super().__init__(self.message)

    def get_exit_code(self) -> int:
        """
        Get the exit code associated with this error.

        Returns:
            int: The exit code.
        """
        return EXIT_CODE_DELIVERY_FAILED


class ConfigurationError(AnalyticsError):
    """
    Error raised when the client is not usable as configured, e.g. the secret
    was never set. Every call fails the same way until the configuration is
    fixed.

    Args:
        reason (Optional[str]): Details about what is misconfigured.
        message (str): The error message template.
    """

    def __init__(self, reason: Optional[str] = None,
                 message: str = "The analytics client is not configured correctly.{info}"):
        info = f" {reason}" if reason else ""
        self.reason = reason
        super().__init__(message.format(info=info))

    def get_exit_code(self) -> int:
        return EXIT_CODE_CONFIGURATION_ERROR


class InvalidArgumentError(AnalyticsError, ValueError):
    """
    Error raised when a track/identify call receives invalid arguments. The
    call has no side effect.

    Args:
        message (str): The error message.
    """

    def get_exit_code(self) -> int:
        return EXIT_CODE_INVALID_ARGUMENT


class DeliveryError(AnalyticsError):
    """
    Error raised when a batch could not be delivered to the collection
    endpoint. It is never raised to the caller of track/identify; it is handed
    to the configured error callback instead.

    Args:
        status_code (Optional[int]): The HTTP status code, when a response was received.
        detail (Optional[str]): Server provided detail or transport error text.
        batch_size (int): Number of records in the dropped batch.
        message (str): The error message template.
    """

    def __init__(self, status_code: Optional[int] = None, detail: Optional[str] = None,
                 batch_size: int = 0,
                 message: str = "Unable to deliver batch{status}.{info}"):
        self.status_code = status_code
        self.detail = detail
        self.batch_size = batch_size
        status = f" (HTTP {status_code})" if status_code is not None else ""
        info = f" Details: {detail}" if detail else ""
        super().__init__(message.format(status=status, info=info))


class RetryableDeliveryError(DeliveryError):
    """
    Delivery failure that may succeed if attempted again: connection errors,
    timeouts, 408, 429 and 5xx responses.
    """
