from __future__ import annotations

import atexit
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from analytics.config.client import ClientConfig
from analytics.config.log_codes import CLIENT_SECRET_MISSING
from analytics.consumer.background import DispatchLoop
from analytics.consumer.callbacks import ConsumerCallbacks, ErrorHandlerCallbacks
from analytics.consumer.http import Transport
from analytics.consumer.queue import BoundedQueue
from analytics.errors import ConfigurationError
from analytics.events.builders import build_identify_record, build_track_record
from analytics.events.models import EventRecord

logger = logging.getLogger(__name__)


class Client:
    """
    Records track and identify calls and delivers them in the background.

    Calls never wait on the network: each record is validated, queued and
    picked up by a dispatch thread owned by this client. ``track`` and
    ``identify`` return False when the queue is full and the record was
    dropped.

    Usage::

        with Client("my-secret", on_error=report) as client:
            client.track(event="Signed Up", user_id="u1", properties={"plan": "pro"})

    Args:
        secret: Project secret. Required unless given through ``config``.
        config: A complete ClientConfig; keyword options are applied on top of it.
        transport: Transport to use instead of one built from the config.
        callbacks: Observer for queue and delivery events. Defaults to forwarding
            delivery errors to ``on_error``.
        **options: Any ClientConfig, TransportConfig or BatchConfig field.

    Raises:
        ConfigurationError: If no secret is configured or an option is invalid.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        callbacks: Optional[ConsumerCallbacks] = None,
        **options: Any,
    ):
        config = config or ClientConfig()
        if secret is not None:
            options["secret"] = secret
        if options:
            config = config.with_options(**options)

        self.config = config
        self._secret = config.secret
        self._check_secret()

        self.callbacks = callbacks or ErrorHandlerCallbacks(config.on_error)
        self._queue: BoundedQueue[EventRecord] = BoundedQueue(
            config.max_queue_size, self.callbacks
        )
        self._owns_transport = transport is None
        self._transport = transport or Transport(config.transport)
        self._consumer = DispatchLoop(
            self._queue,
            self._transport,
            self._secret,  # type: ignore[arg-type]
            config=config.batch,
            callbacks=self.callbacks,
        )
        self._closed = False

        self._consumer.start()
        if config.register_atexit:
            atexit.register(self.shutdown)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    def track(
        self,
        event: Optional[str] = None,
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        properties: Optional[Mapping[str, Any]] = None,
        context: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """
        Track an event.

        Args:
            event: Name of the event. Must be a non-empty string.
            session_id: Session of the user (optional with user_id).
            user_id: Id of the user (optional with session_id).
            properties: Event properties.
            context: Extra context; the ``library`` key is reserved.
            timestamp: When the event happened. Defaults to now.

        Returns:
            bool: Whether the record was queued.

        Raises:
            ConfigurationError: If the client has no secret.
            InvalidArgumentError: If any argument is invalid.
        """
        self._check_secret()

        record = build_track_record(
            event=event,
            session_id=session_id,
            user_id=user_id,
            properties=properties,
            context=context,
            timestamp=timestamp,
        )
        return self._queue.enqueue(record)

    def identify(
        self,
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        traits: Optional[Mapping[str, Any]] = None,
        context: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """
        Identify a user.

        Args:
            session_id: Session of the user (optional with user_id).
            user_id: Id of the user (optional with session_id).
            traits: User traits.
            context: Extra context; the ``library`` key is reserved.
            timestamp: When the identification happened. Defaults to now.

        Returns:
            bool: Whether the record was queued.

        Raises:
            ConfigurationError: If the client has no secret.
            InvalidArgumentError: If any argument is invalid.
        """
        self._check_secret()

        record = build_identify_record(
            session_id=session_id,
            user_id=user_id,
            traits=traits,
            context=context,
            timestamp=timestamp,
        )
        return self._queue.enqueue(record)

    def queued_count(self) -> int:
        """Number of records waiting for delivery."""
        return len(self._queue)

    @property
    def queued_messages(self) -> int:
        return self.queued_count()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every queued record has been handed to the transport.

        Returns:
            bool: False if the timeout passed first.
        """
        return self._consumer.flush(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop accepting records, deliver what is queued within the configured
        shutdown budget and stop the dispatch thread. Safe to call twice.

        Returns:
            bool: Whether the dispatch thread terminated.
        """
        if self._closed:
            return True
        self._closed = True

        if self.config.register_atexit:
            atexit.unregister(self.shutdown)

        stopped = self._consumer.stop(timeout)

        # The thread may still be posting when the join timed out
        if self._owns_transport and stopped:
            self._transport.close()

        return stopped

    def _check_secret(self) -> None:
        if not self._secret:
            logger.error(CLIENT_SECRET_MISSING)
            raise ConfigurationError("Secret must be initialized.")
