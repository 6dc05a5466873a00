from __future__ import annotations

import copy
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from analytics.constants import CONTEXT_LIBRARY_KEY
from analytics.errors import InvalidArgumentError
from analytics.meta import get_library_context

from .models import Action, EventRecord


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def resolve_identity(session_id: Any, user_id: Any) -> None:
    """
    Ensure at least one of session_id / user_id is a non-empty string.

    Raises:
        InvalidArgumentError: If neither identifier is usable.
    """
    if not (_is_non_empty_string(user_id) or _is_non_empty_string(session_id)):
        raise InvalidArgumentError(
            "Must supply either a non-empty session_id or user_id (or both)"
        )

    for name, value in (("session_id", session_id), ("user_id", user_id)):
        if value is not None and not isinstance(value, str):
            raise InvalidArgumentError(f"{name} must be a string")


def resolve_timestamp(timestamp: Any) -> datetime:
    """
    Default to now (UTC). Naive datetimes are read as local time so the
    serialized value always carries an offset.

    Raises:
        InvalidArgumentError: If the value is not a datetime.
    """
    if timestamp is None:
        return datetime.now(timezone.utc)

    if not isinstance(timestamp, datetime):
        raise InvalidArgumentError("Timestamp must be a datetime")

    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        return timestamp.astimezone()

    return timestamp


def _copy_mapping(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}

    if not isinstance(value, Mapping):
        raise InvalidArgumentError(f"Must supply {name} as a mapping")

    try:
        return copy.deepcopy(dict(value))
    except Exception as e:
        raise InvalidArgumentError(f"Unable to copy {name}: {e}") from e


def merge_context(context: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Return a new context with the library marker added. The caller's mapping
    is left untouched and the reserved key always wins over a caller value.
    """
    merged = _copy_mapping(context, "context")
    merged[CONTEXT_LIBRARY_KEY] = get_library_context()
    return merged


def build_track_record(
    *,
    event: Any,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    properties: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> EventRecord:
    resolve_identity(session_id, user_id)
    resolved_timestamp = resolve_timestamp(timestamp)

    if not _is_non_empty_string(event):
        raise InvalidArgumentError("Must supply event as a non-empty string")

    copied_properties = _copy_mapping(properties, "properties")

    return EventRecord(
        action=Action.TRACK,
        timestamp=resolved_timestamp,
        context=MappingProxyType(merge_context(context)),
        session_id=session_id,
        user_id=user_id,
        event=event,
        properties=MappingProxyType(copied_properties),
    )


def build_identify_record(
    *,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    traits: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> EventRecord:
    resolve_identity(session_id, user_id)
    resolved_timestamp = resolve_timestamp(timestamp)
    copied_traits = _copy_mapping(traits, "traits")

    return EventRecord(
        action=Action.IDENTIFY,
        timestamp=resolved_timestamp,
        context=MappingProxyType(merge_context(context)),
        session_id=session_id,
        user_id=user_id,
        traits=MappingProxyType(copied_traits),
    )
