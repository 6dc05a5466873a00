from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class Action(Enum):
    """
    Kinds of records a client can submit.
    """

    TRACK = "track"
    IDENTIFY = "identify"


@dataclass(frozen=True)
class EventRecord:
    """
    A validated, normalized record waiting for delivery.

    Instances are only produced by the builders in ``analytics.events.builders``
    and hold read-only views over private copies of every caller supplied
    mapping.
    """

    action: Action
    timestamp: datetime
    context: Mapping[str, Any]
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    event: Optional[str] = None
    properties: Optional[Mapping[str, Any]] = None
    traits: Optional[Mapping[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        """
        Wire representation of the record: a flat object with camelCase keys
        and an ISO-8601 timestamp.
        """
        data: dict[str, Any] = {
            "action": self.action.value,
            "sessionId": self.session_id,
            "userId": self.user_id,
            "context": dict(self.context),
            "timestamp": self.timestamp.isoformat(),
        }

        if self.action is Action.TRACK:
            data["event"] = self.event
            data["properties"] = dict(self.properties or {})
        else:
            data["traits"] = dict(self.traits or {})

        return data
