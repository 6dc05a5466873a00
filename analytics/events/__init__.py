from .models import Action, EventRecord
from .builders import build_identify_record, build_track_record, merge_context

__all__ = [
    "Action",
    "EventRecord",
    "build_identify_record",
    "build_track_record",
    "merge_context",
]
