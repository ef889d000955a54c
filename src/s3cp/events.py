# src/s3cp/events.py
"""Structured diagnostic events emitted by a copy session."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class EventKind(Enum):
    """The stage of a copy session an event reports on."""

    SIZE_RESOLVED = "size_resolved"
    OBJECT_COPIED = "object_copied"
    MULTIPART_CREATED = "multipart_created"
    PART_COPIED = "part_copied"
    PART_FAILED = "part_failed"
    MULTIPART_COMPLETED = "multipart_completed"
    MULTIPART_ABORTED = "multipart_aborted"
    ABORT_FAILED = "abort_failed"
    SOURCE_DELETED = "source_deleted"
    DELETE_FAILED = "delete_failed"


@dataclass(frozen=True)
class CopyEvent:
    """
    A record of one step of a copy session.

    Attributes:
        kind (EventKind): What happened.
        locator (str): The `bucket/key` the event concerns.
        part_number (int, optional): The part, for part events.
        part_count (int, optional): The number of parts, for multipart events.
        size (int, optional): The resolved object size.
        error (Exception, optional): The failure, for failure events.
    """

    kind: EventKind
    locator: str
    part_number: Optional[int] = None
    part_count: Optional[int] = None
    size: Optional[int] = None
    error: Optional[Exception] = None


EventSink = Callable[[CopyEvent], None]
