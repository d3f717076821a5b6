"""
Report lifecycle events.

ReportRepository announces every create, update and delete of a report on a
ReportEventDispatcher after the change is flushed. Listeners run
synchronously, in subscription order, inside the caller's transaction and
receive the caller's session. A listener that raises aborts the dispatch and
the exception reaches the code that mutated the report, so the surrounding
transaction rolls back.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ReportEvent(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class ReportChange:
    """A flushed change to one report"""
    event: ReportEvent
    report_id: int
    client_id: int


ReportListener = Callable[[Session, ReportChange], None]


class ReportEventDispatcher:
    """In-process, synchronous fan-out of report changes."""

    def __init__(self):
        self._listeners: List[ReportListener] = []

    def subscribe(self, listener: ReportListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ReportListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> List[ReportListener]:
        return list(self._listeners)

    def dispatch(self, session: Session, change: ReportChange) -> None:
        logger.debug(
            f"Report {change.report_id} {change.event.value} "
            f"(client {change.client_id}), {len(self._listeners)} listener(s)"
        )
        for listener in list(self._listeners):
            listener(session, change)
