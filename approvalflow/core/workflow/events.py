"""Workflow events and the sinks that receive them.

Every successful operation emits exactly one event, after its writes are
committed. Sinks are fire-and-forget: the engine logs and drops any error a
sink raises.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Sequence, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSubmitted:
    document_id: int
    submitter: str
    timestamp: datetime

    event_type = "document.submitted"


@dataclass(frozen=True)
class DocumentApproved:
    """Emitted for every approval, final or not."""

    document_id: int
    approver: str
    timestamp: datetime

    event_type = "document.approved"


@dataclass(frozen=True)
class DocumentRejected:
    document_id: int
    approver: str
    timestamp: datetime

    event_type = "document.rejected"


WorkflowEvent = Union[DocumentSubmitted, DocumentApproved, DocumentRejected]


def event_to_dict(event: WorkflowEvent) -> Dict[str, Any]:
    """Serialize an event to a JSON-compatible dictionary."""
    payload: Dict[str, Any] = {
        "event": event.event_type,
        "document_id": event.document_id,
        "timestamp": event.timestamp.isoformat(),
    }
    if isinstance(event, DocumentSubmitted):
        payload["submitter"] = event.submitter
    else:
        payload["approver"] = event.approver
    return payload


class EventSink(ABC):
    """Receives workflow events."""

    @abstractmethod
    def emit(self, event: WorkflowEvent) -> None:
        ...


class LoggingEventSink(EventSink):
    """Writes each event to the log."""

    def emit(self, event: WorkflowEvent) -> None:
        logger.info("Workflow event %s: %s", event.event_type, event_to_dict(event))


class CollectingEventSink(EventSink):
    """Keeps emitted events in memory, in emission order."""

    def __init__(self):
        self.events: List[WorkflowEvent] = []

    def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def clear(self) -> None:
        self.events.clear()


class CompositeEventSink(EventSink):
    """Fans each event out to several sinks.

    A failing sink does not prevent the remaining sinks from receiving the event.
    """

    def __init__(self, sinks: Sequence[EventSink]):
        self.sinks = list(sinks)

    def emit(self, event: WorkflowEvent) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.exception("Event sink %s failed for %s", type(sink).__name__, event.event_type)
