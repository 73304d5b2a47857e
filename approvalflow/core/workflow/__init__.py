"""Sequential document approval workflow.

Implements the document state machine and the engine that drives it.
"""

from .states import DocumentStatus, WorkflowAction, TERMINAL_STATES
from .machine import (
    ApproverRecord,
    Document,
    DocumentNotFoundError,
    DocumentStateMachine,
    UnauthorizedApproverError,
    WorkflowError,
)
from .events import (
    CollectingEventSink,
    CompositeEventSink,
    DocumentApproved,
    DocumentRejected,
    DocumentSubmitted,
    EventSink,
    LoggingEventSink,
)
from .store import InMemoryWorkflowStore, StoreTransaction, WorkflowStore
from .engine import ApprovalWorkflowEngine

__all__ = [
    "DocumentStatus",
    "WorkflowAction",
    "TERMINAL_STATES",
    "ApproverRecord",
    "Document",
    "DocumentNotFoundError",
    "DocumentStateMachine",
    "UnauthorizedApproverError",
    "WorkflowError",
    "CollectingEventSink",
    "CompositeEventSink",
    "DocumentApproved",
    "DocumentRejected",
    "DocumentSubmitted",
    "EventSink",
    "LoggingEventSink",
    "InMemoryWorkflowStore",
    "StoreTransaction",
    "WorkflowStore",
    "ApprovalWorkflowEngine",
]
