"""Database models for ApprovalFlow."""

from approvalflow.db.models.document import (
    DOCUMENT_COUNTER,
    ApproverRecordRow,
    ApproverSlotRow,
    DocumentRow,
    WorkflowCounter,
)

__all__ = [
    "DOCUMENT_COUNTER",
    "ApproverRecordRow",
    "ApproverSlotRow",
    "DocumentRow",
    "WorkflowCounter",
]
