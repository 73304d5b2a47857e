"""Document workflow database models.

Stores documents, their ordered approver slots, and per-approver decisions.
Rows are never deleted.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from approvalflow.db.base import Base


DOCUMENT_COUNTER = "documents"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRow(Base):
    """
    A submitted document and its workflow cursor.

    Everything except ``current_approver_index``, ``status`` and
    ``updated_at`` is written once at submission.
    """
    __tablename__ = "documents"

    # Assigned from workflow_counters, never autoincremented by the database
    id = Column(Integer, primary_key=True, autoincrement=False)

    submitter = Column(String(255), nullable=False, index=True)
    content_reference = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)

    # Workflow state
    current_approver_index = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)

    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    slots = relationship("ApproverSlotRow", back_populates="document", order_by="ApproverSlotRow.position")
    records = relationship("ApproverRecordRow", back_populates="document")

    def __repr__(self) -> str:
        return f"<DocumentRow {self.id} {self.name!r} [{self.status}]>"


class ApproverSlotRow(Base):
    """The identity required to act at one position of a document's approval order."""
    __tablename__ = "approver_slots"

    document_id = Column(Integer, ForeignKey("documents.id"), primary_key=True)
    position = Column(Integer, primary_key=True)
    identity = Column(String(255), nullable=False)

    document = relationship("DocumentRow", back_populates="slots")

    def __repr__(self) -> str:
        return f"<ApproverSlotRow {self.document_id}#{self.position} {self.identity}>"


class ApproverRecordRow(Base):
    """
    Decision of one approver on one document.

    Keyed by identity rather than position: a repeated approver has one row,
    overwritten each time they act.
    """
    __tablename__ = "approver_records"

    document_id = Column(Integer, ForeignKey("documents.id"), primary_key=True)
    identity = Column(String(255), primary_key=True)
    status = Column(String(20), nullable=False, default="pending")
    acted_at = Column(DateTime(timezone=True), nullable=True)

    document = relationship("DocumentRow", back_populates="records")

    def __repr__(self) -> str:
        return f"<ApproverRecordRow {self.document_id}:{self.identity} [{self.status}]>"


class WorkflowCounter(Base):
    """Named monotonic counters; ``documents`` issues document ids."""
    __tablename__ = "workflow_counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
