"""SQLAlchemy-backed workflow store.

Each mutating engine call runs in its own session. Concurrent calls on the
same document queue behind each other twice over: in-process on a striped
``threading.Lock``, and in the database on the document row, read with
``SELECT ... FOR UPDATE`` (or on the whole file for SQLite, whose engines
open transactions with ``BEGIN IMMEDIATE``). The loser then sees the moved
cursor and fails the approver check.
"""

import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import ContextManager, Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from approvalflow.core.workflow.machine import ApproverRecord, Document
from approvalflow.core.workflow.states import DocumentStatus
from approvalflow.core.workflow.store import LOCK_STRIPES, StoreTransaction, WorkflowStore
from approvalflow.db.models import (
    DOCUMENT_COUNTER,
    ApproverRecordRow,
    ApproverSlotRow,
    DocumentRow,
    WorkflowCounter,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        submitter=row.submitter,
        content_reference=row.content_reference,
        name=row.name,
        category=row.category,
        submitted_at=_as_utc(row.submitted_at),
        current_approver_index=row.current_approver_index,
        status=DocumentStatus(row.status),
    )


class _SqlTransaction(StoreTransaction):
    def __init__(self, session: Session):
        self.session = session

    def get_document(self, document_id: int) -> Optional[Document]:
        row = self.session.get(DocumentRow, document_id, with_for_update=True)
        return _to_document(row) if row else None

    def put_document(self, document: Document) -> None:
        row = self.session.get(DocumentRow, document.id)
        if row is None:
            row = DocumentRow(
                id=document.id,
                submitter=document.submitter,
                content_reference=document.content_reference,
                name=document.name,
                category=document.category,
                submitted_at=document.submitted_at,
            )
            self.session.add(row)
        row.current_approver_index = document.current_approver_index
        row.status = document.status.value
        self.session.flush()

    def get_approver(self, document_id: int, position: int) -> Optional[str]:
        row = self.session.get(ApproverSlotRow, (document_id, position))
        return row.identity if row else None

    def put_approver(self, document_id: int, position: int, identity: str) -> None:
        self.session.add(ApproverSlotRow(document_id=document_id, position=position, identity=identity))
        self.session.flush()

    def get_record(self, document_id: int, identity: str) -> Optional[ApproverRecord]:
        row = self.session.get(ApproverRecordRow, (document_id, identity))
        if row is None:
            return None
        return ApproverRecord(
            document_id=row.document_id,
            identity=row.identity,
            status=DocumentStatus(row.status),
            acted_at=_as_utc(row.acted_at),
        )

    def put_record(self, record: ApproverRecord) -> None:
        row = self.session.get(ApproverRecordRow, (record.document_id, record.identity))
        if row is None:
            row = ApproverRecordRow(document_id=record.document_id, identity=record.identity)
            self.session.add(row)
        row.status = record.status.value
        row.acted_at = record.acted_at
        self.session.flush()


class SqlWorkflowStore(WorkflowStore):
    """Workflow store persisted through SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Factory for sessions bound to an initialized database
                (see ``approvalflow.db.session.init_db``)
        """
        self.session_factory = session_factory
        bind = session_factory.kw.get("bind")
        # A StaticPool hands every session the same connection, so nothing may overlap
        self._single_connection = bind is not None and isinstance(bind.pool, StaticPool)
        stripes = 1 if self._single_connection else LOCK_STRIPES
        self._document_locks = [threading.RLock() for _ in range(stripes)]

    def next_document_id(self) -> int:
        with self._shared_guard():
            with self.session_factory.begin() as session:
                counter = session.get(WorkflowCounter, DOCUMENT_COUNTER, with_for_update=True)
                if counter is None:
                    counter = WorkflowCounter(name=DOCUMENT_COUNTER, value=0)
                    session.add(counter)
                counter.value += 1
                return counter.value

    @contextmanager
    def transaction(self, document_id: int) -> Iterator[StoreTransaction]:
        with self._lock_for(document_id):
            session = self.session_factory()
            try:
                yield _SqlTransaction(session)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._shared_guard():
            with self.session_factory() as session:
                row = session.get(DocumentRow, document_id)
                return _to_document(row) if row else None

    def _lock_for(self, document_id: int) -> ContextManager:
        return self._document_locks[document_id % len(self._document_locks)]

    def _shared_guard(self) -> ContextManager:
        if self._single_connection:
            return self._document_locks[0]
        return nullcontext()
