"""Approval workflow engine.

Provides the four workflow operations (submit, approve, reject, get) on top
of a WorkflowStore, the DocumentStateMachine and an EventSink.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from .events import (
    DocumentApproved,
    DocumentRejected,
    DocumentSubmitted,
    EventSink,
    LoggingEventSink,
    WorkflowEvent,
)
from .machine import (
    ApproverRecord,
    Document,
    DocumentNotFoundError,
    DocumentStateMachine,
    TransitionOutcome,
    UnauthorizedApproverError,
)
from .states import WorkflowAction
from .store import StoreTransaction, WorkflowStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalWorkflowEngine:
    """
    Sequential multi-party approval of documents.

    A document is submitted with an ordered list of approvers. Each approver
    must approve or reject in turn; the last approval completes the document
    and any rejection halts it.

    Caller identities are trusted as given. The engine does not authenticate.
    """

    def __init__(
        self,
        store: WorkflowStore,
        *,
        events: Optional[EventSink] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the engine.

        Args:
            store: Persistent store for documents, approver slots and records
            events: Sink receiving one event per successful mutation
            clock: Time source used when a call does not pass ``now``
        """
        self.store = store
        self.events = events or LoggingEventSink()
        self.clock = clock

    def submit(
        self,
        content_reference: str,
        name: str,
        category: str,
        approvers: Sequence[str],
        *,
        submitter: str,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Submit a document for sequential approval.

        ``approvers`` may be empty, in which case the document stays pending
        indefinitely. An identity may appear more than once; it then acts once
        per position but keeps a single ApproverRecord.

        Returns:
            The new document id

        Raises:
            ValueError: If a field is not a string or an approver identity is empty
        """
        approvers = list(approvers)
        self._validate_submission(content_reference, name, category, approvers, submitter)
        now = now or self.clock()

        document_id = self.store.next_document_id()
        document = Document(
            id=document_id,
            submitter=submitter,
            content_reference=content_reference,
            name=name,
            category=category,
            submitted_at=now,
        )

        with self.store.transaction(document_id) as tx:
            tx.put_document(document)
            for position, identity in enumerate(approvers):
                tx.put_approver(document_id, position, identity)
                tx.put_record(ApproverRecord(document_id=document_id, identity=identity))

        logger.info(
            "Document %d submitted by %s with %d approver(s)",
            document_id, submitter, len(approvers),
        )
        if len(set(approvers)) != len(approvers):
            logger.warning(
                "Document %d lists an approver more than once; repeated approvers share one record",
                document_id,
            )
        self._emit(DocumentSubmitted(document_id=document_id, submitter=submitter, timestamp=now))
        return document_id

    def approve(self, document_id: int, caller: str, now: Optional[datetime] = None) -> Document:
        """
        Approve ``document_id`` as ``caller``.

        Returns:
            The document snapshot after the approval

        Raises:
            DocumentNotFoundError: If the document does not exist
            UnauthorizedApproverError: If it is not the caller's turn
        """
        now = now or self.clock()

        with self.store.transaction(document_id) as tx:
            machine = self._load_machine(tx, document_id)
            next_approver = tx.get_approver(document_id, machine.document.current_approver_index + 1)
            outcome = self._decide(
                machine, WorkflowAction.APPROVE, caller,
                lambda: machine.approve(caller, now=now, next_approver=next_approver),
            )
            self._persist(tx, outcome)

        self._emit(DocumentApproved(document_id=document_id, approver=caller, timestamp=now))
        return outcome.document

    def reject(self, document_id: int, caller: str, now: Optional[datetime] = None) -> Document:
        """
        Reject ``document_id`` as ``caller``. The document becomes terminal.

        Returns:
            The document snapshot after the rejection

        Raises:
            DocumentNotFoundError: If the document does not exist
            UnauthorizedApproverError: If it is not the caller's turn
        """
        now = now or self.clock()

        with self.store.transaction(document_id) as tx:
            machine = self._load_machine(tx, document_id)
            outcome = self._decide(
                machine, WorkflowAction.REJECT, caller,
                lambda: machine.reject(caller, now=now),
            )
            self._persist(tx, outcome)

        self._emit(DocumentRejected(document_id=document_id, approver=caller, timestamp=now))
        return outcome.document

    def get(self, document_id: int) -> Document:
        """
        Get the current snapshot of a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = self.store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def _load_machine(self, tx: StoreTransaction, document_id: int) -> DocumentStateMachine:
        document = tx.get_document(document_id)
        if document is None:
            logger.warning("Refused action on unknown document %d", document_id)
            raise DocumentNotFoundError(document_id)
        expected = tx.get_approver(document_id, document.current_approver_index)
        return DocumentStateMachine(document, expected)

    def _decide(
        self,
        machine: DocumentStateMachine,
        action: WorkflowAction,
        caller: str,
        decide: Callable[[], TransitionOutcome],
    ) -> TransitionOutcome:
        try:
            outcome = decide()
        except UnauthorizedApproverError as e:
            logger.warning(
                "Refused %s on document %d by %s: status=%s expected=%s",
                action.value, machine.document.id, caller, machine.state.value, e.expected,
            )
            raise

        logger.info(
            "Document %d: %s by %s (cursor %d → %d, status %s → %s)",
            machine.document.id,
            outcome.action.value,
            caller,
            machine.document.current_approver_index,
            outcome.document.current_approver_index,
            machine.state.value,
            outcome.document.status.value,
        )
        return outcome

    def _persist(self, tx: StoreTransaction, outcome: TransitionOutcome) -> None:
        tx.put_record(outcome.record)
        tx.put_document(outcome.document)

    def _emit(self, event: WorkflowEvent) -> None:
        try:
            self.events.emit(event)
        except Exception:
            logger.exception("Event sink failed for %s on document %d", event.event_type, event.document_id)

    @staticmethod
    def _validate_submission(
        content_reference: str,
        name: str,
        category: str,
        approvers: Sequence[str],
        submitter: str,
    ) -> None:
        for field_name, value in (
            ("content_reference", content_reference),
            ("name", name),
            ("category", category),
            ("submitter", submitter),
        ):
            if not isinstance(value, str):
                raise ValueError(f"{field_name} must be a string")
        for position, identity in enumerate(approvers):
            if not isinstance(identity, str) or not identity:
                raise ValueError(f"Approver at position {position} must be a non-empty identity")
