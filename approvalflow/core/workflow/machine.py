"""Document approval state machine.

Decides the next document snapshot for a single approve/reject call.
The machine never touches storage: the engine loads the document and the
approver expected at the cursor, asks the machine for the outcome, and
persists it only when no error was raised.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Dict, Any, NamedTuple

from .states import (
    DocumentStatus,
    WorkflowAction,
    TERMINAL_STATES,
    can_transition,
    get_transition_rule,
)


class WorkflowError(Exception):
    """Base class for refused workflow operations."""

    def __init__(self, message: str, document_id: int):
        super().__init__(message)
        self.document_id = document_id


class UnauthorizedApproverError(WorkflowError):
    """Raised when the caller is not the approver expected at the cursor.

    Covers acting out of turn, acting twice, acting as a stranger, and acting
    on a document that is already approved or rejected.
    """

    def __init__(self, document_id: int, caller: str, expected: Optional[str]):
        super().__init__(
            f"{caller!r} is not the expected approver of document {document_id}",
            document_id,
        )
        self.caller = caller
        self.expected = expected


class DocumentNotFoundError(WorkflowError):
    """Raised when a document id was never issued."""

    def __init__(self, document_id: int):
        super().__init__(f"Document {document_id} not found", document_id)


@dataclass(frozen=True)
class Document:
    """Snapshot of a submitted document."""

    id: int
    submitter: str
    content_reference: str
    name: str
    category: str
    submitted_at: datetime
    current_approver_index: int = 0
    status: DocumentStatus = DocumentStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "submitter": self.submitter,
            "content_reference": self.content_reference,
            "name": self.name,
            "category": self.category,
            "submitted_at": self.submitted_at.isoformat(),
            "current_approver_index": self.current_approver_index,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class ApproverRecord:
    """Per-approver decision on a document.

    Keyed by (document_id, identity), not by position: an identity listed
    more than once shares a single record, and acting at a later position
    overwrites what was recorded at an earlier one.
    """

    document_id: int
    identity: str
    status: DocumentStatus = DocumentStatus.PENDING
    acted_at: Optional[datetime] = None


class TransitionOutcome(NamedTuple):
    """Result of a successful approve/reject decision."""
    action: WorkflowAction
    document: Document
    record: ApproverRecord


class DocumentStateMachine:
    """
    State machine for one document's approval sequence.

    Enforces:
    - Only PENDING documents accept actions
    - Only the identity at the cursor may act
    - Approve advances the cursor, or completes the document on the last slot
    - Reject halts the document from any position
    """

    def __init__(self, document: Document, expected_approver: Optional[str]):
        """
        Initialize the state machine.

        Args:
            document: Current document snapshot
            expected_approver: Identity at ``document.current_approver_index``,
                or None when no slot is configured there
        """
        self.document = document
        self.expected_approver = expected_approver

    @property
    def state(self) -> DocumentStatus:
        return self.document.status

    @property
    def is_terminal(self) -> bool:
        return self.document.is_terminal

    def can_act(self, caller: str, action: WorkflowAction) -> bool:
        """Check if ``caller`` may perform ``action`` right now."""
        if not can_transition(self.document.status, action):
            return False
        return self.expected_approver is not None and caller == self.expected_approver

    def approve(
        self,
        caller: str,
        *,
        now: datetime,
        next_approver: Optional[str],
    ) -> TransitionOutcome:
        """
        Record an approval by ``caller``.

        Args:
            caller: Identity performing the approval
            now: Time of the action
            next_approver: Identity at the slot after the cursor, or None
                when the cursor is at the last slot

        Returns:
            The outcome holding the new document snapshot and the caller's record

        Raises:
            UnauthorizedApproverError: If the caller may not act
        """
        action = WorkflowAction.ADVANCE if next_approver is not None else WorkflowAction.APPROVE
        self._authorize(caller, action)
        return self._apply(action, caller, now)

    def reject(self, caller: str, *, now: datetime) -> TransitionOutcome:
        """
        Record a rejection by ``caller``; the document stops at its current cursor.

        Raises:
            UnauthorizedApproverError: If the caller may not act
        """
        self._authorize(caller, WorkflowAction.REJECT)
        return self._apply(WorkflowAction.REJECT, caller, now)

    def _authorize(self, caller: str, action: WorkflowAction) -> None:
        if not self.can_act(caller, action):
            expected = None if self.is_terminal else self.expected_approver
            raise UnauthorizedApproverError(self.document.id, caller, expected)

    def _apply(self, action: WorkflowAction, caller: str, now: datetime) -> TransitionOutcome:
        rule = get_transition_rule(self.document.status, action)
        cursor = self.document.current_approver_index
        if rule.advances_cursor:
            cursor += 1

        document = replace(self.document, current_approver_index=cursor, status=rule.to_state)
        record_status = DocumentStatus.REJECTED if action is WorkflowAction.REJECT else DocumentStatus.APPROVED
        record = ApproverRecord(
            document_id=self.document.id,
            identity=caller,
            status=record_status,
            acted_at=now,
        )
        return TransitionOutcome(action, document, record)
