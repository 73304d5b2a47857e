"""Document workflow states and transitions.

State Machine Diagram:

    submit
      │
    ┌─▼────────┐  advance (more approvers left)
    │ PENDING  │◄─────────┐
    └─┬───┬────┘──────────┘
      │   │
      │   │ reject (any position)
      │   └──────────────────┐
      │ approve (last slot)  │
    ┌─▼────────┐       ┌─────▼────┐
    │ APPROVED │       │ REJECTED │
    └──────────┘       └──────────┘

APPROVED and REJECTED are terminal: no transition leaves them.
"""

from enum import Enum
from typing import Set, Dict, Optional, NamedTuple


class DocumentStatus(str, Enum):
    """Lifecycle status of a submitted document."""

    PENDING = "pending"      # Waiting on the approver at the cursor
    APPROVED = "approved"    # Every approver signed off
    REJECTED = "rejected"    # Halted by a single rejection


class WorkflowAction(str, Enum):
    """Actions that move a document through the workflow."""

    ADVANCE = "advance"      # PENDING → PENDING, cursor moves to the next slot
    APPROVE = "approve"      # PENDING → APPROVED, last slot signed
    REJECT = "reject"        # PENDING → REJECTED


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_state: DocumentStatus
    to_state: DocumentStatus
    action: WorkflowAction
    advances_cursor: bool = False


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(DocumentStatus.PENDING, DocumentStatus.PENDING, WorkflowAction.ADVANCE,
                   advances_cursor=True),
    TransitionRule(DocumentStatus.PENDING, DocumentStatus.APPROVED, WorkflowAction.APPROVE,
                   advances_cursor=True),
    TransitionRule(DocumentStatus.PENDING, DocumentStatus.REJECTED, WorkflowAction.REJECT),
]

VALID_TRANSITIONS: Dict[DocumentStatus, Set[WorkflowAction]] = {}
TRANSITION_TARGETS: Dict[tuple[DocumentStatus, WorkflowAction], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.action)
    TRANSITION_TARGETS[(rule.from_state, rule.action)] = rule


TERMINAL_STATES: Set[DocumentStatus] = {
    DocumentStatus.APPROVED,
    DocumentStatus.REJECTED,
}


def can_transition(from_state: DocumentStatus, action: WorkflowAction) -> bool:
    """Check if an action is valid from the given status."""
    return action in VALID_TRANSITIONS.get(from_state, set())


def get_transition_rule(
    from_state: DocumentStatus, action: WorkflowAction
) -> Optional[TransitionRule]:
    """Get the transition rule for a status/action combination."""
    return TRANSITION_TARGETS.get((from_state, action))

