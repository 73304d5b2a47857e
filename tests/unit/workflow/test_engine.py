"""Tests for the approval workflow engine."""

import itertools
from datetime import datetime, timezone
import logging

import pytest

from approvalflow.core.workflow import (
    ApprovalWorkflowEngine,
    ApproverRecord,
    DocumentApproved,
    DocumentNotFoundError,
    DocumentRejected,
    DocumentStatus,
    DocumentSubmitted,
    EventSink,
    UnauthorizedApproverError,
)

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def submit(engine, approvers, submitter="sam", **kwargs):
    return engine.submit("sha256:deadbeef", "Travel policy", "policy", approvers, submitter=submitter, **kwargs)


def record_of(store, document_id, identity) -> ApproverRecord:
    with store.transaction(document_id) as tx:
        return tx.get_record(document_id, identity)


def snapshot(store, document_id, approvers):
    """Everything the store holds for a document."""
    with store.transaction(document_id) as tx:
        return (
            tx.get_document(document_id),
            [tx.get_approver(document_id, i) for i in range(len(approvers) + 1)],
            {a: tx.get_record(document_id, a) for a in approvers},
        )


class TestSubmit:
    """Test document submission."""

    def test_submit_creates_pending_document(self, engine):
        document_id = submit(engine, ["alice", "bob"])

        document = engine.get(document_id)
        assert document.id == document_id
        assert document.submitter == "sam"
        assert document.content_reference == "sha256:deadbeef"
        assert document.name == "Travel policy"
        assert document.category == "policy"
        assert document.submitted_at == START
        assert document.current_approver_index == 0
        assert document.status == DocumentStatus.PENDING

    def test_submit_writes_slots_and_records(self, engine, store):
        document_id = submit(engine, ["alice", "bob"])

        with store.transaction(document_id) as tx:
            assert tx.get_approver(document_id, 0) == "alice"
            assert tx.get_approver(document_id, 1) == "bob"
            assert tx.get_approver(document_id, 2) is None
            for identity in ("alice", "bob"):
                record = tx.get_record(document_id, identity)
                assert record.status == DocumentStatus.PENDING
                assert record.acted_at is None

    def test_submit_emits_event(self, engine, events):
        document_id = submit(engine, ["alice"])

        assert events.events == [DocumentSubmitted(document_id=document_id, submitter="sam", timestamp=START)]

    def test_ids_strictly_increasing(self, engine):
        ids = [submit(engine, []), submit(engine, ["alice"]), submit(engine, []), submit(engine, ["bob", "bob"])]

        assert ids == [1, 2, 3, 4]

    def test_explicit_now(self, engine):
        at = START.replace(year=2030)
        document_id = submit(engine, ["alice"], now=at)

        assert engine.get(document_id).submitted_at == at

    @pytest.mark.parametrize("approvers", [[""], ["alice", ""], [None]])
    def test_empty_approver_identity_rejected(self, engine, events, approvers):
        with pytest.raises(ValueError):
            submit(engine, approvers)

        assert events.events == []
        # No id was consumed by the failed submission
        assert submit(engine, ["alice"]) == 1

    def test_non_string_field_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.submit("ref", 42, "policy", ["alice"], submitter="sam")


class TestGet:
    """Test document lookup."""

    def test_unknown_id(self, engine):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            engine.get(1)
        assert exc_info.value.document_id == 1

    def test_id_zero_is_never_issued(self, engine):
        submit(engine, ["alice"])
        with pytest.raises(DocumentNotFoundError):
            engine.get(0)


class TestApprove:
    """Test sequential approvals."""

    def test_two_approvers_scenario(self, engine, events):
        document_id = submit(engine, ["alice", "bob"])

        document = engine.approve(document_id, "alice")
        assert document.status == DocumentStatus.PENDING
        assert document.current_approver_index == 1

        document = engine.approve(document_id, "bob")
        assert document.status == DocumentStatus.APPROVED
        assert document.current_approver_index == 2

        with pytest.raises(UnauthorizedApproverError):
            engine.approve(document_id, "alice")

        assert engine.get(document_id) == document
        assert [type(e) for e in events.events] == [DocumentSubmitted, DocumentApproved, DocumentApproved]

    def test_out_of_turn_scenario(self, engine):
        document_id = submit(engine, ["alice", "bob"])

        with pytest.raises(UnauthorizedApproverError):
            engine.approve(document_id, "bob")

        engine.approve(document_id, "alice")

        with pytest.raises(UnauthorizedApproverError):
            engine.approve(document_id, "alice")

        assert engine.get(document_id).current_approver_index == 1

    def test_records_timestamp(self, engine, store, clock):
        document_id = submit(engine, ["alice", "bob"])
        acted_at = clock.current

        engine.approve(document_id, "alice")

        record = record_of(store, document_id, "alice")
        assert record.status == DocumentStatus.APPROVED
        assert record.acted_at == acted_at
        assert record_of(store, document_id, "bob").status == DocumentStatus.PENDING

    def test_event_for_every_approval(self, engine, events):
        document_id = submit(engine, ["alice", "bob"])
        events.clear()

        engine.approve(document_id, "alice", now=START)
        engine.approve(document_id, "bob", now=START)

        assert events.events == [
            DocumentApproved(document_id=document_id, approver="alice", timestamp=START),
            DocumentApproved(document_id=document_id, approver="bob", timestamp=START),
        ]

    @pytest.mark.parametrize("count", [1, 2, 5])
    def test_n_approvals_complete_document(self, engine, count):
        approvers = [f"approver-{i}" for i in range(count)]
        document_id = submit(engine, approvers)

        for i, approver in enumerate(approvers):
            assert engine.get(document_id).status == DocumentStatus.PENDING
            document = engine.approve(document_id, approver)

        assert document.status == DocumentStatus.APPROVED
        assert document.current_approver_index == count

    def test_every_out_of_order_permutation_fails(self, engine, store):
        approvers = ["alice", "bob", "carol"]

        for order in itertools.permutations(approvers):
            if list(order) == approvers:
                continue
            document_id = submit(engine, approvers)
            for expected, caller in zip(approvers, order):
                if caller != expected:
                    before = snapshot(store, document_id, approvers)
                    with pytest.raises(UnauthorizedApproverError):
                        engine.approve(document_id, caller)
                    assert snapshot(store, document_id, approvers) == before
                    break
                engine.approve(document_id, caller)

    def test_stranger_cannot_approve(self, engine, events):
        document_id = submit(engine, ["alice"])
        events.clear()

        with pytest.raises(UnauthorizedApproverError) as exc_info:
            engine.approve(document_id, "mallory")

        assert exc_info.value.expected == "alice"
        assert events.events == []

    def test_unknown_document(self, engine):
        with pytest.raises(DocumentNotFoundError):
            engine.approve(99, "alice")

    def test_duplicate_approver_acts_at_each_position(self, engine, store):
        document_id = submit(engine, ["alice", "bob", "alice"])

        first = engine.approve(document_id, "alice", now=START)
        assert first.current_approver_index == 1
        with pytest.raises(UnauthorizedApproverError):
            engine.approve(document_id, "alice")

        engine.approve(document_id, "bob")
        later = START.replace(hour=18)
        document = engine.approve(document_id, "alice", now=later)

        assert document.status == DocumentStatus.APPROVED
        # One shared record, overwritten by the later action
        assert record_of(store, document_id, "alice").acted_at == later


class TestReject:
    """Test rejection."""

    def test_single_approver_rejects(self, engine, events):
        document_id = submit(engine, ["alice"])

        document = engine.reject(document_id, "alice", now=START)
        assert document.status == DocumentStatus.REJECTED

        with pytest.raises(UnauthorizedApproverError):
            engine.approve(document_id, "alice")

        assert events.events[-1] == DocumentRejected(document_id=document_id, approver="alice", timestamp=START)

    def test_rejection_halts_later_approvers(self, engine, store):
        approvers = ["alice", "bob", "carol"]
        document_id = submit(engine, approvers)
        engine.approve(document_id, "alice")

        document = engine.reject(document_id, "bob")
        assert document.status == DocumentStatus.REJECTED
        assert document.current_approver_index == 1
        assert record_of(store, document_id, "bob").status == DocumentStatus.REJECTED

        before = snapshot(store, document_id, approvers)
        for caller in approvers:
            with pytest.raises(UnauthorizedApproverError):
                engine.approve(document_id, caller)
            with pytest.raises(UnauthorizedApproverError):
                engine.reject(document_id, caller)
        assert snapshot(store, document_id, approvers) == before

    def test_out_of_turn_reject_fails(self, engine):
        document_id = submit(engine, ["alice", "bob"])

        with pytest.raises(UnauthorizedApproverError):
            engine.reject(document_id, "bob")

        assert engine.get(document_id).status == DocumentStatus.PENDING

    def test_unknown_document(self, engine):
        with pytest.raises(DocumentNotFoundError):
            engine.reject(7, "alice")

    def test_approved_document_cannot_be_rejected(self, engine):
        document_id = submit(engine, ["alice"])
        engine.approve(document_id, "alice")

        with pytest.raises(UnauthorizedApproverError):
            engine.reject(document_id, "alice")

        assert engine.get(document_id).status == DocumentStatus.APPROVED


class TestZeroApprovers:
    """A document submitted without approvers stays pending."""

    def test_stays_pending(self, engine):
        document_id = submit(engine, [])

        for caller in ("sam", "alice", ""):
            with pytest.raises(UnauthorizedApproverError):
                engine.approve(document_id, caller)
            with pytest.raises(UnauthorizedApproverError):
                engine.reject(document_id, caller)

        document = engine.get(document_id)
        assert document.status == DocumentStatus.PENDING
        assert document.current_approver_index == 0


class FailingSink(EventSink):
    def emit(self, event):
        raise RuntimeError("bus down")


class TestEventSinkFailures:
    """Sink errors never undo or fail an operation."""

    def test_failing_sink_is_logged(self, store, clock, caplog):
        engine = ApprovalWorkflowEngine(store, events=FailingSink(), clock=clock)

        with caplog.at_level(logging.ERROR, logger="approvalflow.core.workflow.engine"):
            document_id = submit(engine, ["alice"])
            document = engine.approve(document_id, "alice")

        assert document.status == DocumentStatus.APPROVED
        assert "Event sink failed" in caplog.text


class TestLogging:
    def test_refusal_logged(self, engine, caplog):
        document_id = submit(engine, ["alice"])

        with caplog.at_level(logging.WARNING, logger="approvalflow.core.workflow.engine"):
            with pytest.raises(UnauthorizedApproverError):
                engine.approve(document_id, "bob")

        assert "Refused approve" in caplog.text

    def test_duplicate_approvers_warn(self, engine, caplog):
        with caplog.at_level(logging.WARNING, logger="approvalflow.core.workflow.engine"):
            submit(engine, ["alice", "alice"])

        assert "more than once" in caplog.text
