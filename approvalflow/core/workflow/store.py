"""Storage interface for the approval workflow.

Three tables keyed by composite keys:
- documents:        document_id → Document
- approver slots:   (document_id, position) → identity
- approver records: (document_id, identity) → ApproverRecord

Every mutating engine call runs inside one ``transaction(document_id)``.
Transactions on the same document are serialized; transactions on different
documents contend only when their ids share a lock stripe. Writes made inside
a transaction become visible only when the block exits without an exception.
Plain reads go through ``get_document`` and take no lock.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, Optional, Tuple

from .machine import Document, ApproverRecord

# Documents share a fixed pool of locks; two ids in the same stripe serialize
LOCK_STRIPES = 64


class StoreTransaction(ABC):
    """Reads and writes scoped to a single atomic unit of work."""

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        ...

    @abstractmethod
    def put_document(self, document: Document) -> None:
        ...

    @abstractmethod
    def get_approver(self, document_id: int, position: int) -> Optional[str]:
        """Return the identity at ``position``, or None when no slot is configured there."""

    @abstractmethod
    def put_approver(self, document_id: int, position: int, identity: str) -> None:
        ...

    @abstractmethod
    def get_record(self, document_id: int, identity: str) -> Optional[ApproverRecord]:
        ...

    @abstractmethod
    def put_record(self, record: ApproverRecord) -> None:
        ...


class WorkflowStore(ABC):
    """Persistent store backing the workflow engine."""

    @abstractmethod
    def next_document_id(self) -> int:
        """Atomically allocate the next document id. Ids start at 1 and are never reused."""

    @abstractmethod
    def transaction(self, document_id: int) -> ContextManager[StoreTransaction]:
        """Open a transaction serialized against every other one on ``document_id``."""

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        """Read the committed document without taking its lock."""


class _InMemoryTransaction(StoreTransaction):
    """Stages writes on top of the committed state of an InMemoryWorkflowStore."""

    def __init__(self, store: "InMemoryWorkflowStore"):
        self._store = store
        self._documents: Dict[int, Document] = {}
        self._slots: Dict[Tuple[int, int], str] = {}
        self._records: Dict[Tuple[int, str], ApproverRecord] = {}

    def get_document(self, document_id: int) -> Optional[Document]:
        if document_id in self._documents:
            return self._documents[document_id]
        return self._store._documents.get(document_id)

    def put_document(self, document: Document) -> None:
        self._documents[document.id] = document

    def get_approver(self, document_id: int, position: int) -> Optional[str]:
        key = (document_id, position)
        if key in self._slots:
            return self._slots[key]
        return self._store._slots.get(key)

    def put_approver(self, document_id: int, position: int, identity: str) -> None:
        self._slots[(document_id, position)] = identity

    def get_record(self, document_id: int, identity: str) -> Optional[ApproverRecord]:
        key = (document_id, identity)
        if key in self._records:
            return self._records[key]
        return self._store._records.get(key)

    def put_record(self, record: ApproverRecord) -> None:
        self._records[(record.document_id, record.identity)] = record

    def commit(self) -> None:
        with self._store._commit_lock:
            self._store._documents.update(self._documents)
            self._store._slots.update(self._slots)
            self._store._records.update(self._records)


class InMemoryWorkflowStore(WorkflowStore):
    """
    Process-local store guarded by a fixed pool of per-document locks.

    Suitable for tests and single-process deployments; nothing survives a restart.
    """

    def __init__(self):
        self._documents: Dict[int, Document] = {}
        self._slots: Dict[Tuple[int, int], str] = {}
        self._records: Dict[Tuple[int, str], ApproverRecord] = {}
        self._counter = 0
        self._counter_lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self._document_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def next_document_id(self) -> int:
        with self._counter_lock:
            self._counter += 1
            return self._counter

    @contextmanager
    def transaction(self, document_id: int) -> Iterator[StoreTransaction]:
        with self._lock_for(document_id):
            tx = _InMemoryTransaction(self)
            yield tx
            tx.commit()

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._commit_lock:
            return self._documents.get(document_id)

    def _lock_for(self, document_id: int) -> threading.Lock:
        return self._document_locks[document_id % LOCK_STRIPES]
