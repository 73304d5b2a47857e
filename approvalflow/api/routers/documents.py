"""Document approval API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from approvalflow.api.deps import get_caller_identity, get_engine
from approvalflow.api.schemas import DocumentResponse, SubmitDocumentRequest
from approvalflow.core.workflow import (
    ApprovalWorkflowEngine,
    DocumentNotFoundError,
    UnauthorizedApproverError,
)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def submit_document(
    body: SubmitDocumentRequest,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
    caller: str = Depends(get_caller_identity),
):
    """Submit a document for sequential approval by ``approvers``."""
    try:
        document_id = engine.submit(
            body.content_reference,
            body.name,
            body.category,
            body.approvers,
            submitter=caller,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return DocumentResponse.model_validate(engine.get(document_id))


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: int,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
):
    """Get the current state of a document."""
    try:
        document = engine.get(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return DocumentResponse.model_validate(document)


@router.post("/{document_id}/approve", response_model=DocumentResponse)
def approve_document(
    document_id: int,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
    caller: str = Depends(get_caller_identity),
):
    """Approve a document; only the approver whose turn it is may call this."""
    try:
        document = engine.approve(document_id, caller)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except UnauthorizedApproverError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return DocumentResponse.model_validate(document)


@router.post("/{document_id}/reject", response_model=DocumentResponse)
def reject_document(
    document_id: int,
    engine: ApprovalWorkflowEngine = Depends(get_engine),
    caller: str = Depends(get_caller_identity),
):
    """Reject a document, halting its workflow."""
    try:
        document = engine.reject(document_id, caller)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except UnauthorizedApproverError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return DocumentResponse.model_validate(document)
