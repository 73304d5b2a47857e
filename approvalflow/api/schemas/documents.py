from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from approvalflow.core.workflow.states import DocumentStatus


class SubmitDocumentRequest(BaseModel):
    content_reference: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., max_length=255)
    category: str = Field(..., max_length=100)
    approvers: List[str] = Field(default_factory=list)


class DocumentResponse(BaseModel):
    id: int
    submitter: str
    content_reference: str
    name: str
    category: str
    submitted_at: datetime
    current_approver_index: int
    status: DocumentStatus

    class Config:
        from_attributes = True
