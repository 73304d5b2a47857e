from approvalflow.api.schemas.documents import DocumentResponse, SubmitDocumentRequest

__all__ = ["DocumentResponse", "SubmitDocumentRequest"]
