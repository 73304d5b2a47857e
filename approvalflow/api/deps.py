from fastapi import HTTPException, Request, status

from approvalflow.core.workflow import ApprovalWorkflowEngine


def get_engine(request: Request) -> ApprovalWorkflowEngine:
    """Workflow engine attached to the application."""
    return request.app.state.engine


def get_caller_identity(request: Request) -> str:
    """Caller identity as asserted by the trusted proxy in front of the API."""
    header = request.app.state.settings.identity_header
    identity = request.headers.get(header, "").strip()
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing caller identity header {header}",
        )
    return identity
