"""API routers."""

from approvalflow.api.routers import documents

__all__ = ["documents"]
