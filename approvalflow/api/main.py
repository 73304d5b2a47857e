from typing import Optional

from fastapi import FastAPI

from approvalflow import __version__
from approvalflow.core.config import Settings, get_settings
from approvalflow.core.logger import configure_logging
from approvalflow.core.workflow import (
    ApprovalWorkflowEngine,
    CompositeEventSink,
    InMemoryWorkflowStore,
    LoggingEventSink,
    WorkflowStore,
)
from approvalflow.api.routers import documents
from approvalflow.services.notifications import WebhookEventSink


def build_store(settings: Settings) -> WorkflowStore:
    if settings.store_backend == "memory":
        return InMemoryWorkflowStore()

    from approvalflow.db.session import create_db_engine, create_session_factory, init_db
    from approvalflow.db.store import SqlWorkflowStore

    db_engine = create_db_engine(settings.database_url, echo=settings.debug)
    init_db(db_engine)
    return SqlWorkflowStore(create_session_factory(db_engine))


def build_engine(settings: Settings) -> ApprovalWorkflowEngine:
    """Assemble the workflow engine described by ``settings``."""
    sinks = [LoggingEventSink()]
    webhook = WebhookEventSink.from_settings(settings)
    if webhook is not None:
        sinks.append(webhook)
    return ApprovalWorkflowEngine(build_store(settings), events=CompositeEventSink(sinks))


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[ApprovalWorkflowEngine] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Sequential multi-party document approval",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings
    app.state.engine = engine or build_engine(settings)

    app.include_router(documents.router, prefix="/api")

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "version": __version__}

    return app
