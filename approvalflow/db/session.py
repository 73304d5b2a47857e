"""Database engine and session factory."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from approvalflow.db.base import Base
from approvalflow.db.models import WorkflowCounter, DOCUMENT_COUNTER


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine.

    In-memory SQLite shares one connection across threads. File-backed SQLite
    opens every transaction with ``BEGIN IMMEDIATE``, taking the database write
    lock up front, since SQLite ignores ``SELECT ... FOR UPDATE``.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)

    engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        # pysqlite would otherwise defer BEGIN until the first write
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables and seed the document id counter at 0."""
    Base.metadata.create_all(bind=engine)
    session_factory = create_session_factory(engine)
    with session_factory.begin() as session:
        if session.get(WorkflowCounter, DOCUMENT_COUNTER) is None:
            session.add(WorkflowCounter(name=DOCUMENT_COUNTER, value=0))
