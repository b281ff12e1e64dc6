# marketplace/data/database.py
from fastapi import Request
from sqlalchemy import DDL, create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from marketplace.data.text_search import TextSearchBackend, backend_for
from marketplace.utils import settings
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import db_retry

logger = get_logger(__name__)

Base = declarative_base()

event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS pg_trgm").execute_if(dialect="postgresql"),
)


def _begin_immediate_on_sqlite(engine) -> None:
    """
    Take transaction control away from pysqlite, which would only emit BEGIN
    before the first write. Every transaction starts with BEGIN IMMEDIATE and
    holds the write lock from its first read, so two checkouts of one cart
    run one after the other.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Owns the engine (connection pool), the session factory and the text
    search primitives matching the engine dialect. Created once per process
    and disposed on shutdown.
    """

    def __init__(self, url: str | None = None, **engine_kwargs):
        url = url or settings.DATABASE_URL
        if url.startswith("sqlite"):
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
            engine_kwargs.setdefault("pool_timeout", settings.DB_POOL_TIMEOUT)
            engine_kwargs.setdefault("pool_pre_ping", True)

        self.engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            _begin_immediate_on_sqlite(self.engine)
        self.text_search: TextSearchBackend = backend_for(self.engine, settings.SEARCH_TS_CONFIG)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        return self.SessionLocal()

    def wait_until_ready(self, attempts: int | None = None) -> None:
        @db_retry(attempts)
        def _ping():
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))

        _ping()
        logger.info(f"Database ready ({self.dialect})")

    def create_all(self) -> None:
        # models must be imported so they are registered on Base.metadata
        import marketplace.data.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Tables ensured: {sorted(Base.metadata.tables.keys())}")

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connection pool disposed")


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request):
    """FastAPI dependency: one session per request, always closed."""
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
