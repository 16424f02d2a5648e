from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, suppress

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from studyplan.core.errors import StudyPlanError
from studyplan.db.models import Base


def _is_sqlite(database_url: str) -> bool:
    return database_url.lower().startswith("sqlite")


def _is_postgresql(database_url: str) -> bool:
    lowered = database_url.lower()
    return "postgresql" in lowered or "postgres" in lowered


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    """Enable foreign key constraints (and cascades) in SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _handle_session_commit(session: Session) -> None:
    """Handle session commit with logging."""
    with suppress(Exception):
        logger.debug(f"Before commit: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}")
    session.commit()
    logger.debug("Database session committed successfully")


class Database:
    """Explicit handle on the plan store's database.

    The host process owns the lifecycle: open() at start-up, close() at
    shutdown. Components receive the handle instead of reaching for a
    module-level engine.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.database_url = database_url
        self._echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open. Call Database.open() first.")
        return self._engine

    def open(self) -> Database:
        """Create the engine and session factory (idempotent)."""
        if self._engine is not None:
            return self

        logger.info(f"Initializing database engine: {self.database_url}")
        if _is_sqlite(self.database_url):
            logger.warning("Using SQLite database (local development only)")
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in self.database_url or self.database_url.rstrip("/") == "sqlite:":
                # One shared connection so every session sees the same in-memory database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {"pool_pre_ping": True, "pool_recycle": 3600}
            if _is_postgresql(self.database_url):
                kwargs["connect_args"] = {"connect_timeout": 10, "application_name": "studyplan"}

        self._engine = create_engine(self.database_url, echo=self._echo, **kwargs)
        if _is_sqlite(self.database_url):
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        self._session_factory = sessionmaker(
            bind=self._engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Database engine initialized")
        return self

    def close(self) -> None:
        """Dispose the engine and drop pooled connections."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed")

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        logger.info("Ensuring database tables exist")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables verified")

    def ping(self) -> None:
        """Run a trivial query; raises on connectivity problems."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a unit-of-work session.

        Commits when the block exits normally. Application errors
        (StudyPlanError) roll back quietly; anything else is logged as a
        database error, rolled back and re-raised.
        """
        if self._session_factory is None:
            raise RuntimeError("Database is not open. Call Database.open() first.")

        session = self._session_factory()
        try:
            yield session
            _handle_session_commit(session)
        except StudyPlanError as e:
            logger.debug(f"{type(e).__name__} in session, rolling back (application error, not DB error)")
            session.rollback()
            raise
        except Exception as e:
            logger.error(
                f"Database session error, rolling back: {e}. "
                f"Error type: {type(e).__name__}, session state: "
                f"dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}"
            )
            session.rollback()
            raise
        finally:
            session.close()
