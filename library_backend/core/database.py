import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from library_backend.core.errors import ConflictError, StorageError

logger = logging.getLogger("library.storage")

Base = declarative_base()

T = TypeVar("T")


def _enable_sqlite_locking(engine: Engine) -> None:
    """SQLite has no row locks, so take the write lock when a transaction starts.

    pysqlite's own BEGIN handling is switched off so that every transaction is
    opened with BEGIN IMMEDIATE and concurrent writers queue on the busy timeout.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class StorageGateway:
    """Owns the connection pool and hands out scoped transactions.

    Create one per process, call :meth:`init` at startup and :meth:`dispose`
    at shutdown.
    """

    def __init__(self, url: str, pool_size: int = 10, pool_timeout: float = 30.0):
        self.url = url
        self.pool_size = pool_size
        self.pool_timeout = pool_timeout
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def _create_engine(self) -> Engine:
        url = make_url(self.url)
        options = {"pool_pre_ping": True}
        if url.get_backend_name() == "sqlite":
            options["connect_args"] = {
                "check_same_thread": False,
                "timeout": self.pool_timeout,
            }
            if url.database in (None, "", ":memory:"):
                # a single shared connection keeps the in-memory database alive
                options["poolclass"] = StaticPool
                options.pop("pool_pre_ping")
        if "poolclass" not in options:
            options.update(
                pool_size=self.pool_size,
                max_overflow=0,
                pool_timeout=self.pool_timeout,
            )
        engine = create_engine(url, **options)
        if url.get_backend_name() == "sqlite":
            _enable_sqlite_locking(engine)
        return engine

    def init(self) -> None:
        if self.engine is not None:
            return
        # register the mapped tables before create_all
        from library_backend.models import models  # noqa: F401

        try:
            engine = self._create_engine()
            logger.info("Creating database tables (if not present)...")
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as exc:
            logger.exception("Storage initialisation failed")
            raise StorageError() from exc
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        logger.info(f"Storage ready (pool_size={self.pool_size})")

    def is_ready(self) -> bool:
        if self.engine is None:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Readiness check failed", exc_info=True)
            return False
        return True

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Storage pool closed")
        self.engine = None
        self._session_factory = None

    def _new_session(self) -> Session:
        if self._session_factory is None:
            raise StorageError("Storage gateway is not initialised")
        return self._session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose work commits on exit and rolls back on any error."""
        session = self._new_session()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.info(f"Integrity violation: {exc.orig}")
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Transaction failed")
            raise StorageError() from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def run_in_transaction(self, fn: Callable[[Session], T]) -> T:
        with self.transaction() as session:
            return fn(session)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only session; nothing is committed."""
        session = self._new_session()
        try:
            yield session
        except SQLAlchemyError as exc:
            logger.exception("Query failed")
            raise StorageError() from exc
        finally:
            session.close()
