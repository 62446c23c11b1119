"""Database configuration, persistence strategies and the store handle.

``Database`` owns everything the store needs at runtime: the SQLAlchemy
engine, the session factory, the durability strategy, a single-writer lock
and the clock that stamps versions. One instance is built per application
and handed to services; tests build as many independent instances as they
like.

Two durability strategies are interchangeable:

- ``EngineStrategy`` talks to the engine directly (SQLite file or
  PostgreSQL). A committed transaction is durable as soon as the engine
  says so.
- ``SnapshotStrategy`` keeps the whole database in process memory and
  writes a complete image to disk after every mutating call. The image is
  written to a temporary file and renamed over the previous one, and all
  writers are serialized through the store's writer lock, so two writes can
  never race each other's flush.
"""

import logging
import os
import sqlite3
import tempfile
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .core.config import PersistenceMode, Settings
from .core.logging_config import mask_url
from .exceptions import StorageFailureError

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite defaults foreign_keys to OFF; CASCADE constraints are silently
    # ignored unless we enable them on every connection.
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class MonotonicClock:
    """UTC clock that never hands out the same instant twice.

    Version rows are ordered by ``created_at`` alone, so two writes landing
    in the same microsecond would otherwise tie.
    """

    _STEP = timedelta(microseconds=1)

    def __init__(self):
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + self._STEP
            self._last = current
            return current


class EngineStrategy:
    """Native engine client; durability is the engine's job."""

    name = "engine"
    # Pooled connections give every reader its own transaction.
    serialize_reads = False

    def __init__(self, settings: Settings):
        self.settings = settings

    def describe(self) -> str:
        return mask_url(self.settings.database_url)

    def create_engine(self) -> Engine:
        url = self.settings.database_url
        timeout = self.settings.operation_timeout_seconds

        if url.startswith("sqlite"):
            path = make_url(url).database
            if path and path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": timeout},
            )
            _enable_sqlite_foreign_keys(engine)
            return engine

        connect_args = {}
        if self.settings.is_postgresql():
            # Bound every statement so a blocked query cannot hang a request.
            connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"

        return create_engine(
            url,
            pool_size=self.settings.db_pool_size,
            max_overflow=self.settings.db_max_overflow,
            pool_timeout=self.settings.db_pool_timeout,
            pool_recycle=self.settings.db_pool_recycle,
            # Detects stale connections before use (prevents "server closed the connection" errors).
            pool_pre_ping=True,
            connect_args=connect_args,
        )

    def load(self, engine: Engine) -> None:
        """Nothing to load; the engine already holds the data."""

    def flush(self, engine: Engine) -> None:
        """Nothing to flush; commit is durable."""


class SnapshotStrategy:
    """In-memory SQLite engine persisted as a full image file."""

    name = "snapshot"
    # Every session shares one connection, so readers must wait for the writer.
    serialize_reads = True

    def __init__(self, settings: Settings):
        self.path = settings.snapshot_path

    def describe(self) -> str:
        return f"sqlite (in-memory, image at {self.path})"

    def create_engine(self) -> Engine:
        # A single shared connection: the in-memory database lives and dies with it.
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _enable_sqlite_foreign_keys(engine)
        return engine

    @staticmethod
    @contextmanager
    def _raw_connection(engine: Engine) -> Iterator[sqlite3.Connection]:
        with engine.connect() as conn:
            yield conn.connection.driver_connection

    def load(self, engine: Engine) -> None:
        """Copy the on-disk image into the in-memory database.

        Raises ``sqlite3.DatabaseError`` when the file is not a valid image.
        """
        if not os.path.exists(self.path):
            logger.info("No database image found, starting empty", extra={"snapshot_path": self.path})
            return

        source = sqlite3.connect(self.path)
        try:
            with self._raw_connection(engine) as target:
                source.backup(target)
        finally:
            source.close()
        logger.info("Loaded database image", extra={"snapshot_path": self.path})

    def flush(self, engine: Engine) -> None:
        """Write the in-memory database to disk, replacing the previous image atomically."""
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".giststore-", suffix=".tmp", dir=directory)
        os.close(fd)
        try:
            target = sqlite3.connect(tmp_path)
            try:
                with self._raw_connection(engine) as source:
                    source.backup(target)
            finally:
                target.close()
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


def build_strategy(settings: Settings):
    """Pick the durability strategy named by the settings."""
    if settings.persistence_mode == PersistenceMode.SNAPSHOT:
        return SnapshotStrategy(settings)
    return EngineStrategy(settings)


class Database:
    """Store handle: engine, sessions, writer lock, clock.

    Reads use ``session()``; every mutating call goes through
    ``transaction()``, which holds the writer lock from the first statement
    until the commit has been made durable.
    """

    def __init__(self, settings: Settings, strategy=None):
        self.settings = settings
        self.strategy = strategy or build_strategy(settings)
        self.engine = self.strategy.create_engine()
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        self.clock = MonotonicClock()
        self.timeout = settings.operation_timeout_seconds
        self._write_lock = threading.Lock()
        self._local = threading.local()

    def open(self) -> None:
        """Load persisted state and create missing tables.

        Raises:
            StorageFailureError: If the database or its image cannot be read.
        """
        from . import models  # noqa: F401  (registers tables on Base.metadata)

        logger.info(
            "Opening database",
            extra={"strategy": self.strategy.name, "target": self.strategy.describe()},
        )
        try:
            self.strategy.load(self.engine)
            Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, sqlite3.Error, OSError) as e:
            logger.critical("Database could not be opened: %s", e)
            raise StorageFailureError("Could not open database", e) from e

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only unit of work.

        A read issued from inside this thread's open ``transaction()`` joins
        that transaction's session instead of opening its own. When the
        strategy shares one connection between sessions, other readers wait
        on the writer lock so they never see or roll back a write in flight.
        """
        active = getattr(self._local, "session", None)
        if active is not None:
            yield active
            return

        guard = self._locked() if self.strategy.serialize_reads else nullcontext()
        with guard:
            db = self.SessionLocal()
            try:
                yield db
            except SQLAlchemyError as e:
                raise StorageFailureError("Database read failed", e) from e
            finally:
                db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Atomic, durable write.

        Commits when the block exits cleanly and rolls back on any error.
        Engine errors surface as ``StorageFailureError``; other exceptions
        raised by the block propagate unchanged after the rollback.
        """
        with self._locked():
            db = self.SessionLocal()
            self._local.session = db
            try:
                yield db
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StorageFailureError("Database write failed", e) from e
            except Exception:
                db.rollback()
                raise
            finally:
                self._local.session = None
                db.close()
            self._flush()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._write_lock.acquire(timeout=self.timeout):
            raise StorageFailureError(
                f"Timed out after {self.timeout}s waiting for the writer lock"
            )
        try:
            yield
        finally:
            self._write_lock.release()

    def _flush(self) -> None:
        try:
            self.strategy.flush(self.engine)
        except (SQLAlchemyError, sqlite3.Error, OSError) as e:
            logger.error("Durable flush failed, reverting to last image", exc_info=True)
            self._resync()
            raise StorageFailureError("Could not persist database image", e) from e

    def _resync(self) -> None:
        """Bring the in-memory state back to the last durable image."""
        try:
            Base.metadata.drop_all(self.engine)
            Base.metadata.create_all(self.engine)
            self.strategy.load(self.engine)
        except (SQLAlchemyError, sqlite3.Error, OSError) as e:
            raise StorageFailureError("Could not restore last durable image", e) from e


def get_database(request: Request) -> Database:
    """Dependency for FastAPI routes to get the application's store handle."""
    return request.app.state.database
