"""Database session management and the ledger unit of work"""

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from roundup_ledger.config import settings
from roundup_ledger.domain.exceptions import ConcurrentModificationError, ConflictError

_DEPTH_KEY = "roundup_ledger.atomic_depth"
_CALLBACKS_KEY = "roundup_ledger.on_commit"

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine; pool tuning only applies to server databases"""
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    # Recycle after an hour to avoid stale connections
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle_seconds,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker:
    """Shared session factory for settings.database_url, created on first use"""
    global _engine, _session_factory
    if _session_factory is None:
        _engine = build_engine()
        _session_factory = build_session_factory(_engine)
    return _session_factory


@contextmanager
def session_scope(session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def in_atomic(db: Session) -> bool:
    return db.info.get(_DEPTH_KEY, 0) > 0


def on_commit(db: Session, callback: Callable[[], None]) -> None:
    """Run `callback` once the outermost atomic block commits; dropped on rollback"""
    db.info.setdefault(_CALLBACKS_KEY, []).append(callback)


def _drain_callbacks(db: Session) -> List[Callable[[], None]]:
    return db.info.pop(_CALLBACKS_KEY, [])


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Unit of work for one ledger operation.

    Re-entrant: nested blocks join the outer one and only the outermost block
    commits. Any exception rolls back everything written since the outermost
    block began, so an expense is never left without its savings credit.

    Raises:
        ConcurrentModificationError: A versioned row changed since it was read
        ConflictError: A unique constraint rejected the write
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    outermost = depth == 0
    db.info[_DEPTH_KEY] = depth + 1

    try:
        yield db
        if outermost:
            db.commit()
    except StaleDataError as e:
        if outermost:
            _rollback(db)
        raise ConcurrentModificationError(f"Concurrent update detected: {e}") from e
    except IntegrityError as e:
        if outermost:
            _rollback(db)
        raise ConflictError(f"Write conflicts with existing data: {e.orig}") from e
    except BaseException:
        if outermost:
            _rollback(db)
        raise
    finally:
        db.info[_DEPTH_KEY] = depth

    if outermost:
        for callback in _drain_callbacks(db):
            callback()


def _rollback(db: Session) -> None:
    _drain_callbacks(db)
    db.rollback()
