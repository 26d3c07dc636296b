"""Record store database plumbing.

Engine creation, the declarative base for stemcell records, and the
transactional session scope used by the CLI. The record store commits
each write; the session scope closes the session and rolls back on error.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from stemcell_manager.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for record store tables."""


def _prepare_sqlite(db_url: str) -> dict[str, Any]:
    url = make_url(db_url)
    database = url.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    return {"check_same_thread": False}


def get_engine(db_url: str | None = None) -> Engine:
    """Create an engine for the record store.

    File-backed SQLite databases get their parent directory created.

    Args:
        db_url: Database URL. Defaults to the configured ``db_url``.
    """
    if db_url is None:
        db_url = get_settings().db_url

    connect_args: dict[str, Any] = {}
    if db_url.startswith("sqlite"):
        connect_args = _prepare_sqlite(db_url)
    return create_engine(db_url, connect_args=connect_args)


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Return a session factory bound to engine (or a configured one)."""
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


def create_all_tables(engine: Engine) -> None:
    """Create the record store tables if they do not exist."""
    from stemcell_manager.records import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def init_record_store(db_url: str | None = None) -> sessionmaker[Session]:
    """Open the record store, creating its tables, and return a session factory."""
    engine = get_engine(db_url)
    create_all_tables(engine)
    return get_session_factory(engine)


@contextmanager
def get_session(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """Run a block in one transaction.

    Commits when the block exits normally and rolls back when it raises.

    Args:
        session_factory: Factory to open the session from. Defaults to one
            built from settings.

    Yields:
        An open Session.
    """
    if session_factory is None:
        session_factory = get_session_factory()

    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "create_all_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_record_store",
]
