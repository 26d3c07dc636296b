"""Shared fixtures for stemcell_manager tests."""

from io import StringIO
from typing import Any

import pytest
from rich.console import Console
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from stemcell_manager.cloud.base import CloudError
from stemcell_manager.db import create_all_tables
from stemcell_manager.eventlog import EventLogger
from stemcell_manager.records.repo import SqlStemcellRepo
from stemcell_manager.stemcell.extracted import ExtractedStemcell, StemcellManifest
from stemcell_manager.stemcell.manager import StemcellManager


class FakeCloud:
    """In-memory cloud that records calls and fails on demand."""

    def __init__(self) -> None:
        self.created: list[tuple[dict[str, Any], str]] = []
        self.deleted: list[str] = []
        self.create_error: CloudError | None = None
        self.delete_errors: dict[str, CloudError] = {}
        self.next_cids: list[str] = []
        self._counter = 0

    def create_stemcell(self, cloud_properties: dict[str, Any], image_path: str) -> str:
        self.created.append((cloud_properties, image_path))
        if self.create_error is not None:
            raise self.create_error
        if self.next_cids:
            return self.next_cids.pop(0)
        self._counter += 1
        return f"cid-{self._counter}"

    def delete_stemcell(self, cid: str) -> None:
        self.deleted.append(cid)
        if cid in self.delete_errors:
            raise self.delete_errors[cid]


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    create_all_tables(engine)
    return engine


@pytest.fixture
def session_factory(engine):
    """Create a session factory for testing."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    """Create a session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repo(session):
    """Create a record store bound to the test session."""
    return SqlStemcellRepo(session)


@pytest.fixture
def cloud():
    """Create a fake cloud."""
    return FakeCloud()


@pytest.fixture
def output():
    """Buffer capturing stage reporter output."""
    return StringIO()


@pytest.fixture
def event_logger(output):
    """Create an event logger writing to a buffer."""
    return EventLogger(Console(file=output, width=200))


@pytest.fixture
def manager(repo, cloud, event_logger):
    """Create a stemcell manager with test collaborators."""
    return StemcellManager(repo, cloud, event_logger)


@pytest.fixture
def make_extracted():
    """Factory for extracted stemcells."""

    def _make(
        name: str = "ubuntu",
        version: str = "1.0",
        cloud_properties: dict[Any, Any] | None = None,
        image_path: str = "/tmp/img",
    ) -> ExtractedStemcell:
        manifest = StemcellManifest(
            name=name,
            version=version,
            image_path=image_path,
            raw_cloud_properties=cloud_properties or {},
        )
        return ExtractedStemcell(manifest=manifest)

    return _make


@pytest.fixture
def abort_writes(engine):
    """Install an SQLite trigger that aborts matching writes to stemcells.

    Call with the statement ("INSERT" or "DELETE") and an optional WHEN
    condition over NEW/OLD.
    """

    def _install(statement: str, condition: str = "1") -> None:
        name = f"abort_{statement.lower()}"
        with engine.begin() as conn:
            conn.execute(
                text(
                    f"CREATE TRIGGER {name} BEFORE {statement} ON stemcells "
                    f"WHEN {condition} "
                    f"BEGIN SELECT RAISE(ABORT, '{name}'); END"
                )
            )

    return _install
