"""Stemcell record store.

This module defines the record store contract consumed by the stemcell
manager and its SQLAlchemy-backed implementation:
- find_current(): the record marked as current, if any
- find(): lookup by (name, version)
- save(): persist a new record for an uploaded stemcell
- all(): every record, in insertion order
- delete(): remove a record (clearing the current marker if needed)
- update_current() / clear_current(): move the current marker

Each write commits on its own, so one record change is durable as soon as
the call returns. db.get_session still owns the session lifetime.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stemcell_manager.records.models import (
    CURRENT_SLOT,
    CurrentStemcell,
    StemcellRecord,
)

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Raised when a record store read or write fails."""

    def __init__(self, message: str, code: str = "record_store_error") -> None:
        super().__init__(message)
        self.code = code


@runtime_checkable
class StemcellRepo(Protocol):
    """Record store operations used by the stemcell manager."""

    def find_current(self) -> StemcellRecord | None:
        """Return the current stemcell record, or None if none is current."""
        ...

    def find(self, name: str, version: str) -> StemcellRecord | None:
        """Return the record for (name, version), or None if absent."""
        ...

    def save(self, name: str, version: str, cid: str) -> StemcellRecord:
        """Persist a new record and return it."""
        ...

    def all(self) -> list[StemcellRecord]:
        """Return all records."""
        ...

    def delete(self, record: StemcellRecord) -> None:
        """Remove a record."""
        ...


class SqlStemcellRepo:
    """StemcellRepo backed by a SQLAlchemy session.

    Every write is committed as its own transaction. A failed write is
    rolled back, leaving the session usable, and raised as RecordStoreError.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _commit(self, action: str) -> None:
        try:
            self._session.flush()
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise RecordStoreError(f"{action}: {e}") from e

    def find_current(self) -> StemcellRecord | None:
        try:
            pointer = self._session.get(CurrentStemcell, CURRENT_SLOT)
            if pointer is None or pointer.stemcell_id is None:
                return None
            return self._session.get(StemcellRecord, pointer.stemcell_id)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Reading current stemcell: {e}") from e

    def find(self, name: str, version: str) -> StemcellRecord | None:
        stmt = select(StemcellRecord).where(
            StemcellRecord.name == name,
            StemcellRecord.version == version,
        )
        try:
            return self._session.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise RecordStoreError(
                f"Finding stemcell record {name}/{version}: {e}"
            ) from e

    def save(self, name: str, version: str, cid: str) -> StemcellRecord:
        """Persist a new stemcell record.

        Args:
            name: Stemcell name.
            version: Stemcell version.
            cid: Cloud ID of the uploaded stemcell.

        Returns:
            The saved StemcellRecord.

        Raises:
            RecordStoreError: If a record for (name, version) already exists
                or the write fails.
        """
        if self.find(name, version) is not None:
            raise RecordStoreError(
                f"Stemcell record already exists: {name}/{version}",
                code="duplicate_stemcell",
            )

        record = StemcellRecord(name=name, version=version, cid=cid)
        self._session.add(record)
        self._commit(f"Saving stemcell record {name}/{version}")

        logger.debug("Saved stemcell record %s/%s (cid=%s)", name, version, cid)
        return record

    def all(self) -> list[StemcellRecord]:
        stmt = select(StemcellRecord).order_by(StemcellRecord.id)
        try:
            return list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Listing stemcell records: {e}") from e

    def delete(self, record: StemcellRecord) -> None:
        """Remove a record, clearing the current marker if it points at it."""
        name, version, cid = record.name, record.version, record.cid
        action = f"Deleting stemcell record {name}/{version}"
        try:
            pointer = self._session.get(CurrentStemcell, CURRENT_SLOT)
            if pointer is not None and pointer.stemcell_id == record.id:
                pointer.stemcell_id = None
                self._session.flush()
            self._session.delete(record)
        except SQLAlchemyError as e:
            self._session.rollback()
            raise RecordStoreError(f"{action}: {e}") from e
        self._commit(action)

        logger.debug("Deleted stemcell record %s/%s (cid=%s)", name, version, cid)

    def update_current(self, record_id: int) -> None:
        """Mark the record with the given id as current.

        Raises:
            RecordStoreError: If no record has that id or the write fails.
        """
        try:
            found = self._session.get(StemcellRecord, record_id) is not None
            pointer = self._session.get(CurrentStemcell, CURRENT_SLOT)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Reading current stemcell: {e}") from e
        if not found:
            raise RecordStoreError(
                f"Stemcell record not found: {record_id}",
                code="stemcell_record_not_found",
            )

        if pointer is None:
            pointer = CurrentStemcell(slot=CURRENT_SLOT)
            self._session.add(pointer)
        pointer.stemcell_id = record_id
        self._commit("Updating current stemcell")

    def clear_current(self) -> None:
        """Unset the current marker."""
        try:
            pointer = self._session.get(CurrentStemcell, CURRENT_SLOT)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Reading current stemcell: {e}") from e
        if pointer is not None:
            pointer.stemcell_id = None
            self._commit("Clearing current stemcell")


__all__ = ["RecordStoreError", "SqlStemcellRepo", "StemcellRepo"]
