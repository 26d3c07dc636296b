"""Stemcell record ORM models.

This module defines the persisted stemcell records and the single-row
pointer naming the current stemcell.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stemcell_manager.db import Base
from stemcell_manager.types import StemcellIdentity

CURRENT_SLOT = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StemcellRecord(Base):
    """ORM model for a stemcell uploaded to the cloud.

    Attributes:
        id: Primary key, the record's opaque handle.
        name: Stemcell name (e.g., 'bosh-warden-boshlite-ubuntu-jammy').
        version: Stemcell version (e.g., '1.204').
        cid: Cloud ID returned by the cloud provider on creation.
        created_at: When the record was saved.
    """

    __tablename__ = "stemcells"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    version: Mapped[str] = mapped_column(String(100), nullable=False)
    cid: Mapped[str] = mapped_column(String(500), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("ix_stemcells_name_version", "name", "version", unique=True),
        CheckConstraint("cid != ''", name="ck_stemcells_cid_not_empty"),
    )

    def __repr__(self) -> str:
        """Return string representation of StemcellRecord."""
        return (
            f"<StemcellRecord(id={self.id}, name='{self.name}', "
            f"version='{self.version}', cid='{self.cid}')>"
        )

    @property
    def identity(self) -> StemcellIdentity:
        """Return the (name, version) identity of this record."""
        return StemcellIdentity(name=self.name, version=self.version)


class CurrentStemcell(Base):
    """Single-row pointer to the current stemcell record.

    The row always lives in slot 1; a null stemcell_id means no stemcell
    is current.
    """

    __tablename__ = "current_stemcell"

    slot: Mapped[int] = mapped_column(Integer, primary_key=True, default=CURRENT_SLOT)
    stemcell_id: Mapped[int | None] = mapped_column(
        ForeignKey("stemcells.id"), nullable=True
    )

    def __repr__(self) -> str:
        """Return string representation of CurrentStemcell."""
        return f"<CurrentStemcell(stemcell_id={self.stemcell_id})>"


__all__ = ["CURRENT_SLOT", "CurrentStemcell", "StemcellRecord"]
