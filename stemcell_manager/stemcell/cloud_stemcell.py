"""Handle to a stemcell that has been uploaded to the cloud."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stemcell_manager.cloud.base import CloudError
from stemcell_manager.records.repo import RecordStoreError
from stemcell_manager.stemcell.errors import StemcellDeletionError
from stemcell_manager.types import StemcellIdentity

if TYPE_CHECKING:
    from stemcell_manager.cloud.base import Cloud
    from stemcell_manager.records.models import StemcellRecord
    from stemcell_manager.records.repo import StemcellRepo

logger = logging.getLogger(__name__)


class CloudStemcell:
    """An uploaded stemcell bound to its record, record store, and cloud.

    The repo and cloud are shared collaborators; a CloudStemcell only holds
    references to them.
    """

    def __init__(
        self,
        record: StemcellRecord,
        repo: StemcellRepo,
        cloud: Cloud,
    ) -> None:
        if not record.cid:
            raise ValueError(
                f"Stemcell record {record.name}/{record.version} has no cloud ID"
            )
        self._record = record
        self._repo = repo
        self._cloud = cloud
        # Copied so they stay readable after the record is expired or deleted
        self._cid = record.cid
        self._identity = record.identity
        self._record_id = record.id

    def __repr__(self) -> str:
        return (
            f"<CloudStemcell(name='{self.name}', version='{self.version}', "
            f"cid='{self.cid}')>"
        )

    @property
    def cid(self) -> str:
        """Cloud ID of the uploaded stemcell."""
        return self._cid

    @property
    def name(self) -> str:
        return self._identity.name

    @property
    def version(self) -> str:
        return self._identity.version

    @property
    def record_id(self) -> int:
        return self._record_id

    @property
    def identity(self) -> StemcellIdentity:
        return self._identity

    def delete(self) -> None:
        """Delete the stemcell from the cloud, then remove its record.

        If the cloud delete fails the record is kept so a retry finds the
        same stemcell again. If the record delete fails after the cloud
        delete succeeded, the record is left pointing at a stemcell that no
        longer exists.

        Raises:
            StemcellDeletionError: If either delete fails.
        """
        cid = self.cid
        logger.info("Deleting stemcell %s (cid=%s)", self.identity, cid)

        try:
            self._cloud.delete_stemcell(cid)
        except CloudError as e:
            raise StemcellDeletionError(
                f"Deleting stemcell '{cid}' from cloud: {e}", cid=cid
            ) from e

        try:
            self._repo.delete(self._record)
        except RecordStoreError as e:
            logger.warning(
                "Stemcell %s was deleted from the cloud but its record remains",
                cid,
            )
            raise StemcellDeletionError(
                f"Deleting stemcell record (cid={cid}): {e}", cid=cid
            ) from e


__all__ = ["CloudStemcell"]
