"""Stemcell lifecycle manager.

This module provides the high-level stemcell API:
- find_current(): the stemcell currently in use
- upload(): upload a stemcell unless it is already recorded
- find_unused(): every recorded stemcell other than the current one
- delete_unused(): delete unused stemcells from the cloud and the record store

The record store and cloud are injected; the manager performs no retries
and no locking of its own.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stemcell_manager.cloud.base import CloudError
from stemcell_manager.records.repo import RecordStoreError
from stemcell_manager.stemcell.cloud_stemcell import CloudStemcell
from stemcell_manager.stemcell.errors import (
    PropertyExtractionError,
    RecordLookupError,
    RecordPersistenceError,
    StemcellCreationError,
    StemcellDeletionError,
)
from stemcell_manager.types import Skip

if TYPE_CHECKING:
    from stemcell_manager.cloud.base import Cloud
    from stemcell_manager.eventlog.stage import EventLogger, Stage
    from stemcell_manager.records.models import StemcellRecord
    from stemcell_manager.records.repo import StemcellRepo
    from stemcell_manager.stemcell.extracted import ExtractedStemcell

logger = logging.getLogger(__name__)

UPLOAD_STAGE_NAME = "uploading stemcell"
UPLOAD_STEP_NAME = "Uploading"


class StemcellManager:
    """Reconciles stemcell records with the stemcells held by a cloud."""

    def __init__(
        self,
        repo: StemcellRepo,
        cloud: Cloud,
        event_logger: EventLogger,
    ) -> None:
        self.repo = repo
        self.cloud = cloud
        self.event_logger = event_logger

    def _cloud_stemcell(self, record: StemcellRecord) -> CloudStemcell:
        try:
            return CloudStemcell(record, self.repo, self.cloud)
        except ValueError as e:
            raise RecordLookupError(f"Invalid stemcell record: {e}") from e

    def find_current(self) -> CloudStemcell | None:
        """Return the current stemcell, or None if no stemcell is current.

        Raises:
            RecordLookupError: If the record store cannot be read.
        """
        try:
            record = self.repo.find_current()
        except RecordStoreError as e:
            raise RecordLookupError(f"Reading stemcell record: {e}") from e

        if record is None:
            return None
        return self._cloud_stemcell(record)

    def upload(self, extracted_stemcell: ExtractedStemcell) -> CloudStemcell:
        """Upload a stemcell to the cloud unless it is already recorded.

        This is idempotent per (name, version):
        1. Looks up an existing record; if found, the step is skipped
        2. Derives cloud properties from the manifest
        3. Creates the stemcell in the cloud
        4. Saves a record of the created stemcell

        Args:
            extracted_stemcell: Stemcell to upload.

        Returns:
            CloudStemcell for the new or existing record.

        Raises:
            RecordLookupError: If the existing-record lookup fails.
            PropertyExtractionError: If cloud properties are invalid.
            StemcellCreationError: If the cloud create fails.
            RecordPersistenceError: If saving the record fails. The created
                stemcell is left in the cloud without a record.
        """
        stage = self.event_logger.new_stage(UPLOAD_STAGE_NAME)
        stage.start()

        result: list[CloudStemcell] = []

        def upload_step() -> Skip | None:
            manifest = extracted_stemcell.manifest
            try:
                existing = self.repo.find(manifest.name, manifest.version)
            except RecordStoreError as e:
                raise RecordLookupError(
                    f"Finding existing stemcell record in repo: {e}"
                ) from e

            if existing is not None:
                logger.info(
                    "Stemcell %s already uploaded (cid=%s)",
                    manifest.identity,
                    existing.cid,
                )
                result.append(self._cloud_stemcell(existing))
                return Skip("Stemcell already uploaded")

            try:
                cloud_properties = manifest.cloud_properties()
            except ValueError as e:
                raise PropertyExtractionError(
                    f"Getting cloud properties from stemcell manifest: {e}"
                ) from e

            try:
                cid = self.cloud.create_stemcell(cloud_properties, manifest.image_path)
            except CloudError as e:
                raise StemcellCreationError(
                    f"Creating stemcell ({manifest.name} {manifest.version}): {e}"
                ) from e

            try:
                record = self.repo.save(manifest.name, manifest.version, cid)
            except RecordStoreError as e:
                # TODO: delete the created stemcell from the cloud when saving fails
                logger.warning(
                    "Stemcell %s was created in the cloud (cid=%s) but not recorded",
                    manifest.identity,
                    cid,
                )
                raise RecordPersistenceError(
                    f"Saving stemcell record in repo "
                    f"(cid={cid}, stemcell={extracted_stemcell}): {e}",
                    cid=cid,
                ) from e

            logger.info("Uploaded stemcell %s (cid=%s)", manifest.identity, cid)
            result.append(self._cloud_stemcell(record))
            return None

        stage.perform_step(UPLOAD_STEP_NAME, upload_step)
        stage.finish()
        return result[0]

    def find_unused(self) -> list[CloudStemcell]:
        """Return every recorded stemcell that is not the current one.

        If no stemcell is current, all recorded stemcells are unused. Order
        follows the record store's enumeration order.

        Raises:
            RecordLookupError: If the record store cannot be read.
        """
        try:
            records = self.repo.all()
        except RecordStoreError as e:
            raise RecordLookupError(f"Getting all stemcell records: {e}") from e

        try:
            current = self.repo.find_current()
        except RecordStoreError as e:
            raise RecordLookupError(f"Finding current stemcell record: {e}") from e

        return [
            self._cloud_stemcell(record)
            for record in records
            if current is None or record.id != current.id
        ]

    def delete_unused(self, stage: Stage) -> None:
        """Delete all unused stemcells, one reported step per stemcell.

        Stops at the first failure. Stemcells deleted before the failure
        stay deleted.

        Args:
            stage: Stage to report the deletion steps under.

        Raises:
            RecordLookupError: If unused stemcells cannot be determined.
            StemcellDeletionError: Naming the cid that failed to delete.
        """
        try:
            stemcells = self.find_unused()
        except RecordLookupError as e:
            raise RecordLookupError(f"Finding unused stemcells: {e}") from e

        for stemcell in stemcells:
            step_name = f"Deleting unused stemcell '{stemcell.cid}'"

            def delete_step(stemcell: CloudStemcell = stemcell) -> None:
                try:
                    stemcell.delete()
                except StemcellDeletionError as e:
                    raise StemcellDeletionError(
                        f"Deleting unused stemcell '{stemcell.cid}': {e}",
                        cid=stemcell.cid,
                    ) from e

            stage.perform_step(step_name, delete_step)


__all__ = ["UPLOAD_STAGE_NAME", "UPLOAD_STEP_NAME", "StemcellManager"]
