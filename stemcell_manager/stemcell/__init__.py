"""Stemcell lifecycle module.

This module handles:
- Loading already-extracted stemcells for upload
- Idempotent upload of stemcells to the cloud
- Finding the current and unused stemcells
- Deleting unused stemcells from the cloud and the record store
"""

from stemcell_manager.stemcell.cloud_stemcell import CloudStemcell
from stemcell_manager.stemcell.errors import (
    InvalidStemcellError,
    PropertyExtractionError,
    RecordLookupError,
    RecordPersistenceError,
    StemcellCreationError,
    StemcellDeletionError,
    StemcellError,
)
from stemcell_manager.stemcell.extracted import (
    ExtractedStemcell,
    StemcellManifest,
    load_extracted_stemcell,
)
from stemcell_manager.stemcell.manager import StemcellManager

__all__ = [
    # Entities
    "CloudStemcell",
    "ExtractedStemcell",
    "StemcellManifest",
    "load_extracted_stemcell",
    # Manager
    "StemcellManager",
    # Errors
    "InvalidStemcellError",
    "PropertyExtractionError",
    "RecordLookupError",
    "RecordPersistenceError",
    "StemcellCreationError",
    "StemcellDeletionError",
    "StemcellError",
]
