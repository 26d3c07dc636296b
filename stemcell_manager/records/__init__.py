"""Stemcell record store.

This module handles:
- Persisting which stemcells have been uploaded and their cloud IDs
- Tracking the single current stemcell
"""

from stemcell_manager.records.models import CurrentStemcell, StemcellRecord
from stemcell_manager.records.repo import (
    RecordStoreError,
    SqlStemcellRepo,
    StemcellRepo,
)

__all__ = [
    # Models
    "CurrentStemcell",
    "StemcellRecord",
    # Repo
    "RecordStoreError",
    "SqlStemcellRepo",
    "StemcellRepo",
]
