"""Error types for stemcell lifecycle operations.

Every error carries a stable code for structured handling. Wrapping errors
are raised `from` their cause and prefix the cause's message with the
operation that failed.
"""


class StemcellError(Exception):
    """Base error for stemcell lifecycle operations."""

    def __init__(self, message: str, code: str = "stemcell_error") -> None:
        super().__init__(message)
        self.code = code


class InvalidStemcellError(StemcellError):
    """Raised when an extracted stemcell directory cannot be loaded."""

    def __init__(self, message: str, code: str = "invalid_stemcell") -> None:
        super().__init__(message, code)


class RecordLookupError(StemcellError):
    """Raised when reading stemcell records fails."""

    def __init__(self, message: str, code: str = "record_lookup_failed") -> None:
        super().__init__(message, code)


class PropertyExtractionError(StemcellError):
    """Raised when cloud properties cannot be derived from a manifest."""

    def __init__(
        self, message: str, code: str = "cloud_properties_invalid"
    ) -> None:
        super().__init__(message, code)


class StemcellCreationError(StemcellError):
    """Raised when the cloud fails to create a stemcell.

    No record is written, so a later upload retries the creation.
    """

    def __init__(self, message: str, code: str = "stemcell_create_failed") -> None:
        super().__init__(message, code)


class RecordPersistenceError(StemcellError):
    """Raised when saving a record fails after the stemcell was created.

    The remote stemcell exists but is not referenced by any record.
    """

    def __init__(
        self, message: str, cid: str, code: str = "record_save_failed"
    ) -> None:
        super().__init__(message, code)
        self.cid = cid


class StemcellDeletionError(StemcellError):
    """Raised when deleting a stemcell or its record fails."""

    def __init__(
        self, message: str, cid: str, code: str = "stemcell_delete_failed"
    ) -> None:
        super().__init__(message, code)
        self.cid = cid


__all__ = [
    "InvalidStemcellError",
    "PropertyExtractionError",
    "RecordLookupError",
    "RecordPersistenceError",
    "StemcellCreationError",
    "StemcellDeletionError",
    "StemcellError",
]
