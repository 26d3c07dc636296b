"""Cloud driver interface.

The stemcell manager talks to a cloud provider only through this protocol,
so any backend (a CPI executable, an SDK client, a test fake) can be
injected.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class CloudError(Exception):
    """Raised when a cloud provider operation fails."""

    def __init__(
        self,
        message: str,
        code: str = "cloud_error",
        ok_to_retry: bool = False,
    ) -> None:
        """Initialize CloudError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            ok_to_retry: Whether the provider reported the call as retryable.
        """
        super().__init__(message)
        self.code = code
        self.ok_to_retry = ok_to_retry


@runtime_checkable
class Cloud(Protocol):
    """Stemcell operations offered by a cloud provider."""

    def create_stemcell(
        self, cloud_properties: dict[str, Any], image_path: str
    ) -> str:
        """Upload a stemcell image and return its cloud ID."""
        ...

    def delete_stemcell(self, cid: str) -> None:
        """Delete the stemcell identified by cid."""
        ...


__all__ = ["Cloud", "CloudError"]
