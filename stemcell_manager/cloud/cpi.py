"""Cloud driver backed by an external CPI executable.

A Cloud Provider Interface (CPI) executable receives one JSON request on
stdin and writes one JSON response on stdout:

    request:  {"method": ..., "arguments": [...], "context": {...}}
    response: {"result": ..., "error": null | {"type", "message", "ok_to_retry"},
               "log": "..."}
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from stemcell_manager.cloud.base import CloudError

logger = logging.getLogger(__name__)


class CpiCloud:
    """Cloud implementation that shells out to a CPI executable."""

    def __init__(
        self,
        cpi_path: Path | None,
        context: dict[str, Any] | None = None,
        timeout: int = 1800,
    ) -> None:
        """Initialize CpiCloud.

        Args:
            cpi_path: Path to the CPI executable; calls fail if None.
            context: Request context sent with every call (e.g. director_uuid).
            timeout: Timeout in seconds for a single call.
        """
        self.cpi_path = cpi_path
        self.context = context or {}
        self.timeout = timeout

    def create_stemcell(
        self, cloud_properties: dict[str, Any], image_path: str
    ) -> str:
        result = self._call("create_stemcell", [image_path, cloud_properties])
        if not isinstance(result, str) or not result:
            raise CloudError(
                f"CPI create_stemcell returned an invalid cloud ID: {result!r}",
                code="cpi_invalid_response",
            )
        return result

    def delete_stemcell(self, cid: str) -> None:
        self._call("delete_stemcell", [cid])

    def _call(self, method: str, arguments: list[Any]) -> Any:
        """Run one CPI method and return its result.

        Raises:
            CloudError: If the CPI cannot be run, times out, exits non-zero,
                returns malformed output, or reports an error.
        """
        if self.cpi_path is None:
            raise CloudError(
                f"Cannot call CPI {method}: no CPI executable configured",
                code="cpi_not_configured",
            )

        request = json.dumps(
            {"method": method, "arguments": arguments, "context": self.context}
        )
        logger.debug("CPI request: %s", request)

        try:
            proc = subprocess.run(
                [str(self.cpi_path)],
                input=request,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CloudError(
                f"CPI {method} timed out after {self.timeout} seconds",
                code="cpi_timeout",
            ) from e
        except OSError as e:
            raise CloudError(
                f"Failed to execute CPI {self.cpi_path}: {e}",
                code="cpi_execution_error",
            ) from e

        if proc.stderr:
            logger.debug("CPI stderr: %s", proc.stderr.strip())

        if proc.returncode != 0:
            raise CloudError(
                f"CPI {method} exited with code {proc.returncode}",
                code="cpi_exit_error",
            )

        try:
            response = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise CloudError(
                f"CPI {method} returned invalid JSON: {e}",
                code="cpi_invalid_response",
            ) from e
        if not isinstance(response, dict):
            raise CloudError(
                f"CPI {method} returned a non-object response",
                code="cpi_invalid_response",
            )

        if response.get("log"):
            logger.debug("CPI log: %s", response["log"])

        error = response.get("error")
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise CloudError(
                f"CPI {method} failed: {error.get('type', 'Unknown')}: "
                f"{error.get('message', '')}",
                code="cpi_error",
                ok_to_retry=bool(error.get("ok_to_retry", False)),
            )

        return response.get("result")


__all__ = ["CpiCloud"]
