"""Extracted stemcell input.

An extracted stemcell is a directory holding a `stemcell.MF` manifest and
the `image` file to upload. Unpacking stemcell archives is done elsewhere;
this module only reads a directory that is already extracted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stemcell_manager.stemcell.errors import InvalidStemcellError
from stemcell_manager.types import StemcellIdentity

MANIFEST_FILENAME = "stemcell.MF"
IMAGE_FILENAME = "image"


class StemcellManifestSchema(BaseModel):
    """Schema of a stemcell.MF file."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1, description="Stemcell name")
    version: str = Field(..., min_length=1, description="Stemcell version")
    sha1: str | None = Field(default=None, description="SHA-1 of the image")
    cloud_properties: dict[Any, Any] = Field(
        default_factory=dict,
        description="Provider-specific properties passed to create_stemcell",
    )


def _stringify_keys(value: Any, path: str) -> Any:
    """Recursively convert mapping keys to strings.

    Raises:
        ValueError: If a mapping key is not a string.
    """
    if isinstance(value, dict):
        converted: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValueError(
                    f"Cloud property key {key!r} at '{path or '.'}' is not a string"
                )
            child_path = f"{path}.{key}" if path else key
            converted[key] = _stringify_keys(item, child_path)
        return converted
    if isinstance(value, list):
        return [_stringify_keys(item, f"{path}[{i}]") for i, item in enumerate(value)]
    return value


@dataclass(frozen=True)
class StemcellManifest:
    """Manifest of an extracted stemcell.

    Attributes:
        name: Stemcell name.
        version: Stemcell version.
        image_path: Path to the image file to upload.
        raw_cloud_properties: Cloud properties as decoded from the manifest.
        sha1: Optional SHA-1 of the image.
    """

    name: str
    version: str
    image_path: str
    raw_cloud_properties: dict[Any, Any] = field(default_factory=dict)
    sha1: str | None = None

    @property
    def identity(self) -> StemcellIdentity:
        return StemcellIdentity(name=self.name, version=self.version)

    def cloud_properties(self) -> dict[str, Any]:
        """Return cloud properties with string keys.

        Raises:
            ValueError: If any key, at any depth, is not a string.
        """
        return _stringify_keys(self.raw_cloud_properties, "")


@dataclass(frozen=True)
class ExtractedStemcell:
    """A stemcell ready for upload."""

    manifest: StemcellManifest
    extracted_path: Path | None = None

    def __str__(self) -> str:
        return (
            f"ExtractedStemcell(name={self.manifest.name}, "
            f"version={self.manifest.version})"
        )


def load_extracted_stemcell(path: Path) -> ExtractedStemcell:
    """Load an already-extracted stemcell directory.

    Args:
        path: Directory containing stemcell.MF and image.

    Returns:
        ExtractedStemcell for the directory.

    Raises:
        InvalidStemcellError: If files are missing or the manifest is invalid.
    """
    manifest_path = path / MANIFEST_FILENAME
    image_path = path / IMAGE_FILENAME

    if not manifest_path.is_file():
        raise InvalidStemcellError(f"Stemcell manifest not found: {manifest_path}")
    if not image_path.is_file():
        raise InvalidStemcellError(f"Stemcell image not found: {image_path}")

    try:
        with manifest_path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise InvalidStemcellError(
            f"Reading stemcell manifest {manifest_path}: {e}"
        ) from e

    if not isinstance(data, dict):
        raise InvalidStemcellError(
            f"Stemcell manifest {manifest_path} must be a mapping"
        )

    try:
        schema = StemcellManifestSchema.model_validate(data)
    except ValidationError as e:
        raise InvalidStemcellError(
            f"Invalid stemcell manifest {manifest_path}: {e}"
        ) from e

    manifest = StemcellManifest(
        name=schema.name,
        version=schema.version,
        image_path=str(image_path),
        raw_cloud_properties=schema.cloud_properties,
        sha1=schema.sha1,
    )
    return ExtractedStemcell(manifest=manifest, extracted_path=path)


__all__ = [
    "ExtractedStemcell",
    "StemcellManifest",
    "StemcellManifestSchema",
    "load_extracted_stemcell",
]
