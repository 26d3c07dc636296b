"""Stemcell Manager - lifecycle tracking for cloud stemcells.

This package reconciles a local record of uploaded stemcells against the
resources a cloud provider actually holds: idempotent upload, discovery of
unused stemcells, and their safe removal.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
