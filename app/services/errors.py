"""Domain errors shared by the catalog and ledger services."""

from __future__ import annotations


class CatalogError(Exception):
    """Base exception for catalog/ledger failures."""


class Unauthenticated(CatalogError):
    """Raised when a ledger mutation arrives without a caller identity."""


class InvalidArgument(CatalogError):
    """Raised before any write when an argument fails validation."""
