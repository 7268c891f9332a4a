"""Catalog exceptions."""


class CatalogError(Exception):
    """Base class for catalog errors."""

    pass


class InvalidCrawlRecordError(CatalogError):
    """Raised when a crawler hands over a record that cannot be resolved."""

    pass
