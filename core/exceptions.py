"""Custom exception classes for the song catalogue artwork service."""


class CatalogueServiceError(Exception):
    """Base exception for all catalogue service errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CatalogueLoadError(CatalogueServiceError):
    """Raised when the song catalogue cannot be fetched or parsed."""


class ArtworkLookupError(CatalogueServiceError):
    """Raised when the artwork lookup service request fails."""
