"""Error taxonomy shared by the importer stages."""

from __future__ import annotations


class CatalogIngestError(Exception):
    """Base class for every error raised by the MusicBrainz importer."""


class DumpDateError(CatalogIngestError):
    """Raised when the dated snapshot of the full export cannot be resolved."""


class TooManyRedirectsError(CatalogIngestError):
    def __init__(self, archive: str) -> None:
        super().__init__(f"Too many redirects for {archive}")
        self.archive = archive


class ArchiveExtractionError(CatalogIngestError):
    """Raised when an archive is missing, unreadable, or lacks a declared member."""

    def __init__(self, archive: str, reason: str | None = None) -> None:
        message = f"Failed to extract {archive}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.archive = archive


class DumpFormatError(CatalogIngestError):
    """Raised when a dump line does not match the declared column list."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"{table}: {message}")
        self.table = table


class UnsupportedDialectError(CatalogIngestError):
    def __init__(self, dialect: str) -> None:
        super().__init__(f"Database dialect {dialect!r} is not supported by the importer")
        self.dialect = dialect


class StagingNotLoadedError(CatalogIngestError):
    """Raised when an import starts without a loaded staging namespace."""
