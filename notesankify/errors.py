from __future__ import annotations


class NotesAnkifyError(Exception):
    """Base class for errors raised by notesankify."""


class AnkiConnectionError(NotesAnkifyError):
    """AnkiConnect is not reachable. Fatal to a run."""


class AnkiResponseError(NotesAnkifyError):
    """AnkiConnect answered, but with an error field or a malformed envelope."""


class SyncError(NotesAnkifyError):
    """A sync operation failed for good."""

    def __init__(self, message: str, *, attempts: int | None = None):
        super().__init__(message)
        self.attempts = attempts


class PageRetrievalError(NotesAnkifyError):
    """Bounds, text or raster could not be obtained for a page."""

    def __init__(self, page_index: int, what: str, cause: Exception | None = None):
        msg = f"page {page_index + 1}: failed to get {what}"
        if cause is not None:
            msg = f"{msg}: {cause}"
        super().__init__(msg)
        self.page_index = page_index
        self.what = what


class ProcessingCancelled(NotesAnkifyError):
    """Cancellation was requested while a PDF was being processed."""
