"""Exceptions raised by the parsers, the OCR service and the translator."""


class DocumentParseError(Exception):
    """Raised when a file cannot be turned into a document structure."""

    def __init__(self, message: str, mime_type: str | None = None):
        super().__init__(message)
        self.mime_type = mime_type


class PageExtractionError(DocumentParseError):
    """Raised when the PDF engine fails while extracting one page."""

    def __init__(self, page_index: int, cause: Exception):
        super().__init__(
            f"Failed to extract page {page_index}: {cause}",
            mime_type="application/pdf",
        )
        self.page_index = page_index
        self.cause = cause


class UnsupportedFileTypeError(ValueError):
    """Raised when no parser is registered for a MIME type."""

    def __init__(self, mime_type: str):
        super().__init__(f"Unsupported file type: {mime_type}")
        self.mime_type = mime_type


class OCRError(RuntimeError):
    """Raised when text recognition on an image fails."""


class TranslationError(RuntimeError):
    """Raised when a translation request fails after retries."""
