"""OCR for image-bearing and scanned PDF pages."""

import io

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from ..config import get_ocr_language
from ..errors import OCRError
from ..logger import logger

# Threshold: pages with fewer chars are considered scanned
SCANNED_CHARS_THRESHOLD = 50

DEFAULT_DPI = 300


def page_needs_ocr(page: fitz.Page) -> bool:
    """Whether a page looks scanned: it has images but almost no text layer.

    Args:
        page: A PyMuPDF page.

    Returns:
        True if the page carries images and fewer than
        ``SCANNED_CHARS_THRESHOLD`` characters of extractable text.
    """
    if not page.get_images(full=True):
        return False
    return len(page.get_text().strip()) < SCANNED_CHARS_THRESHOLD


class OCRService:
    """Tesseract-backed text recognition owned by its caller.

    The engine is checked lazily on first use. ``close()`` releases it and a
    later call initialises it again, so one service can span many documents
    or be scoped to a single one with ``with OCRService() as ocr: ...``.
    """

    def __init__(self, language: str | None = None, dpi: int = DEFAULT_DPI):
        self.language = language or get_ocr_language()
        self.dpi = dpi
        self._engine_version: str | None = None

    @property
    def is_initialized(self) -> bool:
        return self._engine_version is not None

    def _ensure_engine(self) -> None:
        if self._engine_version is not None:
            return
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise OCRError(f"Tesseract engine unavailable: {e}") from e
        self._engine_version = str(version)
        logger.info(
            "ocr engine initialized",
            engine_version=self._engine_version,
            language=self.language,
        )

    def recognize_text(self, image_bytes: bytes, language: str | None = None) -> str:
        """Recognize the text in an encoded image.

        Args:
            image_bytes: PNG/JPEG (or any Pillow-readable) image data.
            language: Tesseract language code; defaults to the service language.

        Returns:
            The recognized text, stripped.

        Raises:
            OCRError: If the engine is missing, the image cannot be decoded,
                or recognition fails.
        """
        self._ensure_engine()
        lang = language or self.language
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                text = pytesseract.image_to_string(image, lang=lang)
        except (pytesseract.TesseractError, OSError) as e:
            raise OCRError(f"Text recognition failed: {e}") from e
        return text.strip()

    def recognize_page(self, page: fitz.Page, language: str | None = None) -> str:
        """Render a PDF page and recognize its text."""
        mat = fitz.Matrix(self.dpi / 72, self.dpi / 72)
        pix = page.get_pixmap(matrix=mat)
        return self.recognize_text(pix.tobytes("png"), language)

    def close(self) -> None:
        if self._engine_version is not None:
            logger.debug("ocr engine released", language=self.language)
        self._engine_version = None

    def __enter__(self) -> "OCRService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
