"""Parser selection by MIME type."""

from collections.abc import Callable

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from ..errors import UnsupportedFileTypeError
from ..logger import logger
from .docx_parser import DOCX_MIME_TYPE, parse_docx
from .models import ParseResult, ParserOptions
from .ocr import OCRService
from .pdf_parser import PDF_MIME_TYPE, parse_pdf
from .txt_parser import TXT_MIME_TYPE, parse_txt

Parser = Callable[..., ParseResult]

PARSERS: dict[str, Parser] = {
    PDF_MIME_TYPE: parse_pdf,
    "pdf": parse_pdf,
    DOCX_MIME_TYPE: parse_docx,
    "docx": parse_docx,
    TXT_MIME_TYPE: parse_txt,
    "txt": parse_txt,
    "text": parse_txt,
}

# Parsers that accept a caller-owned OCR service
OCR_PARSERS = {parse_pdf}


def normalize_mime_type(mime_type: str) -> str:
    """Lower-case, drop parameters (``; charset=...``) and a leading dot."""
    return mime_type.split(";", 1)[0].strip().lower().lstrip(".")


def supported_mime_types() -> list[str]:
    return sorted(PARSERS)


def parse_file(
    data: bytes,
    mime_type: str,
    options: ParserOptions | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    ocr_service: OCRService | None = None,
) -> ParseResult:
    """Parse a file with the parser registered for its MIME type.

    Args:
        data: Raw file bytes.
        mime_type: MIME type or bare extension (``pdf``, ``.docx``, ...).
        options: Parser options.
        config: Layout thresholds.
        ocr_service: Caller-owned OCR service, used by formats that OCR.

    Returns:
        The parser's ParseResult.

    Raises:
        UnsupportedFileTypeError: If no parser handles the MIME type.
    """
    normalized = normalize_mime_type(mime_type)
    parser = PARSERS.get(normalized)
    if parser is None:
        raise UnsupportedFileTypeError(mime_type)

    logger.info("parsing file", mime_type=normalized, file_size=len(data))
    if parser in OCR_PARSERS:
        return parser(data, options, config, ocr_service=ocr_service)
    return parser(data, options, config)
