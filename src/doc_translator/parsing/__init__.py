from .containers import build_structure_from_html
from .dispatch import parse_file, supported_mime_types
from .docx_parser import parse_docx
from .models import (
    COLUMN_BREAK_MARKER,
    PAGE_BREAK_MARKER,
    DocumentElement,
    DocumentStructure,
    ElementType,
    PageResult,
    ParseResult,
    ParserOptions,
    RawPage,
    TextFragment,
)
from .ocr import OCRService
from .pdf_parser import parse_pdf
from .structure import parse_document, parse_page
from .txt_parser import parse_txt

__all__ = [
    "COLUMN_BREAK_MARKER",
    "PAGE_BREAK_MARKER",
    "DocumentElement",
    "DocumentStructure",
    "ElementType",
    "OCRService",
    "PageResult",
    "ParseResult",
    "ParserOptions",
    "RawPage",
    "TextFragment",
    "build_structure_from_html",
    "parse_document",
    "parse_docx",
    "parse_file",
    "parse_page",
    "parse_pdf",
    "parse_txt",
    "supported_mime_types",
]
