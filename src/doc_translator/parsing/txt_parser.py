"""Plain-text parsing: form feeds split pages, blank lines split paragraphs."""

import re

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from ..logger import logger
from .containers import pages_to_results
from .models import DocumentElement, ElementType, ParseMetadata, ParseResult, ParserOptions
from .structure import assemble_document

TXT_MIME_TYPE = "text/plain"

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def text_to_pages(text: str) -> list[list[DocumentElement]]:
    """Split plain text into pages of paragraph elements."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    pages = [
        [
            DocumentElement(type=ElementType.PARAGRAPH, content=block.strip())
            for block in _PARAGRAPH_SPLIT.split(page)
            if block.strip()
        ]
        for page in text.split("\f")
    ]
    # A trailing form feed does not open a page
    while pages and not pages[-1]:
        pages.pop()
    return pages


def parse_txt(
    data: bytes,
    options: ParserOptions | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> ParseResult:
    """Parse UTF-8 text; undecodable bytes are replaced rather than rejected.

    Args:
        data: Raw text bytes.
        options: Parser options (unused by this format).
        config: Layout thresholds (unused by this format).

    Returns:
        ParseResult with one paragraph element per blank-line separated block.
    """
    text = data.decode("utf-8", errors="replace")
    results = pages_to_results(text_to_pages(text))
    structure = assemble_document(results)
    characters_per_page = [len(r.text) for r in results]

    logger.info("text parsed successfully", total_pages=structure.metadata.page_count)
    return ParseResult(
        content=structure.text,
        metadata=ParseMetadata(
            mime_type=TXT_MIME_TYPE,
            file_size=len(data),
            page_count=structure.metadata.page_count,
            total_characters=sum(characters_per_page),
            characters_per_page=characters_per_page,
            structure=structure,
        ),
    )
