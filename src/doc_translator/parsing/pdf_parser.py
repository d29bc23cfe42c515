"""PDF parsing module using PyMuPDF for positioned text extraction."""

from dataclasses import dataclass, field

import fitz  # PyMuPDF

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig, get_parse_workers
from ..errors import DocumentParseError, OCRError, PageExtractionError
from ..logger import logger
from .models import (
    DocumentElement,
    ElementPosition,
    ElementType,
    ParseMetadata,
    ParseResult,
    ParserOptions,
    RawPage,
    TextFragment,
)
from .ocr import OCRService, page_needs_ocr
from .structure import assemble_document, layout_pages

PDF_MIME_TYPE = "application/pdf"

# Threshold for detecting garbage text (corrupted font encodings)
GARBAGE_CONTROL_CHAR_RATIO = 0.1  # >10% control chars = garbage


def _is_garbage_text(text: str) -> bool:
    """Detect if extracted text is binary garbage from corrupted font encodings.

    Args:
        text: The extracted text to check.

    Returns:
        True if the text appears to be garbage (high ratio of control characters).
    """
    if not text or len(text) < 20:
        return False
    # Count control characters (0x00-0x1F) excluding common whitespace
    control_chars = sum(1 for c in text if ord(c) < 32 and c not in "\n\t\r ")
    ratio = control_chars / len(text)
    return ratio > GARBAGE_CONTROL_CHAR_RATIO


def _word_fragment(chars: list[dict], font_size: float) -> TextFragment:
    x0 = min(c["bbox"][0] for c in chars)
    y0 = min(c["bbox"][1] for c in chars)
    x1 = max(c["bbox"][2] for c in chars)
    y1 = max(c["bbox"][3] for c in chars)
    # Baseline, so mixed font sizes on one line share a y
    baseline = chars[0]["origin"][1]
    return TextFragment(
        text="".join(c["c"] for c in chars),
        x=x0,
        y=baseline,
        font_size=font_size,
        width=x1 - x0,
        height=y1 - y0,
    )


def extract_fragments(page: fitz.Page) -> list[TextFragment]:
    """Extract word-level fragments with their font size from one page.

    Words are cut at whitespace inside each span of PyMuPDF's ``rawdict``
    output, so every fragment carries the size of the span it came from.
    PyMuPDF coordinates already grow downwards from the top of the page;
    ``y`` is the baseline of the word, the box only gives width and height.

    Args:
        page: A PyMuPDF page.

    Returns:
        Fragments in extraction order; blank words are dropped.
    """
    fragments: list[TextFragment] = []
    raw = page.get_text("rawdict")
    for block in raw.get("blocks", []):
        if block.get("type") != 0:  # Skip non-text blocks (images, etc.)
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                size = span.get("size", 0.0)
                word: list[dict] = []
                for char in span.get("chars", []):
                    # NUL from corrupted font encodings ends a word
                    if char["c"].isspace() or char["c"] == "\x00":
                        if word:
                            fragments.append(_word_fragment(word, size))
                        word = []
                        continue
                    word.append(char)
                if word:
                    fragments.append(_word_fragment(word, size))
    return fragments


@dataclass
class _ExtractedPage:
    raw: RawPage
    has_images: bool = False
    ocr_text: str = ""
    image_positions: list[ElementPosition] = field(default_factory=list)


def _image_positions(page: fitz.Page, images: list) -> list[ElementPosition]:
    positions = []
    for image in images:
        for rect in page.get_image_rects(image[0]):
            positions.append(
                ElementPosition(x=rect.x0, y=rect.y0, width=rect.width, height=rect.height)
            )
    return positions


def _extract_page(
    page: fitz.Page,
    page_index: int,
    options: ParserOptions,
    ocr_service: OCRService | None,
) -> _ExtractedPage:
    fragments = extract_fragments(page)
    images = page.get_images(full=True)
    extracted = _ExtractedPage(
        raw=RawPage(fragments=fragments, width=page.rect.width, height=page.rect.height),
        has_images=bool(images),
    )
    if options.extract_images and images:
        extracted.image_positions = _image_positions(page, images)

    garbage = _is_garbage_text(" ".join(f.text for f in fragments))
    if garbage:
        logger.info("garbage text detected", page_number=page_index + 1)

    if ocr_service is None or not (images or garbage):
        return extracted

    if page_needs_ocr(page):
        logger.info("scanned page detected", page_number=page_index + 1)
    try:
        extracted.ocr_text = ocr_service.recognize_page(page, options.language)
    except OCRError as e:
        logger.warn("ocr failed", page_number=page_index + 1, error=str(e))
        return extracted
    if garbage and extracted.ocr_text:
        # OCR text replaces the corrupted text layer
        extracted.raw = RawPage(width=page.rect.width, height=page.rect.height)
    return extracted


def _open_pdf(data: bytes) -> fitz.Document:
    if not data:
        raise DocumentParseError("Empty PDF data", mime_type=PDF_MIME_TYPE)
    try:
        return fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise DocumentParseError(f"Invalid PDF: {e}", mime_type=PDF_MIME_TYPE) from e


def _extract_pages(
    doc: fitz.Document, options: ParserOptions, ocr_service: OCRService | None
) -> list[_ExtractedPage]:
    pages = []
    for page_index in range(doc.page_count):
        try:
            page = doc[page_index]
            pages.append(_extract_page(page, page_index, options, ocr_service))
        except (RuntimeError, ValueError, KeyError) as e:
            logger.error(
                "page extraction failed",
                page_index=page_index,
                error=str(e),
                skipped=options.skip_failed_pages,
            )
            if not options.skip_failed_pages:
                raise PageExtractionError(page_index, e) from e
            pages.append(_ExtractedPage(raw=RawPage()))
    return pages


def parse_pdf(
    data: bytes,
    options: ParserOptions | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    ocr_service: OCRService | None = None,
) -> ParseResult:
    """Parse a PDF and reconstruct its layout page by page.

    Args:
        data: Raw PDF bytes.
        options: Parser options (OCR, image extraction, failure policy).
        config: Layout thresholds.
        ocr_service: OCR service to use when ``options.use_ocr`` is set. When
            omitted, a service is created for this call and closed after it.

    Returns:
        ParseResult whose content is the linearized text of every page joined
        with the page-break marker.

    Raises:
        DocumentParseError: If the bytes are not a readable PDF.
        PageExtractionError: If a page fails and failed pages are not skipped.
    """
    options = options or ParserOptions()
    doc = _open_pdf(data)
    owns_ocr = options.use_ocr and ocr_service is None
    if owns_ocr:
        ocr_service = OCRService(options.language)
    try:
        logger.info("parsing pdf", total_pages=doc.page_count, use_ocr=options.use_ocr)
        extracted = _extract_pages(doc, options, ocr_service if options.use_ocr else None)
        metadata = dict(doc.metadata or {})
    finally:
        doc.close()
        if owns_ocr:
            ocr_service.close()

    results = layout_pages([p.raw for p in extracted], config, get_parse_workers())
    image_text = []
    for result, page in zip(results, extracted):
        elements = result.page_structure.elements
        for position in page.image_positions:
            elements.append(
                DocumentElement(
                    type=ElementType.IMAGE, position=position, element_index=len(elements)
                )
            )
        if page.ocr_text:
            image_text.append(page.ocr_text)
            elements.append(
                DocumentElement(
                    type=ElementType.IMAGE,
                    content=page.ocr_text,
                    element_index=len(elements),
                )
            )
            result.text = "\n\n".join(t for t in (result.text, page.ocr_text) if t)

    structure = assemble_document(results, metadata)
    characters_per_page = [len(r.text) for r in results]

    logger.info(
        "pdf parsed successfully",
        total_pages=structure.metadata.page_count,
        total_elements=len(structure.elements),
        ocr_pages=len(image_text),
    )
    return ParseResult(
        content=structure.text,
        metadata=ParseMetadata(
            mime_type=PDF_MIME_TYPE,
            file_size=len(data),
            page_count=structure.metadata.page_count,
            has_images=any(p.has_images for p in extracted),
            image_text=image_text or None,
            total_characters=sum(characters_per_page),
            characters_per_page=characters_per_page,
            structure=structure,
        ),
    )
