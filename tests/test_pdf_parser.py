"""Tests for PDF parser module."""

import io
from unittest.mock import Mock, patch

import fitz  # PyMuPDF
import pytest
from PIL import Image

from doc_translator.errors import DocumentParseError, OCRError, PageExtractionError
from doc_translator.parsing.models import (
    PAGE_BREAK,
    PAGE_BREAK_MARKER,
    ElementType,
    ParseResult,
    ParserOptions,
)
from doc_translator.parsing.ocr import OCRService
from doc_translator.parsing.pdf_parser import (
    PDF_MIME_TYPE,
    _is_garbage_text,
    extract_fragments,
    parse_pdf,
)


def png_bytes(size: tuple[int, int] = (40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(scope="module")
def sample_pdf_bytes() -> bytes:
    """Create a two-page PDF with headings and short body lines."""
    doc = fitz.open()
    doc.set_metadata({"title": "Test Title", "author": "Jane Doe"})

    # Page 1: title and paragraphs
    page = doc.new_page()
    page.insert_text((72, 72), "Sample Document Title", fontsize=24, fontname="helv")
    page.insert_text((72, 120), "First paragraph.", fontsize=12, fontname="helv")
    page.insert_text((72, 140), "Continues here.", fontsize=12, fontname="helv")
    page.insert_text((72, 200), "Closing words.", fontsize=12, fontname="helv")

    # Page 2: section header
    page2 = doc.new_page()
    page2.insert_text((72, 72), "Section Header", fontsize=18, fontname="helv")
    page2.insert_text((72, 120), "Second page.", fontsize=12, fontname="helv")

    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture(scope="module")
def image_pdf_bytes() -> bytes:
    """Create a one-page PDF holding only an image, like a scan."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_image(fitz.Rect(72, 72, 272, 272), stream=png_bytes())
    data = doc.tobytes()
    doc.close()
    return data


class TestParsePdf:
    """Tests for parse_pdf function."""

    def test_returns_parse_result(self, sample_pdf_bytes):
        """Test that parse_pdf returns a ParseResult with PDF metadata."""
        result = parse_pdf(sample_pdf_bytes)
        assert isinstance(result, ParseResult)
        assert result.metadata.mime_type == PDF_MIME_TYPE
        assert result.metadata.file_size == len(sample_pdf_bytes)
        assert result.metadata.page_count == 2
        assert result.metadata.has_images is False
        assert result.metadata.image_text is None

    def test_pages_joined_with_marker(self, sample_pdf_bytes):
        """Test that page texts are joined by exactly one marker."""
        result = parse_pdf(sample_pdf_bytes)
        assert result.content.count(PAGE_BREAK_MARKER) == 1
        first, second = result.content.split(PAGE_BREAK)
        assert first.startswith("Sample Document Title")
        assert "Closing words." in first
        assert second.startswith("Section Header")
        assert "Second page." in second

    def test_character_counts(self, sample_pdf_bytes):
        """Test that per-page character counts add up to the total."""
        result = parse_pdf(sample_pdf_bytes)
        pages = result.content.split(PAGE_BREAK)
        assert result.metadata.characters_per_page == [len(p) for p in pages]
        assert result.metadata.total_characters == sum(result.metadata.characters_per_page)

    def test_detects_headings(self, sample_pdf_bytes):
        """Test that larger text is classified as headings."""
        structure = parse_pdf(sample_pdf_bytes).metadata.structure
        first_page, second_page = structure.pages

        headings = [e for e in first_page.elements if e.type == ElementType.HEADING1]
        assert [h.content for h in headings] == ["Sample Document Title"]
        sections = [e for e in second_page.elements if e.type == ElementType.HEADING2]
        assert [s.content for s in sections] == ["Section Header"]

    def test_structure_metadata(self, sample_pdf_bytes):
        """Test that document metadata is read from the PDF."""
        structure = parse_pdf(sample_pdf_bytes).metadata.structure
        assert structure.metadata.page_count == 2
        assert structure.metadata.title == "Test Title"
        assert structure.metadata.author == "Jane Doe"
        assert structure.text == parse_pdf(sample_pdf_bytes).content

    def test_page_numbers(self, sample_pdf_bytes):
        """Test that pages are numbered from 1 in order."""
        structure = parse_pdf(sample_pdf_bytes).metadata.structure
        assert [p.metadata.page_number for p in structure.pages] == [1, 2]
        assert [p.page_index for p in structure.pages] == [0, 1]

    def test_invalid_pdf(self):
        """Test that unreadable bytes raise DocumentParseError."""
        with pytest.raises(DocumentParseError) as exc_info:
            parse_pdf(b"this is not a pdf")
        assert exc_info.value.mime_type == PDF_MIME_TYPE

    def test_empty_pdf_bytes(self):
        """Test that empty input raises DocumentParseError."""
        with pytest.raises(DocumentParseError, match="Empty PDF data"):
            parse_pdf(b"")


class TestPageFailures:
    """Tests for the failed-page policy."""

    def test_failed_page_raises(self, sample_pdf_bytes):
        """Test that an engine failure names the failing page."""
        with patch(
            "doc_translator.parsing.pdf_parser.extract_fragments",
            side_effect=RuntimeError("corrupt page"),
        ):
            with pytest.raises(PageExtractionError) as exc_info:
                parse_pdf(sample_pdf_bytes)
        assert exc_info.value.page_index == 0
        assert isinstance(exc_info.value.cause, RuntimeError)

    def test_failed_page_skipped(self, sample_pdf_bytes):
        """Test that skipped pages stay as empty pages."""
        real_extract = extract_fragments
        calls = []

        def fail_first(page):
            calls.append(page.number)
            if len(calls) == 1:
                raise RuntimeError("corrupt page")
            return real_extract(page)

        with patch(
            "doc_translator.parsing.pdf_parser.extract_fragments", side_effect=fail_first
        ):
            result = parse_pdf(sample_pdf_bytes, ParserOptions(skip_failed_pages=True))

        assert result.metadata.page_count == 2
        first, second = result.content.split(PAGE_BREAK)
        assert first == ""
        assert second.startswith("Section Header")


class TestImagesAndOCR:
    """Tests for image detection and OCR integration."""

    def test_image_page_without_ocr(self, image_pdf_bytes):
        """Test that images are reported even when OCR is off."""
        result = parse_pdf(image_pdf_bytes)
        assert result.metadata.has_images is True
        assert result.metadata.image_text is None
        assert result.content == ""

    def test_extract_image_positions(self, image_pdf_bytes):
        """Test that image placements become image elements."""
        result = parse_pdf(image_pdf_bytes, ParserOptions(extract_images=True))
        images = [
            e for e in result.metadata.structure.pages[0].elements if e.type == ElementType.IMAGE
        ]
        assert len(images) == 1
        assert images[0].position.x == pytest.approx(72)
        assert images[0].position.width == pytest.approx(200)

    def test_ocr_text_added(self, image_pdf_bytes):
        """Test that recognized text is added to the page."""
        ocr = Mock(spec=OCRService)
        ocr.recognize_page.return_value = "Scanned words"

        result = parse_pdf(
            image_pdf_bytes, ParserOptions(use_ocr=True, language="eng"), ocr_service=ocr
        )

        assert result.metadata.image_text == ["Scanned words"]
        assert result.content == "Scanned words"
        ocr.recognize_page.assert_called_once()
        assert ocr.recognize_page.call_args.args[1] == "eng"
        ocr.close.assert_not_called()

    def test_ocr_not_used_when_disabled(self, image_pdf_bytes):
        """Test that a passed service is ignored unless OCR is requested."""
        ocr = Mock(spec=OCRService)
        parse_pdf(image_pdf_bytes, ocr_service=ocr)
        ocr.recognize_page.assert_not_called()

    def test_ocr_skipped_for_text_pages(self, sample_pdf_bytes):
        """Test that pages without images are not sent to OCR."""
        ocr = Mock(spec=OCRService)
        parse_pdf(sample_pdf_bytes, ParserOptions(use_ocr=True), ocr_service=ocr)
        ocr.recognize_page.assert_not_called()

    def test_ocr_failure_is_not_fatal(self, image_pdf_bytes):
        """Test that an OCR error leaves the page without OCR text."""
        ocr = Mock(spec=OCRService)
        ocr.recognize_page.side_effect = OCRError("engine crashed")

        result = parse_pdf(image_pdf_bytes, ParserOptions(use_ocr=True), ocr_service=ocr)

        assert result.metadata.image_text is None
        assert result.metadata.page_count == 1

    def test_owned_ocr_service_closed(self, image_pdf_bytes):
        """Test that a service created for the call is closed after it."""
        with patch("doc_translator.parsing.pdf_parser.OCRService") as mock_service_class:
            instance = mock_service_class.return_value
            instance.recognize_page.return_value = "From owned service"

            result = parse_pdf(image_pdf_bytes, ParserOptions(use_ocr=True, language="por"))

        mock_service_class.assert_called_once_with("por")
        instance.close.assert_called_once()
        assert result.metadata.image_text == ["From owned service"]


class TestExtractFragments:
    """Tests for extract_fragments function."""

    def test_word_fragments(self, sample_pdf_bytes):
        """Test that words carry text, position and span font size."""
        doc = fitz.open(stream=sample_pdf_bytes, filetype="pdf")
        try:
            fragments = extract_fragments(doc[0])
        finally:
            doc.close()

        texts = [f.text for f in fragments]
        assert texts[:3] == ["Sample", "Document", "Title"]
        assert "paragraph." in texts
        title = fragments[0]
        assert title.font_size == pytest.approx(24)
        assert title.width > 0
        assert title.x == pytest.approx(72, abs=1)
        assert title.y == pytest.approx(72, abs=0.5)
        assert fragments[1].x > title.x

    def test_blank_page(self):
        """Test that a page without text yields no fragments."""
        doc = fitz.open()
        page = doc.new_page()
        assert extract_fragments(page) == []
        doc.close()


class TestGarbageDetection:
    """Tests for _is_garbage_text function."""

    def test_short_text_never_garbage(self):
        """Test that short strings are not judged."""
        assert _is_garbage_text("\x01\x02") is False

    def test_normal_text(self):
        """Test that ordinary text is not garbage."""
        assert _is_garbage_text("This is a perfectly normal sentence.\n") is False

    def test_control_characters(self):
        """Test that text dominated by control characters is garbage."""
        assert _is_garbage_text("ab\x01\x02\x03\x04\x05cd\x06\x07\x08\x0e\x0fefgh") is True


class TestMixedFontSizes:
    """Tests for words of different sizes sharing one baseline."""

    @pytest.fixture
    def mixed_line_pdf_bytes(self) -> bytes:
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 400), "Total:", fontsize=10, fontname="helv")
        page.insert_text((110, 400), "42", fontsize=20, fontname="helv")
        page.insert_text((140, 400), "units", fontsize=10, fontname="helv")
        data = doc.tobytes()
        doc.close()
        return data

    def test_fragments_share_baseline(self, mixed_line_pdf_bytes):
        """Test that y is the baseline, not the top of each word's box."""
        doc = fitz.open(stream=mixed_line_pdf_bytes, filetype="pdf")
        try:
            fragments = extract_fragments(doc[0])
        finally:
            doc.close()

        assert [f.text for f in fragments] == ["Total:", "42", "units"]
        assert all(f.y == pytest.approx(400, abs=0.5) for f in fragments)
        assert fragments[1].height > fragments[0].height

    def test_line_read_in_order(self, mixed_line_pdf_bytes):
        """Test that a larger word stays in place within its line."""
        result = parse_pdf(mixed_line_pdf_bytes)
        assert result.content == "Total: 42 units"
