"""DOCX parsing via python-docx: document -> styled HTML -> structure."""

import io
import zipfile
from html import escape

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from ..errors import DocumentParseError
from ..logger import logger
from .containers import build_structure_from_html, split_page_texts
from .models import ParseMetadata, ParseResult, ParserOptions

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

PAGE_BREAK_DIV = '<div style="page-break-before: always"></div>'

ALIGNMENT_NAMES = {
    WD_ALIGN_PARAGRAPH.LEFT: "left",
    WD_ALIGN_PARAGRAPH.CENTER: "center",
    WD_ALIGN_PARAGRAPH.RIGHT: "right",
    WD_ALIGN_PARAGRAPH.JUSTIFY: "justify",
}


def _heading_tag(style_name: str) -> str | None:
    if style_name == "Title":
        return "h1"
    if style_name.startswith("Heading "):
        level = style_name.removeprefix("Heading ").strip()
        if level.isdigit():
            return f"h{min(max(int(level), 1), 3)}"
    return None


def _list_tag(style_name: str) -> str | None:
    if style_name.startswith("List Bullet"):
        return "ul"
    if style_name.startswith("List Number"):
        return "ol"
    return None


def _inline_style(paragraph: Paragraph) -> str:
    declarations = []
    alignment = paragraph.alignment
    if alignment is None and paragraph.style is not None:
        alignment = paragraph.style.paragraph_format.alignment
    if alignment in ALIGNMENT_NAMES:
        declarations.append(f"text-align: {ALIGNMENT_NAMES[alignment]}")

    sizes = [run.font.size.pt for run in paragraph.runs if run.font.size is not None]
    if not sizes and paragraph.style is not None and paragraph.style.font.size is not None:
        sizes = [paragraph.style.font.size.pt]
    if sizes:
        declarations.append(f"font-size: {max(sizes):g}pt")

    runs = [run for run in paragraph.runs if run.text.strip()]
    if runs and all(run.bold for run in runs):
        declarations.append("font-weight: bold")
    return "; ".join(declarations)


def _has_page_break(paragraph: Paragraph) -> bool:
    return bool(paragraph._p.xpath('.//w:br[@w:type="page"]'))


def _open_tag(tag: str, style: str, css_class: str | None = None) -> str:
    attrs = f' class="{css_class}"' if css_class else ""
    if style:
        attrs += f' style="{style}"'
    return f"<{tag}{attrs}>"


def _table_html(table: Table) -> str:
    rows = []
    for row_index, row in enumerate(table.rows):
        cell_tag = "th" if row_index == 0 else "td"
        cells = "".join(
            f"<{cell_tag}>{escape(cell.text.strip())}</{cell_tag}>" for cell in row.cells
        )
        rows.append(f"<tr>{cells}</tr>")
    return f"<table>{''.join(rows)}</table>"


def _iter_block_items(document):
    """Paragraphs and tables of the document body, in document order."""
    body = document.element.body
    for child in body.iterchildren():
        if child.tag == qn("w:p"):
            yield Paragraph(child, document)
        elif child.tag == qn("w:tbl"):
            yield Table(child, document)


def docx_to_html(document) -> str:
    """Render a python-docx document as HTML carrying inline styles.

    Headings map to ``h1``-``h3`` (``Title`` is an ``h1`` of class ``title``),
    list styles to ``ul``/``ol``, explicit Word page breaks to a page-break
    ``div``.

    Args:
        document: A python-docx ``Document``.

    Returns:
        An HTML fragment, one block element per paragraph or table.
    """
    parts: list[str] = []
    open_list: str | None = None

    def close_list():
        nonlocal open_list
        if open_list:
            parts.append(f"</{open_list}>")
            open_list = None

    for block in _iter_block_items(document):
        if isinstance(block, Table):
            close_list()
            parts.append(_table_html(block))
            continue

        style_name = block.style.name if block.style is not None else ""
        if block.paragraph_format.page_break_before:
            close_list()
            parts.append(PAGE_BREAK_DIV)

        text = escape(block.text.strip())
        list_tag = _list_tag(style_name)
        if text and list_tag:
            if open_list != list_tag:
                close_list()
                parts.append(f"<{list_tag}>")
                open_list = list_tag
            parts.append(f"<li>{text}</li>")
        elif text:
            close_list()
            tag = _heading_tag(style_name) or "p"
            css_class = "title" if style_name == "Title" else None
            parts.append(f"{_open_tag(tag, _inline_style(block), css_class)}{text}</{tag}>")

        if _has_page_break(block):
            close_list()
            parts.append(PAGE_BREAK_DIV)

    close_list()
    return "\n".join(parts)


def _core_metadata(document) -> dict:
    props = document.core_properties
    created = props.created
    return {
        "title": props.title or None,
        "author": props.author or None,
        "creation_date": created.isoformat() if created else None,
    }


def parse_docx(
    data: bytes,
    options: ParserOptions | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> ParseResult:
    """Parse a DOCX file into a paginated document structure.

    Args:
        data: Raw DOCX bytes.
        options: Parser options (unused by this format beyond defaults).
        config: Layout thresholds (table row limit per page).

    Returns:
        ParseResult whose content joins the heuristic pages with the
        page-break marker.

    Raises:
        DocumentParseError: If the bytes are not a readable DOCX package.
    """
    try:
        document = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise DocumentParseError(f"Invalid DOCX: {e}", mime_type=DOCX_MIME_TYPE) from e

    html = docx_to_html(document)
    structure = build_structure_from_html(html, _core_metadata(document), config)
    characters_per_page = [len(page) for page in split_page_texts(structure.text)]

    logger.info(
        "docx parsed successfully",
        total_pages=structure.metadata.page_count,
        total_elements=len(structure.elements),
    )
    return ParseResult(
        content=structure.text,
        metadata=ParseMetadata(
            mime_type=DOCX_MIME_TYPE,
            file_size=len(data),
            page_count=structure.metadata.page_count,
            total_characters=sum(characters_per_page),
            characters_per_page=characters_per_page,
            structure=structure,
        ),
    )