"""Document structure for formats already segmented into block containers.

HTML converted from DOCX (and plain text) has headings, paragraphs, lists
and tables but no native pagination. Pages are cut heuristically so a long
document does not collapse into a single page: a level-1 heading or an
explicit page-break block starts a new page, and a table longer than
``max_table_rows_per_page`` rows ends one.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .html_tree import HtmlNode, parse_html
from .models import (
    HEADING_TYPES,
    DocumentElement,
    DocumentMetadata,
    DocumentStructure,
    ElementStyle,
    ElementType,
    PageMetadata,
    PageResult,
    PAGE_BREAK,
    PageStructure,
)
from .structure import assemble_document
from .tables import table_to_text

HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 3, "h5": 3, "h6": 3}
CONTAINER_TAGS = {"html", "body", "div", "section", "article", "main", "header", "footer"}
ALIGNMENTS = {"left", "center", "right", "justify"}

_FONT_SIZE = re.compile(r"(\d+(?:\.\d+)?|\.\d+)\s*(pt|px)?")

BREAK_BEFORE = "before"
BREAK_AFTER = "after"


def _font_size(node: HtmlNode) -> float | None:
    match = _FONT_SIZE.match(node.style.get("font-size", ""))
    if not match:
        return None
    size = float(match.group(1))
    # Rendered pixels to points
    return round(size * 0.75, 2) if match.group(2) == "px" else size


def _alignment(node: HtmlNode) -> str | None:
    value = node.style.get("text-align") or node.attrs.get("align", "").lower()
    return value if value in ALIGNMENTS else None


def _style_for(node: HtmlNode, **extra: Any) -> ElementStyle:
    weight = node.style.get("font-weight")
    return ElementStyle(
        font_size=_font_size(node),
        font_family=node.style.get("font-family"),
        font_weight=weight,
        alignment=_alignment(node),
        color=node.style.get("color"),
        **extra,
    )


def has_page_break(node: HtmlNode) -> bool:
    """Whether a block carries an explicit page-break indicator."""
    style = node.style
    if "always" in (style.get("page-break-before", ""), style.get("page-break-after", "")):
        return True
    if "page" in (style.get("break-before", ""), style.get("break-after", "")):
        return True
    if node.classes & {"page-break", "pagebreak"}:
        return True
    return "data-page-break" in node.attrs


def _table_element(node: HtmlNode) -> DocumentElement:
    rows = []
    for tr in node.find_all("tr"):
        cells = [
            DocumentElement(
                type=ElementType.TABLE_CELL,
                content=cell.text_content(),
                style=_style_for(cell, is_header=cell.tag == "th"),
            )
            for cell in tr.elements()
            if cell.tag in ("td", "th")
        ]
        if cells:
            rows.append(DocumentElement(type=ElementType.TABLE_ROW, children=cells))
    header = bool(rows) and all(c.style.is_header for c in rows[0].children)
    return DocumentElement(
        type=ElementType.TABLE, style=ElementStyle(is_header=header), children=rows
    )


def _list_element(node: HtmlNode, level: int = 1) -> DocumentElement:
    list_type = "ordered" if node.tag == "ol" else "unordered"
    items = []
    for li in node.elements():
        if li.tag != "li":
            continue
        own_text = " ".join(
            child.text_content() if not child.is_text else child.text.strip()
            for child in li.children
            if child.tag not in ("ul", "ol")
        ).strip()
        items.append(
            DocumentElement(
                type=ElementType.LIST_ITEM,
                content=own_text,
                style=_style_for(li, list_type=list_type, level=level),
            )
        )
        for nested in li.elements():
            if nested.tag in ("ul", "ol"):
                items.extend(_list_element(nested, level + 1).children)
    return DocumentElement(
        type=ElementType.LIST,
        style=ElementStyle(list_type=list_type, level=level),
        children=items,
    )


def node_to_element(node: HtmlNode) -> DocumentElement | None:
    """Map one block-level node to a document element (None for empty blocks)."""
    if node.tag in HEADING_TAGS:
        text = node.text_content()
        if not text:
            return None
        level = HEADING_TAGS[node.tag]
        element_type = ElementType.TITLE if "title" in node.classes else HEADING_TYPES[level]
        return DocumentElement(
            type=element_type, content=text, style=_style_for(node, level=level)
        )
    if node.tag in ("ul", "ol"):
        element = _list_element(node)
        return element if element.children else None
    if node.tag == "table":
        element = _table_element(node)
        return element if element.children else None
    if node.tag == "img":
        return DocumentElement(type=ElementType.IMAGE, content=node.attrs.get("alt", ""))
    text = node.text_content()
    if not text:
        return None
    return DocumentElement(type=ElementType.PARAGRAPH, content=text, style=_style_for(node))


def page_break_decision(
    element: DocumentElement, config: LayoutConfig = DEFAULT_LAYOUT_CONFIG
) -> str | None:
    """Where a structural element forces a page break, if anywhere."""
    if element.type in (ElementType.TITLE, ElementType.HEADING1):
        return BREAK_BEFORE
    if element.type == ElementType.TABLE and len(element.children) > config.max_table_rows_per_page:
        return BREAK_AFTER
    return None


def _walk_blocks(node: HtmlNode):
    """Yield ("break", node) markers and block-level nodes in document order."""
    for child in node.children:
        if child.is_text:
            if child.text.strip():
                yield "block", child
            continue
        if child.tag in CONTAINER_TAGS:
            if has_page_break(child):
                yield "break", child
            yield from _walk_blocks(child)
            continue
        yield "block", child


def split_page_texts(text: str) -> list[str]:
    """Per-page texts of a linearized document."""
    return text.split(PAGE_BREAK) if text else []


def element_text(element: DocumentElement) -> str:
    """Plain-text rendering of an element for the linearized output."""
    if element.type == ElementType.TABLE:
        return table_to_text(element)
    if element.type == ElementType.LIST:
        lines = []
        for number, item in enumerate(element.children, start=1):
            indent = "  " * ((item.style.level or 1) - 1)
            bullet = f"{number}." if item.style.list_type == "ordered" else "-"
            lines.append(f"{indent}{bullet} {item.content}")
        return "\n".join(lines)
    if element.type == ElementType.COLUMN:
        return "\n\n".join(element_text(child) for child in element.children)
    return element.content


def paginate(
    blocks: Sequence[tuple[str, DocumentElement | None]],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[list[DocumentElement]]:
    """Cut a flat block sequence into pages using the structural break rules."""
    pages: list[list[DocumentElement]] = [[]]

    def close_page():
        if pages[-1]:
            pages.append([])

    for kind, element in blocks:
        if kind == "break":
            close_page()
            continue
        if element is None:
            continue
        decision = page_break_decision(element, config)
        if decision == BREAK_BEFORE:
            close_page()
        pages[-1].append(element)
        if decision == BREAK_AFTER:
            close_page()

    if not pages[-1] and len(pages) > 1:
        pages.pop()
    return pages


def pages_to_results(pages: Sequence[Sequence[DocumentElement]]) -> list[PageResult]:
    results = []
    for page_index, elements in enumerate(pages):
        for element_index, element in enumerate(elements):
            element.element_index = element_index
        results.append(
            PageResult(
                page_structure=PageStructure(
                    page_index=page_index,
                    elements=list(elements),
                    metadata=PageMetadata(page_number=page_index + 1),
                ),
                text="\n\n".join(element_text(e) for e in elements).strip(),
            )
        )
    return results


def build_structure_from_html(
    html: str,
    metadata: DocumentMetadata | Mapping[str, Any] | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> DocumentStructure:
    """Build a paginated document structure from converted HTML.

    Style comes only from inline attributes written by the conversion step
    (``style``, ``align``, ``class``); there is no rendered style to consult.

    Args:
        html: HTML produced by a document-to-HTML conversion.
        metadata: Source metadata (title, author, creation date).
        config: Layout thresholds (table row limit per page).

    Returns:
        DocumentStructure whose text joins pages with the page-break marker.
    """
    root = parse_html(html)
    blocks = [
        (kind, None if kind == "break" else node_to_element(node))
        for kind, node in _walk_blocks(root)
    ]
    pages = paginate(blocks, config)
    if pages == [[]]:
        return assemble_document([], metadata)
    return assemble_document(pages_to_results(pages), metadata)
