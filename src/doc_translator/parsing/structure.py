"""Page and document assembly on top of the layout heuristics."""

from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from ..logger import logger
from .classifier import ClassifiedFragments, HeadingFragment, classify
from .columns import ColumnRange, assign_columns, detect_columns
from .fragments import coerce_fragments, line_text, reading_order
from .linearizer import flow_text, linearize, split_page_number
from .models import (
    HEADING_TYPES,
    PAGE_BREAK,
    DocumentElement,
    DocumentMetadata,
    DocumentStructure,
    ElementPosition,
    ElementStyle,
    ElementType,
    PageMetadata,
    PageResult,
    PageStructure,
    RawPage,
    TextFragment,
)
from .tables import assemble_tables


def _bounding_box(fragments: Sequence[TextFragment]) -> ElementPosition:
    x0 = min(f.x for f in fragments)
    y0 = min(f.y for f in fragments)
    x1 = max(f.right for f in fragments)
    y1 = max(f.y + f.height for f in fragments)
    return ElementPosition(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def group_paragraphs(
    fragments: Sequence[TextFragment], config: LayoutConfig = DEFAULT_LAYOUT_CONFIG
) -> list[list[TextFragment]]:
    """Split a column's fragments wherever the vertical gap marks a paragraph break."""
    groups: list[list[TextFragment]] = []
    previous: TextFragment | None = None
    for fragment in reading_order(fragments):
        if previous is None or fragment.y - previous.y > config.paragraph_gap_threshold:
            groups.append([])
        groups[-1].append(fragment)
        previous = fragment
    return groups


def _heading_elements(
    headings: Sequence[HeadingFragment], config: LayoutConfig
) -> list[DocumentElement]:
    # Fragments of the same level on one baseline form a single heading
    lines: list[list[HeadingFragment]] = []
    for heading in headings:
        last = lines[-1][-1] if lines else None
        if (
            last is not None
            and last.level == heading.level
            and abs(last.fragment.y - heading.fragment.y) <= config.row_tolerance
        ):
            lines[-1].append(heading)
        else:
            lines.append([heading])

    elements = []
    for line in lines:
        fragments = sorted((h.fragment for h in line), key=lambda f: f.x)
        level = line[0].level
        elements.append(
            DocumentElement(
                type=HEADING_TYPES[level],
                content=line_text(fragments),
                style=ElementStyle(
                    font_size=max(f.font_size for f in fragments), level=level
                ),
                position=_bounding_box(fragments),
            )
        )
    return elements


def _paragraph_element(
    fragments: Sequence[TextFragment], column_index: int, config: LayoutConfig
) -> DocumentElement:
    position = _bounding_box(fragments)
    position.column_index = column_index
    return DocumentElement(
        type=ElementType.PARAGRAPH,
        content=flow_text(fragments, config),
        style=ElementStyle(font_size=max(f.font_size for f in fragments)),
        position=position,
    )


def _body_elements(
    paragraphs: Sequence[TextFragment],
    columns: Sequence[ColumnRange],
    config: LayoutConfig,
) -> list[DocumentElement]:
    elements: list[DocumentElement] = []
    multi_column = len(columns) > 1
    for column_index, bucket in enumerate(assign_columns(paragraphs, columns)):
        if not bucket:
            continue
        children = [
            _paragraph_element(group, column_index, config)
            for group in group_paragraphs(bucket, config)
        ]
        if not multi_column:
            elements.extend(children)
            continue
        position = _bounding_box(bucket)
        position.column_index = column_index
        elements.append(
            DocumentElement(type=ElementType.COLUMN, position=position, children=children)
        )
    return elements


def build_page_elements(
    classified: ClassifiedFragments,
    columns: Sequence[ColumnRange],
    page_width: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[DocumentElement]:
    """Headings, then body text per column, then tables; tagged with their index."""
    elements = [
        *_heading_elements(classified.titles, config),
        *_body_elements(classified.paragraphs, columns, config),
        *assemble_tables(classified.table_candidates, page_width, config),
    ]
    for index, element in enumerate(elements):
        element.element_index = index
    return elements


def parse_page(
    fragments: Sequence[TextFragment | Mapping[str, Any]],
    page_index: int = 0,
    page_width: float | None = None,
    page_height: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> PageResult:
    """Reconstruct the layout of one page.

    Runs classification, column detection, table assembly and linearization
    over the page's fragments. Malformed or blank fragments are skipped; a
    page with no usable fragment yields an empty structure and empty text.

    Args:
        fragments: Positioned text runs of the page (models or dicts).
        page_index: 0-based index of the page in its document.
        page_width: Page width; defaults to ``config.page_width``.
        page_height: Page height; defaults to ``config.page_height``.
        config: Layout thresholds.

    Returns:
        PageResult with the page structure and its reading-order text.
    """
    usable = coerce_fragments(fragments, page_height)
    width = page_width or config.page_width

    if not usable:
        return PageResult(
            page_structure=PageStructure(
                page_index=page_index,
                metadata=PageMetadata(page_number=page_index + 1),
            ),
            text="",
        )

    _, content = split_page_number(usable, width, page_height, config)
    columns = detect_columns(content, width, config)
    classified = classify(content, config)
    elements = build_page_elements(classified, columns, width, config)
    text = linearize(usable, columns, width, page_height, config)

    logger.debug(
        "page laid out",
        page_index=page_index,
        fragments=len(usable),
        elements=len(elements),
        columns=len(columns),
    )
    return PageResult(
        page_structure=PageStructure(
            page_index=page_index,
            elements=elements,
            metadata=PageMetadata(
                page_number=page_index + 1,
                has_columns=len(columns) > 1,
                column_count=len(columns),
            ),
        ),
        text=text,
    )


def _coerce_metadata(metadata: DocumentMetadata | Mapping[str, Any] | None) -> dict:
    if metadata is None:
        return {}
    if isinstance(metadata, DocumentMetadata):
        source = metadata.model_dump()
    else:
        source = dict(metadata)

    def pick(*keys: str) -> str | None:
        for key in keys:
            value = source.get(key)
            if value not in (None, ""):
                return str(value)
        return None

    return {
        "title": pick("title"),
        "author": pick("author"),
        "creation_date": pick("creation_date", "creationDate"),
    }


def assemble_document(
    page_results: Sequence[PageResult],
    metadata: DocumentMetadata | Mapping[str, Any] | None = None,
) -> DocumentStructure:
    """Merge per-page results into one document, in page order.

    Page texts are joined with the page-break marker; no marker precedes the
    first page or follows the last.
    """
    ordered = sorted(page_results, key=lambda r: r.page_structure.page_index)
    pages = [r.page_structure for r in ordered]
    return DocumentStructure(
        elements=[element for page in pages for element in page.elements],
        pages=pages,
        metadata=DocumentMetadata(page_count=len(pages), **_coerce_metadata(metadata)),
        text=PAGE_BREAK.join(r.text for r in ordered),
    )


def _unpack_page(
    page: RawPage | Sequence[Any],
) -> tuple[Sequence[Any], float | None, float | None]:
    if isinstance(page, RawPage):
        return page.fragments, page.width, page.height
    return page, None, None


def layout_pages(
    pages: Sequence[RawPage | Sequence[TextFragment | Mapping[str, Any]]],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    max_workers: int = 1,
) -> list[PageResult]:
    """Run parse_page over every page, on a thread pool when max_workers > 1.

    Results are returned in page order regardless of completion order.
    """
    results: dict[int, PageResult] = {}
    if max_workers > 1 and len(pages) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {}
            for index, page in enumerate(pages):
                fragments, width, height = _unpack_page(page)
                future = executor.submit(parse_page, fragments, index, width, height, config)
                future_to_index[future] = index
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
    else:
        for index, page in enumerate(pages):
            fragments, width, height = _unpack_page(page)
            results[index] = parse_page(fragments, index, width, height, config)
    return [results[i] for i in range(len(pages))]


def parse_document(
    pages: Sequence[RawPage | Sequence[TextFragment | Mapping[str, Any]]] | None,
    metadata: DocumentMetadata | Mapping[str, Any] | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    max_workers: int = 1,
) -> DocumentStructure:
    """Lay out every page of a document and assemble the result.

    Pages are independent, so with ``max_workers > 1`` they are laid out on a
    thread pool; the result is always in page order regardless of completion
    order. An empty page list yields an empty document with a page count of 0.

    Args:
        pages: One fragment list (or RawPage) per page.
        metadata: Source metadata (title, author, creation date), best effort.
        config: Layout thresholds.
        max_workers: Threads used to lay out pages.

    Returns:
        The assembled DocumentStructure.
    """
    if not pages:
        return assemble_document([], metadata)

    document = assemble_document(layout_pages(pages, config, max_workers), metadata)
    logger.info(
        "document laid out",
        page_count=document.metadata.page_count,
        element_count=len(document.elements),
    )
    return document
