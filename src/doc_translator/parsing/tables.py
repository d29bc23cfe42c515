"""Assembly of table-cell candidates into table/row/cell element trees."""

from collections.abc import Sequence

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .models import (
    DocumentElement,
    ElementPosition,
    ElementStyle,
    ElementType,
    TextFragment,
)


def cell_alignment(x: float, page_width: float) -> str:
    """Alignment implied by which horizontal third of the page a cell starts in."""
    third = page_width / 3
    if x < third:
        return "left"
    if x > 2 * third:
        return "right"
    return "center"


def _make_cell(
    fragment: TextFragment, page_width: float, config: LayoutConfig
) -> DocumentElement:
    return DocumentElement(
        type=ElementType.TABLE_CELL,
        content=fragment.text,
        style=ElementStyle(
            font_size=fragment.font_size,
            alignment=cell_alignment(fragment.x, page_width),
            is_header=fragment.font_size > config.table_header_font_size,
        ),
        position=ElementPosition(
            x=fragment.x,
            y=fragment.y,
            width=fragment.width,
            height=fragment.height,
        ),
    )


def _cells(table: DocumentElement) -> list[DocumentElement]:
    return [cell for row in table.children for cell in row.children]


def _bounding_position(elements: Sequence[DocumentElement]) -> ElementPosition | None:
    positions = [e.position for e in elements if e.position is not None]
    if not positions:
        return None
    x0 = min(p.x for p in positions)
    y0 = min(p.y for p in positions)
    x1 = max(p.x + p.width for p in positions)
    y1 = max(p.y + p.height for p in positions)
    return ElementPosition(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def _find_table(
    tables: list[DocumentElement], y: float, config: LayoutConfig
) -> DocumentElement | None:
    for table in tables:
        cells = _cells(table)
        if any(abs(cell.position.y - y) <= config.table_join_distance for cell in cells):
            return table
    return None


def _find_row(
    table: DocumentElement, y: float, row_keys: dict[int, float], config: LayoutConfig
) -> DocumentElement | None:
    for row in table.children:
        if abs(row_keys[id(row)] - y) <= config.table_row_tolerance:
            return row
    return None


def assemble_tables(
    candidates: Sequence[TextFragment],
    page_width: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[DocumentElement]:
    """Group table-cell candidates into table elements.

    A candidate joins the first table holding a cell within
    ``config.table_join_distance`` of its baseline, otherwise it opens a new
    table. Inside a table it joins the row whose opening cell lies within
    ``config.table_row_tolerance``, otherwise it opens a new row.

    Args:
        candidates: Fragments classified as table-cell candidates.
        page_width: Page width used to derive cell alignment.
        config: Layout thresholds.

    Returns:
        Table elements, top-to-bottom. Rows are ordered top-to-bottom and
        every row's cells left-to-right.
    """
    width = page_width or config.page_width
    tables: list[DocumentElement] = []
    # Row key: y of the cell that opened the row, fixed when the row is created
    row_keys: dict[int, float] = {}

    for fragment in sorted(candidates, key=lambda f: (f.y, f.x)):
        table = _find_table(tables, fragment.y, config)
        if table is None:
            table = DocumentElement(type=ElementType.TABLE)
            tables.append(table)

        row = _find_row(table, fragment.y, row_keys, config)
        if row is None:
            row = DocumentElement(type=ElementType.TABLE_ROW)
            row_keys[id(row)] = fragment.y
            table.children.append(row)

        row.children.append(_make_cell(fragment, width, config))
        row.children.sort(key=lambda cell: cell.position.x)

    for table in tables:
        table.children.sort(key=lambda row: row_keys[id(row)])
        for row_index, row in enumerate(table.children):
            row.position = _bounding_position(row.children)
            row.position.row_index = row_index
            for column_index, cell in enumerate(row.children):
                cell.position.row_index = row_index
                cell.position.column_index = column_index
        table.position = _bounding_position(table.children)
        header_row = table.children[0].children
        table.style = ElementStyle(is_header=any(cell.style.is_header for cell in header_row))
    return tables


def table_to_text(table: DocumentElement) -> str:
    """Render a table element as pipe-separated lines."""
    return "\n".join(
        " | ".join(cell.content for cell in row.children) for row in table.children
    )
