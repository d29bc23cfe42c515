"""Reading-order text for one page.

PDFs carry no paragraph or reading-order structure. Horizontal position is
the only signal for column membership and the size of the vertical gap
between fragments the only signal for line versus paragraph breaks.
"""

import re
from collections.abc import Sequence

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .classifier import body_font_size
from .columns import ColumnRange, assign_columns, detect_columns
from .fragments import group_lines, line_text, reading_order
from .models import COLUMN_BREAK, TextFragment

PAGE_NUMBER_PATTERN = re.compile(r"\d+")


def is_page_number(
    fragment: TextFragment,
    page_width: float,
    page_height: float,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> bool:
    """A purely numeric fragment near the top of the page, horizontally centred."""
    if not PAGE_NUMBER_PATTERN.fullmatch(fragment.text):
        return False
    if fragment.y > page_height * config.page_number_top_ratio:
        return False
    center = fragment.x + fragment.width / 2
    return abs(center - page_width / 2) <= page_width * config.page_number_center_tolerance


def split_page_number(
    fragments: Sequence[TextFragment],
    page_width: float | None = None,
    page_height: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> tuple[TextFragment | None, list[TextFragment]]:
    """Separate the running page number (if any) from the body fragments."""
    width = page_width or config.page_width
    height = page_height or config.page_height
    for fragment in reading_order(fragments):
        if is_page_number(fragment, width, height, config):
            return fragment, [f for f in fragments if f is not fragment]
    return None, list(fragments)


def find_main_titles(
    fragments: Sequence[TextFragment],
    page_height: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[TextFragment]:
    """Large fragments at the top of the page, in reading order.

    A title is within ``config.title_font_ratio`` of the largest font on the
    page, larger than the body text, and inside the top zone of the page.
    """
    if not fragments:
        return []
    height = page_height or config.page_height
    max_size = max(f.font_size for f in fragments)
    body_size = body_font_size(fragments)
    top_zone = height * config.title_top_ratio
    return [
        f
        for f in reading_order(fragments)
        if f.font_size >= max_size * config.title_font_ratio
        and (body_size is None or round(f.font_size, 1) > body_size)
        and f.y <= top_zone
    ]


def flow_text(
    fragments: Sequence[TextFragment], config: LayoutConfig = DEFAULT_LAYOUT_CONFIG
) -> str:
    """Concatenate one column's fragments top-to-bottom.

    Fragments are joined with a single space; a vertical gap above
    ``line_gap_threshold`` starts a new line and one above the paragraph
    threshold leaves a blank line.
    """
    parts: list[str] = []
    previous: TextFragment | None = None
    for fragment in reading_order(fragments):
        if previous is not None:
            gap = fragment.y - previous.y
            if gap > config.paragraph_gap_threshold:
                parts.append("\n\n")
            elif gap > config.line_gap_threshold:
                parts.append("\n")
        if parts and not parts[-1].endswith("\n"):
            parts.append(" ")
        parts.append(fragment.text)
        previous = fragment
    return "".join(parts)


def linearize(
    fragments: Sequence[TextFragment],
    columns: Sequence[ColumnRange] | None = None,
    page_width: float | None = None,
    page_height: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> str:
    """Emit a page's text in reading order.

    The running page number comes first, then the main titles, then each
    column top-to-bottom with a column-break marker between columns.

    Args:
        fragments: All usable fragments of the page.
        columns: Column layout; detected from the body when omitted.
        page_width: Page width, defaults to ``config.page_width``.
        page_height: Page height, defaults to ``config.page_height``.
        config: Layout thresholds.

    Returns:
        The page text with leading and trailing whitespace removed.
    """
    page_number, body = split_page_number(fragments, page_width, page_height, config)
    if columns is None:
        columns = detect_columns(body, page_width, config)

    header_lines: list[str] = []
    if page_number is not None:
        header_lines.append(page_number.text)

    titles = find_main_titles(body, page_height, config)
    if titles:
        title_ids = {id(t) for t in titles}
        body = [f for f in body if id(f) not in title_ids]
        header_lines.extend(
            line_text(line) for line in group_lines(titles, config.row_tolerance)
        )

    column_texts = [
        text
        for text in (flow_text(bucket, config) for bucket in assign_columns(body, columns))
        if text.strip()
    ]

    header = "".join(f"{line}\n\n" for line in header_lines)
    return (header + COLUMN_BREAK.join(column_texts)).strip()
