"""Detection of reading columns from the left edges of text fragments."""

from collections.abc import Sequence

from pydantic import BaseModel

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .clustering import cluster, span
from .models import TextFragment


class ColumnRange(BaseModel):
    """Horizontal extent of a column, from its leftmost to rightmost left edge."""

    start: float
    end: float

    def distance(self, x: float) -> float:
        if x < self.start:
            return self.start - x
        if x > self.end:
            return x - self.end
        return 0.0


def detect_columns(
    fragments: Sequence[TextFragment],
    page_width: float | None = None,
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[ColumnRange]:
    """Determine the reading columns of a page.

    Distinct left edges are clustered with ``config.column_threshold``;
    clusters narrower than ``config.min_column_width`` are alignment noise
    and dropped. Fewer than two surviving clusters means a single column
    spanning the whole page.

    Args:
        fragments: Body fragments (running page number already removed).
        page_width: Width of the page; defaults to ``config.page_width``.
        config: Layout thresholds.

    Returns:
        Column ranges ordered left-to-right; never empty.
    """
    width = page_width or config.page_width
    left_edges = {f.x for f in fragments}

    clusters = [
        c
        for c in cluster(left_edges, config.column_threshold)
        if span(c) >= config.min_column_width
    ]
    if len(clusters) <= 1:
        return [ColumnRange(start=0.0, end=width)]
    return [ColumnRange(start=c[0], end=c[-1]) for c in clusters]


def column_index_for(x: float, columns: Sequence[ColumnRange]) -> int:
    """Index of the column containing ``x``, or the nearest one."""
    return min(range(len(columns)), key=lambda i: (columns[i].distance(x), i))


def assign_columns(
    fragments: Sequence[TextFragment], columns: Sequence[ColumnRange]
) -> list[list[TextFragment]]:
    """Bucket fragments by column, preserving input order inside each bucket."""
    buckets: list[list[TextFragment]] = [[] for _ in columns]
    if not columns:
        return buckets
    for fragment in fragments:
        buckets[column_index_for(fragment.x, columns)].append(fragment)
    return buckets
