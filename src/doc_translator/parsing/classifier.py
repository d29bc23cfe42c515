"""Role assignment for the text fragments of one page.

Font size is the only layout signal consistently available from flattened
PDF text runs, so headings are ranked by relative size on the page. Tabular
data is recognised by grid alignment: peers on the same baseline spaced at a
regular horizontal pitch.
"""

from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_LAYOUT_CONFIG, LayoutConfig
from .models import TextFragment


class HeadingFragment(BaseModel):
    model_config = ConfigDict(frozen=True)

    fragment: TextFragment
    level: int


class ClassifiedFragments(BaseModel):
    """Fragments of one page split by role, each list in page order."""

    titles: list[HeadingFragment] = Field(default_factory=list)
    paragraphs: list[TextFragment] = Field(default_factory=list)
    table_candidates: list[TextFragment] = Field(default_factory=list)

    @property
    def headings(self) -> list[TextFragment]:
        return [h.fragment for h in self.titles]


def _size_key(size: float) -> float:
    return round(size, 1)


def body_font_size(fragments: Sequence[TextFragment]) -> float | None:
    """Most common font size on the page, weighted by text length."""
    if not fragments:
        return None
    weights: Counter[float] = Counter()
    for f in fragments:
        weights[_size_key(f.font_size)] += len(f.text)
    return weights.most_common(1)[0][0]


def heading_thresholds(
    fragments: Sequence[TextFragment], config: LayoutConfig = DEFAULT_LAYOUT_CONFIG
) -> tuple[float, float, float] | None:
    """Font sizes that open heading levels 1, 2 and 3 on this page.

    The three largest distinct sizes are used. With only two distinct sizes
    the configured defaults apply; with a single size (or none) there are no
    headings at all and None is returned.
    """
    sizes = sorted({_size_key(f.font_size) for f in fragments}, reverse=True)
    if len(sizes) < 2:
        return None
    if len(sizes) < 3:
        h1, h2, h3 = sorted(config.default_heading_sizes, reverse=True)
        return h1, h2, h3
    return sizes[0], sizes[1], sizes[2]


def heading_level(font_size: float, thresholds: tuple[float, float, float] | None) -> int | None:
    if thresholds is None:
        return None
    size = _size_key(font_size)
    for level, threshold in enumerate(thresholds, start=1):
        if size >= threshold:
            return level
    return None


def _aligned_peers(
    fragment: TextFragment, candidates: Sequence[TextFragment], tolerance: float
) -> list[TextFragment]:
    return [
        other
        for other in candidates
        if other is not fragment and abs(other.y - fragment.y) <= tolerance
    ]


def _has_uniform_gaps(row: Sequence[TextFragment], tolerance: float) -> bool:
    xs = sorted(f.x for f in row)
    gaps = [b - a for a, b in zip(xs, xs[1:])]
    if not gaps:
        return False
    average = sum(gaps) / len(gaps)
    return max(abs(gap - average) for gap in gaps) < tolerance


def is_table_candidate(
    fragment: TextFragment,
    body: Sequence[TextFragment],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> bool:
    """Whether a body fragment sits on a regular grid with its baseline peers."""
    peers = _aligned_peers(fragment, body, config.row_tolerance)
    if len(peers) < config.min_aligned_peers:
        return False
    return _has_uniform_gaps([fragment, *peers], config.gap_uniformity_tolerance)


def classify(
    fragments: Sequence[TextFragment], config: LayoutConfig = DEFAULT_LAYOUT_CONFIG
) -> ClassifiedFragments:
    """Assign every fragment of a page exactly one role.

    Args:
        fragments: Usable fragments of one page.
        config: Layout thresholds.

    Returns:
        Headings (with their level), plain paragraph fragments and table-cell
        candidates, each in page order (top-to-bottom, left-to-right).
    """
    ordered = sorted(fragments, key=lambda f: (f.y, f.x))
    thresholds = heading_thresholds(ordered, config)

    result = ClassifiedFragments()
    body: list[TextFragment] = []
    for fragment in ordered:
        level = heading_level(fragment.font_size, thresholds)
        if level is None:
            body.append(fragment)
        else:
            result.titles.append(HeadingFragment(fragment=fragment, level=level))

    for fragment in body:
        if is_table_candidate(fragment, body, config):
            result.table_candidates.append(fragment)
        else:
            result.paragraphs.append(fragment)
    return result
