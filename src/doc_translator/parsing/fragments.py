"""Normalisation of raw text runs into TextFragment objects."""

import math
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError

from ..logger import logger
from .models import TextFragment


def fragment_from_transform(
    text: str,
    transform: Sequence[float],
    width: float = 0.0,
    height: float = 0.0,
    page_height: float | None = None,
) -> TextFragment:
    """Build a fragment from a text-rendering matrix ``[a, b, c, d, e, f]``.

    The font size is the dominant scale component of the matrix. Sources such
    as pdf.js report y from the bottom of the page; when ``page_height`` is
    given the baseline is flipped so y grows downwards.

    Raises:
        ValueError: If the matrix does not have six components.
    """
    if len(transform) != 6:
        raise ValueError(f"transform must have 6 components, got {len(transform)}")

    a, b, c, d, e, f = (float(v) for v in transform)
    if b == 0 and c == 0:
        font_size = max(abs(a), abs(d))
    else:
        # Rotated text: the scale is the length of the x basis vector
        font_size = math.hypot(a, b)

    y = page_height - f if page_height is not None else f
    return TextFragment(
        text=text,
        x=e,
        y=y,
        font_size=font_size,
        width=float(width or 0.0),
        height=float(height or 0.0),
    )


def flip_y(fragments: Iterable[TextFragment], page_height: float) -> list[TextFragment]:
    """Convert fragments from a bottom-up to a top-down coordinate system."""
    return [f.model_copy(update={"y": page_height - f.y}) for f in fragments]


def _coerce_one(item: Any, page_height: float | None) -> TextFragment:
    if isinstance(item, TextFragment):
        return item
    if not isinstance(item, dict):
        raise TypeError(f"unsupported fragment type: {type(item).__name__}")
    if "transform" in item and "x" not in item:
        return fragment_from_transform(
            item.get("str", item.get("text", "")),
            item["transform"],
            item.get("width", 0.0),
            item.get("height", 0.0),
            page_height,
        )
    return TextFragment.model_validate(item)


def coerce_fragments(
    raw: Iterable[Any] | None, page_height: float | None = None
) -> list[TextFragment]:
    """Validate raw fragments, dropping malformed and blank ones.

    Accepts TextFragment instances, dicts with snake_case or camelCase keys,
    and pdf.js-style items carrying ``str`` and ``transform``. A malformed
    item never aborts the page; it is skipped and logged.

    Args:
        raw: Raw fragment items for one page.
        page_height: Height used to flip pdf.js-style items, if known.

    Returns:
        Fragments with non-empty text, in input order.
    """
    fragments: list[TextFragment] = []
    skipped = 0
    for index, item in enumerate(raw or []):
        try:
            fragment = _coerce_one(item, page_height)
        except (ValidationError, ValueError, TypeError, KeyError) as e:
            skipped += 1
            logger.debug("skipping malformed fragment", fragment_index=index, error=str(e))
            continue
        if not fragment.text:
            continue
        if not all(math.isfinite(v) for v in (fragment.x, fragment.y, fragment.font_size)):
            skipped += 1
            continue
        fragments.append(fragment)

    if skipped:
        logger.debug("malformed fragments skipped", skipped=skipped, kept=len(fragments))
    return fragments


def reading_order(fragments: Iterable[TextFragment]) -> list[TextFragment]:
    """Sort fragments top-to-bottom, then left-to-right."""
    return sorted(fragments, key=lambda f: (f.y, f.x))


def group_lines(
    fragments: Iterable[TextFragment], tolerance: float
) -> list[list[TextFragment]]:
    """Group fragments sharing a baseline (within ``tolerance``) into lines.

    Lines are returned top-to-bottom with fragments sorted left-to-right.
    """
    lines: list[list[TextFragment]] = []
    for fragment in reading_order(fragments):
        if lines and abs(fragment.y - lines[-1][0].y) <= tolerance:
            lines[-1].append(fragment)
        else:
            lines.append([fragment])
    return [sorted(line, key=lambda f: f.x) for line in lines]


def line_text(line: Sequence[TextFragment]) -> str:
    return " ".join(f.text for f in line)
