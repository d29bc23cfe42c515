"""Text chunking utilities for the translation pipeline."""

import re
from collections.abc import Callable, Sequence

from pydantic import BaseModel

from ..parsing.models import PAGE_BREAK, PAGE_BREAK_MARKER

DEFAULT_MAX_CHUNK_TOKENS = 2000

_PAGE_SPLIT = re.compile(r"\s*" + re.escape(PAGE_BREAK_MARKER) + r"\s*")


class TranslationChunk(BaseModel):
    """A chunk of one page's text, sized for a single translation request."""

    content: str
    page_index: int
    position: int


def estimate_tokens(text: str) -> int:
    """Estimate token count for a text string.

    Uses the approximation of 4 characters per token.

    Args:
        text: The text to estimate tokens for.

    Returns:
        Estimated token count.
    """
    return len(text) // 4


def fixed_size_chunking(
    text: str, chunk_size: int = 1000, overlap: int = 200
) -> list[str]:
    """Split text into fixed-size chunks with overlap.

    Args:
        text: The text to chunk.
        chunk_size: Maximum characters per chunk.
        overlap: Number of overlapping characters between chunks.

    Returns:
        List of text chunks.
    """
    if not text or chunk_size <= 0:
        return []

    if overlap < 0:
        raise ValueError("overlap must be non-negative")

    if overlap >= chunk_size:
        raise ValueError("overlap must be less than chunk_size to avoid infinite loops")

    if len(text) <= chunk_size:
        return [text]

    chunks = []
    start = 0
    while start < len(text):
        end = start + chunk_size

        # Try to break at word boundary
        if end < len(text):
            # Look for last space within chunk
            last_space = text.rfind(" ", start, end)
            if last_space > start:
                end = last_space

        chunks.append(text[start:end].strip())

        # Break after processing the final chunk
        if end >= len(text):
            break

        start = end - overlap

    return [c for c in chunks if c]


def _cut_to_budget(
    text: str, budget: int, measure: Callable[[str], int], chunk_size: int
) -> list[str]:
    pieces = []
    for piece in fixed_size_chunking(text, chunk_size, overlap=0):
        size = measure(piece)
        if size <= budget or len(piece) <= 1:
            pieces.append(piece)
            continue
        # Shrink in proportion to the overshoot; always strictly smaller
        smaller = max(1, min(len(piece) - 1, len(piece) * budget // size))
        pieces.extend(_cut_to_budget(piece, budget, measure, smaller))
    return pieces


def pack_paragraphs(
    text: str,
    budget: int,
    measure: Callable[[str], int],
) -> list[str]:
    """Merge consecutive paragraphs into chunks whose measured size fits a budget.

    A paragraph that alone exceeds the budget is cut with fixed-size chunking,
    first at 4 characters per unit of ``measure``; any piece that still
    measures over the budget (dense scripts) is cut again until it fits.
    """
    if not text:
        return []

    # Split by double newlines (paragraph boundaries)
    paragraphs = re.split(r"\n\s*\n", text)
    paragraphs = [p.strip() for p in paragraphs if p.strip()]

    chunks = []
    current_chunk: list[str] = []
    current_size = 0

    for para in paragraphs:
        para_size = measure(para)

        # If single paragraph exceeds max, use fixed-size chunking
        if para_size > budget:
            # Flush current chunk first
            if current_chunk:
                chunks.append("\n\n".join(current_chunk))
                current_chunk = []
                current_size = 0
            char_budget = budget if measure is len else budget * 4
            chunks.extend(_cut_to_budget(para, budget, measure, char_budget))
            continue

        # Check if adding this paragraph exceeds max
        new_size = current_size + para_size + (2 if current_chunk else 0)
        if new_size > budget and current_chunk:
            chunks.append("\n\n".join(current_chunk))
            current_chunk = []
            current_size = 0

        current_chunk.append(para)
        current_size += para_size + (2 if len(current_chunk) > 1 else 0)

    # Flush remaining
    if current_chunk:
        chunks.append("\n\n".join(current_chunk))

    return chunks


def split_pages(text: str) -> list[str]:
    """Split linearized document text at its page-break markers."""
    if not text:
        return []
    return [page.strip() for page in _PAGE_SPLIT.split(text)]


def split_for_translation(
    text: str,
    max_tokens: int = DEFAULT_MAX_CHUNK_TOKENS,
    count_tokens: Callable[[str], int] = estimate_tokens,
) -> list[TranslationChunk]:
    """Chunk linearized text for translation without crossing page boundaries.

    Pages are split at the page-break marker first, so no chunk ever contains
    one. Column-break markers stay inside their chunk, on their own line.
    Within a page, paragraphs are packed up to ``max_tokens``.

    Args:
        text: Linearized document text.
        max_tokens: Token budget per chunk.
        count_tokens: Token counter; defaults to a character-based estimate.

    Returns:
        Chunks in document order, each tagged with its page index.
    """
    if max_tokens <= 0:
        raise ValueError("max_tokens must be positive")

    chunks = []
    position = 0
    for page_index, page in enumerate(split_pages(text)):
        for content in pack_paragraphs(page, max_tokens, count_tokens):
            chunks.append(
                TranslationChunk(content=content, page_index=page_index, position=position)
            )
            position += 1
    return chunks


def join_translated_pages(
    chunks: Sequence[TranslationChunk], page_count: int
) -> str:
    """Reassemble translated chunks into page texts joined by page-break markers.

    Pages with no chunk (empty in the source) are kept empty so page indices
    line up with the source document.
    """
    pages: list[list[str]] = [[] for _ in range(page_count)]
    for chunk in sorted(chunks, key=lambda c: c.position):
        pages[chunk.page_index].append(chunk.content)
    return PAGE_BREAK.join("\n\n".join(parts) for parts in pages)
