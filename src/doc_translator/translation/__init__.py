from .chunking import TranslationChunk, join_translated_pages, split_for_translation
from .costs import CostRecord, calculate_translation_cost
from .translator import TranslationClient, TranslationResult, count_tokens

__all__ = [
    "CostRecord",
    "TranslationChunk",
    "TranslationClient",
    "TranslationResult",
    "calculate_translation_cost",
    "count_tokens",
    "join_translated_pages",
    "split_for_translation",
]
