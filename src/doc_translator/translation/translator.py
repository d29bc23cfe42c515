"""Translation client for OpenAI chat completion models."""

import os
import time
from dataclasses import dataclass

import tiktoken
from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError, RateLimitError

from ..config import get_translation_model
from ..errors import TranslationError
from ..logger import logger
from ..parsing.models import COLUMN_BREAK, COLUMN_BREAK_MARKER, PAGE_BREAK_MARKER
from .chunking import (
    DEFAULT_MAX_CHUNK_TOKENS,
    TranslationChunk,
    join_translated_pages,
    split_for_translation,
    split_pages,
)
from .costs import CostRecord, calculate_translation_cost

# Constants
ENCODING_NAME = "cl100k_base"
MAX_RETRIES = 3
INITIAL_RETRY_DELAY_SECONDS = 1
TEMPERATURE = 0.3

SYSTEM_PROMPT = """You are a professional translator specialised in accurate, natural translations.

Translate the user's text from {source_language} to {target_language}, keeping:
1. The original formatting (paragraphs, lists, line breaks)
2. The tone and style of the original text
3. Technical and domain-specific terms
4. Acronyms and proper names untranslated where appropriate

Important rules:
- Preserve numbers, dates and units of measure
- Keep list markers and numbering
- Do not add or remove information
- Lines consisting only of {column_marker} or {page_marker} are layout markers: copy them unchanged, on their own line
- Reply with the translation only"""

_encoding: tiktoken.Encoding | None = None


def count_tokens(text: str) -> int:
    """Count tokens with the ``cl100k_base`` encoding.

    Args:
        text: The text to count tokens for.

    Returns:
        Token count.
    """
    global _encoding
    if _encoding is None:
        _encoding = tiktoken.get_encoding(ENCODING_NAME)
    return len(_encoding.encode(text))


@dataclass
class TranslationResult:
    """Translated text with token usage across every request made.

    Attributes:
        translated_text: Full translation with layout markers in place.
        model: Model used for every request.
        input_tokens: Prompt tokens summed over requests.
        output_tokens: Completion tokens summed over requests.
        chunk_count: Number of chunks sent for translation.
        cost: Cost of the run, if usage was reported.
    """

    translated_text: str = ""
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    chunk_count: int = 0
    cost: CostRecord | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class _Usage:
    input_tokens: int = 0
    output_tokens: int = 0


class TranslationClient:
    """Client for translating linearized documents using OpenAI's API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_chunk_tokens: int = DEFAULT_MAX_CHUNK_TOKENS,
    ):
        """Initialize the translation client.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            model: Chat model. If not provided, uses TRANSLATION_MODEL env var.
            max_chunk_tokens: Token budget of one translation request.
        """
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError(
                "OpenAI API key required: provide api_key or set OPENAI_API_KEY"
            )
        self.model = model or get_translation_model()
        self.max_chunk_tokens = max_chunk_tokens
        self._client = OpenAI(api_key=self._api_key)

    def translate(
        self, text: str, source_language: str, target_language: str
    ) -> TranslationResult:
        """Translate linearized text, one request per chunk.

        Chunks never span a page break, and page-break markers are re-inserted
        between translated pages, so the output has as many pages as the input.

        Args:
            text: Linearized document text.
            source_language: Language of the text (name or code).
            target_language: Language to translate into.

        Returns:
            TranslationResult with the translated text and token usage.

        Raises:
            TranslationError: If a request fails after retries.
        """
        if not text.strip():
            return TranslationResult(translated_text=text, model=self.model)

        chunks = split_for_translation(text, self.max_chunk_tokens, count_tokens)
        usage = _Usage()
        system_prompt = SYSTEM_PROMPT.format(
            source_language=source_language,
            target_language=target_language,
            column_marker=COLUMN_BREAK_MARKER,
            page_marker=PAGE_BREAK_MARKER,
        )

        translated = []
        start = time.perf_counter()
        for index, chunk in enumerate(chunks):
            content = self._translate_chunk(
                chunk.content, system_prompt, usage, index, len(chunks)
            )
            translated.append(
                TranslationChunk(
                    content=content, page_index=chunk.page_index, position=chunk.position
                )
            )
        duration_ms = (time.perf_counter() - start) * 1000

        cost = calculate_translation_cost(self.model, usage.input_tokens, usage.output_tokens)
        logger.info(
            "translation complete",
            model=self.model,
            chunks=len(chunks),
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=cost.cost,
            duration_ms=round(duration_ms, 2),
        )
        return TranslationResult(
            translated_text=join_translated_pages(translated, len(split_pages(text))),
            model=self.model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            chunk_count=len(chunks),
            cost=cost,
        )

    def _translate_chunk(
        self,
        content: str,
        system_prompt: str,
        usage: _Usage,
        chunk_idx: int,
        total_chunks: int,
    ) -> str:
        translated = self._complete_with_retry(
            content, system_prompt, usage, chunk_idx, total_chunks
        )
        expected = content.count(COLUMN_BREAK_MARKER)
        if translated.count(COLUMN_BREAK_MARKER) == expected:
            return translated

        # Markers were lost: translate each column segment on its own
        logger.warning(
            "layout markers not preserved, translating columns separately",
            chunk=f"{chunk_idx + 1}/{total_chunks}",
            expected_markers=expected,
        )
        segments = [s.strip() for s in content.split(COLUMN_BREAK_MARKER)]
        return COLUMN_BREAK.join(
            self._complete_with_retry(s, system_prompt, usage, chunk_idx, total_chunks)
            if s
            else ""
            for s in segments
        ).strip()

    def _complete_with_retry(
        self,
        content: str,
        system_prompt: str,
        usage: _Usage,
        chunk_idx: int,
        total_chunks: int,
    ) -> str:
        """Run one chat completion with exponential backoff retry.

        Rate limits, connection failures and 5xx responses are retried;
        other API errors fail immediately.

        Returns:
            The stripped completion text.

        Raises:
            TranslationError: If the request fails or retries are exhausted.
        """
        last_error = None

        for attempt in range(MAX_RETRIES):
            try:
                response = self._client.chat.completions.create(
                    model=self.model,
                    temperature=TEMPERATURE,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": content},
                    ],
                )
                if response.usage is not None:
                    usage.input_tokens += response.usage.prompt_tokens
                    usage.output_tokens += response.usage.completion_tokens

                logger.debug(
                    "chunk translated",
                    chunk=f"{chunk_idx + 1}/{total_chunks}",
                    model=self.model,
                )
                return (response.choices[0].message.content or "").strip()

            except RateLimitError as e:
                last_error = str(e)
                delay = INITIAL_RETRY_DELAY_SECONDS * (2**attempt)  # 1s, 2s, 4s
                logger.warning(
                    "rate limit hit, retrying",
                    attempt=attempt + 1,
                    max_retries=MAX_RETRIES,
                    delay_seconds=delay,
                    error=last_error,
                )
                time.sleep(delay)

            except APIConnectionError as e:
                last_error = str(e)
                delay = INITIAL_RETRY_DELAY_SECONDS * (2**attempt)
                logger.warning(
                    "connection error, retrying",
                    attempt=attempt + 1,
                    max_retries=MAX_RETRIES,
                    delay_seconds=delay,
                    error=last_error,
                )
                time.sleep(delay)

            except APIStatusError as e:
                last_error = str(e)
                if e.status_code < 500:
                    # 4xx errors (except 429) should not be retried
                    logger.error(
                        "translation request failed",
                        chunk=f"{chunk_idx + 1}/{total_chunks}",
                        status_code=e.status_code,
                        error=last_error,
                    )
                    raise TranslationError(f"Translation request failed: {last_error}") from e
                delay = INITIAL_RETRY_DELAY_SECONDS * (2**attempt)
                logger.warning(
                    "server error, retrying",
                    attempt=attempt + 1,
                    max_retries=MAX_RETRIES,
                    delay_seconds=delay,
                    status_code=e.status_code,
                    error=last_error,
                )
                time.sleep(delay)

            except OpenAIError as e:
                logger.error(
                    "unexpected error during translation",
                    chunk=f"{chunk_idx + 1}/{total_chunks}",
                    error=str(e),
                )
                raise TranslationError(f"Translation request failed: {e}") from e

        # All retries exhausted
        logger.error(
            "translation failed after retries",
            chunk=f"{chunk_idx + 1}/{total_chunks}",
            max_retries=MAX_RETRIES,
            error=last_error,
        )
        raise TranslationError(f"Translation failed after {MAX_RETRIES} retries: {last_error}")
