"""Runtime settings and tunable layout heuristics."""

import os

from pydantic import BaseModel, Field

# Service settings, read from the environment at the point of use
DEFAULT_TRANSLATION_MODEL = "gpt-4o-mini"
DEFAULT_OCR_LANGUAGE = "por"
DEFAULT_MAX_UPLOAD_SIZE_MB = 50
DEFAULT_PARSE_WORKERS = 1

LAYOUT_ENV_PREFIX = "LAYOUT_"


def get_translation_model() -> str:
    return os.getenv("TRANSLATION_MODEL", DEFAULT_TRANSLATION_MODEL)


def get_ocr_language() -> str:
    return os.getenv("OCR_LANGUAGE", DEFAULT_OCR_LANGUAGE)


def get_max_upload_size() -> int:
    """Maximum accepted upload size in bytes."""
    return int(os.getenv("MAX_UPLOAD_SIZE_MB", DEFAULT_MAX_UPLOAD_SIZE_MB)) * 1024 * 1024


def get_parse_workers() -> int:
    """Number of threads used to lay out independent pages of one document."""
    return max(1, int(os.getenv("PARSE_WORKERS", DEFAULT_PARSE_WORKERS)))


class LayoutConfig(BaseModel):
    """Thresholds for page-layout reconstruction.

    All distances are in PDF units (points). The defaults are the values the
    heuristics were tuned with; none of them is a hard contract.
    """

    # Column detection
    column_threshold: float = Field(default=30.0, gt=0)
    min_column_width: float = Field(default=150.0, ge=0)

    # Table-cell candidate detection
    row_tolerance: float = Field(default=2.0, ge=0)
    gap_uniformity_tolerance: float = Field(default=10.0, ge=0)
    min_aligned_peers: int = Field(default=2, ge=1)

    # Table assembly
    table_row_tolerance: float = Field(default=5.0, ge=0)
    table_join_distance: float = Field(default=30.0, ge=0)
    table_header_font_size: float = 12.0

    # Headings
    default_heading_sizes: tuple[float, float, float] = (20.0, 16.0, 14.0)

    # Linearization
    line_gap_threshold: float = Field(default=5.0, ge=0)
    paragraph_gap_multiplier: float = Field(default=3.0, ge=1)
    title_font_ratio: float = Field(default=0.8, gt=0, le=1)
    title_top_ratio: float = Field(default=0.15, gt=0, le=1)
    page_number_top_ratio: float = Field(default=0.06, gt=0, le=1)
    page_number_center_tolerance: float = Field(default=0.1, gt=0, le=0.5)

    # Page geometry used when the source does not report one (A4)
    page_width: float = Field(default=595.0, gt=0)
    page_height: float = Field(default=842.0, gt=0)

    # Container formats without native pagination
    max_table_rows_per_page: int = Field(default=10, ge=1)

    @property
    def paragraph_gap_threshold(self) -> float:
        return self.line_gap_threshold * self.paragraph_gap_multiplier

    @classmethod
    def from_env(cls) -> "LayoutConfig":
        """Build a config, overriding defaults from LAYOUT_<FIELD> variables.

        Example:
            LAYOUT_COLUMN_THRESHOLD=40 LAYOUT_DEFAULT_HEADING_SIZES=22,18,15
        """
        overrides: dict[str, object] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{LAYOUT_ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if name == "default_heading_sizes":
                overrides[name] = tuple(float(part) for part in raw.split(","))
            else:
                overrides[name] = raw
        return cls.model_validate(overrides)


DEFAULT_LAYOUT_CONFIG = LayoutConfig()
