"""Data models for positioned text and the structured document tree."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinels recognised by downstream consumers (translation chunking, editors).
# Each is rendered on its own line inside linearized text.
PAGE_BREAK_MARKER = "---PAGE_BREAK---"
COLUMN_BREAK_MARKER = "---COLUMN_BREAK---"
PAGE_BREAK = f"\n{PAGE_BREAK_MARKER}\n"
COLUMN_BREAK = f"\n{COLUMN_BREAK_MARKER}\n"


class TextFragment(BaseModel):
    """One positioned run of text; y grows downwards."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    x: float
    y: float
    font_size: float = Field(alias="fontSize")
    width: float = 0.0
    height: float = 0.0

    @field_validator("text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return value.strip()

    @property
    def right(self) -> float:
        return self.x + self.width


class ElementType(str, Enum):
    TITLE = "title"
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    TABLE_ROW = "table-row"
    TABLE_CELL = "table-cell"
    LIST = "list"
    LIST_ITEM = "list-item"
    IMAGE = "image"
    COLUMN = "column"


HEADING_TYPES = {
    1: ElementType.HEADING1,
    2: ElementType.HEADING2,
    3: ElementType.HEADING3,
}


class ElementStyle(BaseModel):
    font_size: float | None = None
    font_family: str | None = None
    font_weight: str | None = None
    alignment: Literal["left", "center", "right", "justify"] | None = None
    color: str | None = None
    is_header: bool | None = None
    list_type: Literal["ordered", "unordered"] | None = None
    level: int | None = None


class ElementPosition(BaseModel):
    x: float
    y: float
    width: float
    height: float
    column_index: int | None = None
    row_index: int | None = None


class DocumentElement(BaseModel):
    """A node of the document tree.

    Container types keep an empty ``content`` and hold their parts in
    ``children``: table -> table-row -> table-cell, list -> list-item,
    column -> paragraph.
    """

    type: ElementType
    content: str = ""
    style: ElementStyle = Field(default_factory=ElementStyle)
    position: ElementPosition | None = None
    children: list["DocumentElement"] = Field(default_factory=list)
    element_index: int | None = None


class PageMetadata(BaseModel):
    page_number: int
    has_columns: bool = False
    column_count: int = 1


class PageStructure(BaseModel):
    page_index: int
    elements: list[DocumentElement] = Field(default_factory=list)
    metadata: PageMetadata


class PageResult(BaseModel):
    """Layout of a single page together with its reading-order text."""

    page_structure: PageStructure
    text: str = ""


class RawPage(BaseModel):
    """Fragments of one page as extracted, plus the page geometry if known."""

    fragments: list[TextFragment] = Field(default_factory=list)
    width: float | None = None
    height: float | None = None


class DocumentMetadata(BaseModel):
    page_count: int = 0
    title: str | None = None
    author: str | None = None
    creation_date: str | None = None


class DocumentStructure(BaseModel):
    type: Literal["document"] = "document"
    elements: list[DocumentElement] = Field(default_factory=list)
    pages: list[PageStructure] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    text: str = ""


class ParserOptions(BaseModel):
    extract_images: bool = False
    use_ocr: bool = False
    language: str = "por"
    skip_failed_pages: bool = False


class ParseMetadata(BaseModel):
    mime_type: str
    file_size: int
    page_count: int | None = None
    has_images: bool = False
    image_text: list[str] | None = None
    total_characters: int = 0
    characters_per_page: list[int] = Field(default_factory=list)
    structure: DocumentStructure | None = None


class ParseResult(BaseModel):
    """Output of a file parser: plain content plus metadata and structure."""

    content: str
    metadata: ParseMetadata
