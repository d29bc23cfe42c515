"""FastAPI REST API for document parsing and translation."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import get_max_upload_size, get_ocr_language, get_parse_workers
from .errors import DocumentParseError, TranslationError, UnsupportedFileTypeError
from .logger import clear_context, logger, set_context
from .parsing import OCRService, ParseResult, ParserOptions, parse_file
from .parsing.dispatch import PARSERS, normalize_mime_type
from .translation import CostRecord, TranslationClient

# --- Request/Response Models ---


class TranslateResponse(BaseModel):
    translated_text: str
    source_language: str
    target_language: str
    model: str
    page_count: int
    input_tokens: int
    output_tokens: int
    cost: CostRecord | None = None


class HealthResponse(BaseModel):
    status: str
    checks: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    code: str
    message: str


# --- App State ---

ocr_service: OCRService | None = None
_translation_client: TranslationClient | None = None


def get_translation_client() -> TranslationClient:
    """Lazy initialization of translation client."""
    global _translation_client
    if _translation_client is None:
        _translation_client = TranslationClient()
    return _translation_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global ocr_service

    logger.info("starting server", parse_workers=get_parse_workers())
    ocr_service = OCRService()

    yield

    if ocr_service:
        ocr_service.close()
    logger.info("server shutdown")


app = FastAPI(
    title="Document Translation API",
    description="Layout-aware document parsing and translation API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Exception Handlers ---


@app.exception_handler(UnsupportedFileTypeError)
async def unsupported_file_type_handler(request, exc: UnsupportedFileTypeError):
    return JSONResponse(
        status_code=415,
        content=ErrorResponse(code="UNSUPPORTED_FILE_TYPE", message=str(exc)).model_dump(),
    )


@app.exception_handler(DocumentParseError)
async def document_parse_handler(request, exc: DocumentParseError):
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(code="PARSE_FAILED", message=str(exc)).model_dump(),
    )


@app.exception_handler(TranslationError)
async def translation_handler(request, exc: TranslationError):
    return JSONResponse(
        status_code=502,
        content=ErrorResponse(code="TRANSLATION_FAILED", message=str(exc)).model_dump(),
    )


# --- Health Endpoints ---


@app.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check."""
    return HealthResponse(status="healthy")


# --- Document Endpoints ---


def resolve_mime_type(content_type: str | None, filename: str | None) -> str:
    """Pick the parser key for an upload.

    The declared content type wins when a parser is registered for it;
    generic or unknown types fall back to the file extension.
    """
    declared = normalize_mime_type(content_type or "")
    if declared in PARSERS:
        return declared
    suffix = Path(filename or "").suffix
    if suffix:
        return normalize_mime_type(suffix)
    return declared or "application/octet-stream"


async def _read_upload(file: UploadFile) -> bytes:
    max_size = get_max_upload_size()
    # Check declared size first, then the bytes actually received
    if file.size and file.size > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
        )
    data = await file.read()
    if len(data) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)}MB",
        )
    return data


async def _parse_upload(file: UploadFile, options: ParserOptions) -> ParseResult:
    data = await _read_upload(file)
    mime_type = resolve_mime_type(file.content_type, file.filename)
    # Run parsing in thread pool to avoid blocking event loop
    return await asyncio.to_thread(
        parse_file, data, mime_type, options, ocr_service=ocr_service
    )


@app.post("/api/v1/parse", response_model=ParseResult)
async def parse_document_upload(
    file: UploadFile = File(...),
    use_ocr: bool = Form(False),
    language: str | None = Form(None),
):
    """Parse an uploaded PDF, DOCX or text file into text and structure."""
    set_context(filename=file.filename)
    try:
        options = ParserOptions(use_ocr=use_ocr, language=language or get_ocr_language())
        result = await _parse_upload(file, options)
        logger.info(
            "parse request handled",
            mime_type=result.metadata.mime_type,
            page_count=result.metadata.page_count,
        )
        return result
    finally:
        clear_context()


@app.post("/api/v1/translate", response_model=TranslateResponse)
async def translate_document_upload(
    file: UploadFile = File(...),
    source_language: str = Form(...),
    target_language: str = Form(...),
):
    """Parse an uploaded file and translate its linearized text."""
    set_context(filename=file.filename)
    try:
        try:
            client = get_translation_client()
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e)) from e

        parsed = await _parse_upload(file, ParserOptions())
        # Run translation in thread pool to avoid blocking event loop (LLM calls)
        result = await asyncio.to_thread(
            client.translate, parsed.content, source_language, target_language
        )
        logger.info(
            "translate request handled",
            page_count=parsed.metadata.page_count,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
        )
        return TranslateResponse(
            translated_text=result.translated_text,
            source_language=source_language,
            target_language=target_language,
            model=result.model,
            page_count=parsed.metadata.page_count or 0,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            cost=result.cost,
        )
    finally:
        clear_context()
