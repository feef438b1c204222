"""Main entry point for ArcRider Reading Assistant API."""
import logging
from dataclasses import dataclass
from typing import List, Optional

import tiktoken
from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from config import PORT, CORS_ORIGINS, LOG_FORMAT, LOG_LEVEL, SCORING_BACKEND
from logger import setup_logging
from models.api import (
    ErrorResponse,
    ExtractResponse,
    RangeResponse,
    Ranking,
    RelevanceRequest,
    RelevanceResponse,
    SummaryRequest,
    SummaryResponse,
)
from models.ranking import PageScore
from services.aggregator import format_range_label
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.errors import ExtractionError, InputValidationError, NoTextFound, ScoringError, UnsupportedFormat
from services.llm_client import LLMClient, LLMClientError
from services.model_router import ModelRouter
from services.relevance_engine import RelevanceEngine
from services.scoring_backend import EMBEDDING, build_scoring_backend
from services.summarizer import Summarizer, select_relevant_pages

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ArcRider Reading Assistant",
    description="Extract, rank and summarise PDF, DOCX and EPUB documents",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@dataclass
class AppServices:
    """Per-process service graph, built once at startup and injected into handlers."""
    document_loader: DocumentLoader
    relevance_engine: RelevanceEngine
    summarizer: Summarizer


def build_services() -> AppServices:
    """Construct the API clients and the services that share them."""
    llm_client = LLMClient()
    logger.info("Initialized LLMClient")

    router = ModelRouter()
    embedding_model = None
    if SCORING_BACKEND.strip().lower() == EMBEDDING:
        embedding_model = EmbeddingModel()
        # Free-tier models sleep; load it before the first relevance scan
        embedding_model.warmup()
    scoring_backend = build_scoring_backend(SCORING_BACKEND, llm_client, router, embedding_model)

    # o200k_base is close enough for bounding summary input
    encoder = tiktoken.get_encoding("o200k_base")
    logger.info("Initialized tiktoken encoder (o200k_base)")

    return AppServices(
        document_loader=DocumentLoader(),
        relevance_engine=RelevanceEngine(scoring_backend),
        summarizer=Summarizer(llm_client, encoder=encoder),
    )


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    if LOG_FORMAT.lower() == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing ArcRider Reading Assistant services...")
    try:
        app.state.services = build_services()
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


def get_services(request: Request) -> AppServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services are not initialized")
    return services


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return error_response(400, "Invalid request body.")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "ArcRider Reading Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "arcrider-reading-assistant",
        "version": "1.0.0"
    }


@app.post("/extract", response_model=ExtractResponse, responses=ERROR_RESPONSES)
async def extract_endpoint(
    file: Optional[UploadFile] = File(default=None),
    services: AppServices = Depends(get_services)
):
    """
    Extract page texts from an uploaded PDF, DOCX or EPUB file.

    Returns:
        {text, pages, docType, chapters}; chapters is set for EPUB only
    """
    if file is None:
        return error_response(400, "No file uploaded.")

    try:
        doc_type = DocumentLoader.detect_format(file.filename)
        data = await file.read()
        document = await run_in_threadpool(
            services.document_loader.extract, data, doc_type, file.filename
        )
    except (UnsupportedFormat, NoTextFound) as e:
        logger.warning(f"Rejected upload {file.filename}: {e}")
        return error_response(400, str(e))
    except ExtractionError as e:
        logger.error(f"Extraction failed for {file.filename}: {e}")
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Unexpected error extracting {file.filename}: {e}", exc_info=True)
        return error_response(500, "Failed to extract document.")

    return ExtractResponse(
        text=document.text,
        pages=document.page_texts,
        doc_type=document.doc_type,
        chapters=document.chapters,
    )


@app.post("/relevance", response_model=RelevanceResponse, responses=ERROR_RESPONSES)
def relevance_endpoint(
    request: RelevanceRequest,
    services: AppServices = Depends(get_services)
):
    """
    Score every page against the user's interest and group relevant pages.

    Returns:
        {rankings: [{page, score, reason}] in page order,
         ranges: [{startPage, endPage, topScore, topReason, label}] most relevant first}
    """
    try:
        result = services.relevance_engine.rank(request.interest, request.pages)
    except InputValidationError as e:
        return error_response(400, str(e))
    except ScoringError as e:
        logger.error(f"Relevance scoring failed ({e.code}): {e.message}", extra={"details": e.details})
        return error_response(500, e.message)
    except Exception as e:
        logger.error(f"Unexpected error during relevance scan: {e}", exc_info=True)
        return error_response(500, "Failed relevance scan.")

    return RelevanceResponse(
        rankings=[Ranking(page=s.page, score=s.score, reason=s.reason) for s in result.scores],
        ranges=[
            RangeResponse(
                start_page=r.start_page,
                end_page=r.end_page,
                top_score=r.top_score,
                top_reason=r.top_reason,
                label=format_range_label(r, request.doc_type, request.chapters),
            )
            for r in result.ranges
        ],
    )


@app.post("/summary", response_model=SummaryResponse, responses=ERROR_RESPONSES)
def summary_endpoint(
    request: SummaryRequest,
    services: AppServices = Depends(get_services)
):
    """
    Summarise the whole document, a selected page range, or the relevant pages.

    Modes:
        full: summarise docPages
        pages: summarise selectedPages
        relevant: summarise the best-ranked docPages given rankings
    """
    try:
        pages = _pages_for_summary(request)
        summary = services.summarizer.summarize(pages)
    except InputValidationError as e:
        return error_response(400, str(e))
    except LLMClientError as e:
        logger.error(f"Summary generation failed: {e.error.code} {e.error.message}")
        return error_response(500, "Failed to generate summary.")
    except Exception as e:
        logger.error(f"Unexpected summary error: {e}", exc_info=True)
        return error_response(500, "Failed to generate summary.")

    return SummaryResponse(summary=summary)


def _pages_for_summary(request: SummaryRequest) -> List[str]:
    if request.mode == "full":
        if not request.doc_pages:
            raise InputValidationError("docPages must be a non-empty array when mode is 'full'.")
        return [p or "" for p in request.doc_pages]

    if request.mode == "pages":
        if not request.selected_pages:
            raise InputValidationError(
                "selectedPages must be a non-empty array when mode is 'pages'."
            )
        return [p or "" for p in request.selected_pages]

    if request.mode == "relevant":
        if not request.doc_pages or not request.rankings:
            raise InputValidationError(
                "docPages and rankings must be non-empty arrays when mode is 'relevant'."
            )
        selected = select_relevant_pages(
            [p or "" for p in request.doc_pages],
            [PageScore(page=r.page, score=r.score, reason=r.reason or "") for r in request.rankings],
        )
        if not selected:
            raise InputValidationError(
                "No sections with a relevance score of 50 or higher to summarise."
            )
        return selected

    raise InputValidationError("Invalid mode. Expected 'full', 'pages' or 'relevant'.")


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting ArcRider Reading Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
