"""
Command-line relevance scan for ArcRider Reading Assistant.

This script:
1. Extracts page texts from a local PDF, DOCX or EPUB file
2. Scores every page against an interest with the configured backend
3. Prints the relevant page ranges, most relevant first
4. Optionally summarises the relevant pages

Usage:
    python rank_document.py book.epub "home loans" [--backend embedding] [--threshold 40] [--summary]
"""
import argparse
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

import tiktoken

from config import SCORING_BACKEND, RELEVANCE_THRESHOLD
from services.aggregator import format_range_label
from services.document_loader import DocumentLoader
from services.embedding_model import EmbeddingModel
from services.errors import ExtractionError, InputValidationError, ScoringError
from services.llm_client import LLMClient, LLMClientError
from services.model_router import ModelRouter
from services.relevance_engine import RelevanceEngine
from services.scoring_backend import EMBEDDING, RUBRIC, build_scoring_backend
from services.summarizer import Summarizer, select_relevant_pages

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find the pages of a document relevant to an interest")
    parser.add_argument("path", help="PDF, DOCX or EPUB file")
    parser.add_argument("interest", help="What you are looking for")
    parser.add_argument(
        "--backend",
        choices=[RUBRIC, EMBEDDING],
        default=SCORING_BACKEND,
        help=f"Scoring backend (default: {SCORING_BACKEND})"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=RELEVANCE_THRESHOLD,
        help=f"Minimum relevance score (default: {RELEVANCE_THRESHOLD:g})"
    )
    parser.add_argument("--summary", action="store_true", help="Summarise the relevant pages")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run one relevance scan and print the result."""
    args = parse_args(argv)
    path = Path(args.path)

    try:
        loader = DocumentLoader()
        doc_type = loader.detect_format(path.name)
        document = loader.extract(path.read_bytes(), doc_type, path.name)
        print(f"{document.filename}: {document.total_pages} pages ({document.doc_type})")

        llm_client = LLMClient()
        embedding_model = EmbeddingModel() if args.backend == EMBEDDING else None
        backend = build_scoring_backend(args.backend, llm_client, ModelRouter(), embedding_model)
        engine = RelevanceEngine(backend, threshold=args.threshold)

        result = engine.rank(args.interest, document.page_texts)
    except (OSError, ExtractionError, InputValidationError, ValueError) as e:
        logger.error(f"Cannot rank {path}: {e}")
        return 2
    except ScoringError as e:
        logger.error(f"Relevance scoring failed ({e.code}): {e.message}")
        return 1

    if not result.ranges:
        print(f"No pages scored {args.threshold:g} or higher.")
        return 0

    for relevant_range in result.ranges:
        label = format_range_label(relevant_range, document.doc_type, document.chapters)
        print(f"{relevant_range.top_score:6.1f}  {label}")
        if relevant_range.top_reason:
            print(f"        {relevant_range.top_reason}")

    if args.summary:
        selected = select_relevant_pages(document.page_texts, result.scores)
        if not selected:
            print("\nNo sections with a relevance score of 50 or higher to summarise.")
            return 0
        summarizer = Summarizer(llm_client, encoder=tiktoken.get_encoding("o200k_base"))
        try:
            print("\n" + summarizer.summarize(selected))
        except LLMClientError as e:
            logger.error(f"Summary generation failed: {e.error.message}")
            return 1

    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
