"""Grouping of scored pages into contiguous relevant ranges."""
import logging
from typing import Iterable, List, Optional, Sequence

from config import RELEVANCE_THRESHOLD
from models.ranking import PageScore, RelevantRange

logger = logging.getLogger(__name__)


def aggregate(scores: Iterable[PageScore], threshold: float = RELEVANCE_THRESHOLD) -> List[RelevantRange]:
    """
    Merge qualifying pages into ranges, most relevant range first.

    1. Keep pages with score >= threshold
    2. Walk them in page order, extending the open range while pages are consecutive
    3. Each range keeps its highest score and that page's reason (first one wins ties)
    4. Sort ranges by top score, descending

    Args:
        scores: Page scores in any order
        threshold: Minimum score for a page to count as relevant

    Returns:
        Non-overlapping ranges sorted by descending top_score
    """
    qualifying = sorted((s for s in scores if s.score >= threshold), key=lambda s: s.page)

    ranges: List[RelevantRange] = []
    current: Optional[RelevantRange] = None
    for s in qualifying:
        if current is not None and s.page <= current.end_page + 1:
            current.end_page = max(current.end_page, s.page)
            if s.score > current.top_score:
                current.top_score = s.score
                current.top_reason = s.reason
            continue

        if current is not None:
            ranges.append(current)
        current = RelevantRange(
            start_page=s.page,
            end_page=s.page,
            top_score=s.score,
            top_reason=s.reason
        )

    if current is not None:
        ranges.append(current)

    ranges.sort(key=lambda r: r.top_score, reverse=True)
    logger.debug(f"Aggregated {len(qualifying)} qualifying pages into {len(ranges)} ranges")
    return ranges


def format_range_label(
    relevant_range: RelevantRange,
    doc_type: Optional[str] = None,
    chapters: Optional[Sequence[Optional[str]]] = None
) -> str:
    """Human-readable label such as "Pages 3–4" or an EPUB chapter title."""
    start, end = relevant_range.start_page, relevant_range.end_page

    if doc_type == "epub":
        start_title = _chapter_title(chapters, start)
        end_title = _chapter_title(chapters, end)

        if start == end:
            return start_title or f"Chapter {start}"
        if start_title and end_title and start_title != end_title:
            return f"{start_title} – {end_title}"
        if start_title:
            return f"{start_title} (to chapter {end})"
        return f"Chapters {start}–{end}"

    if start == end:
        return f"Page {start}"
    return f"Pages {start}–{end}"


def _chapter_title(chapters: Optional[Sequence[Optional[str]]], page: int) -> str:
    if not chapters or page < 1 or page > len(chapters):
        return ""
    title = chapters[page - 1]
    return title.strip() if isinstance(title, str) else ""
