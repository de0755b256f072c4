"""Upload processing: document -> text -> quiz -> (optional) Gemini enrichment."""

import asyncio
import logging
from typing import Any, Dict, Optional

from .config import GeminiSettings
from .enrich import EnrichmentReport, backfill_explanations, enrich_questions
from .extract_text import extract_text_from_path
from .parser import build_quiz_from_text

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 30
TIMED_SECONDS_PER_QUESTION = 90


class DocumentError(ValueError):
    """The uploaded document cannot be turned into a quiz."""


class NoQuestionsError(DocumentError):
    pass


def process_text(
    text: str,
    file_name: str = "",
    use_gemini: bool = False,
    tutor_mode: bool = True,
    timed_mode: bool = False,
    settings: Optional[GeminiSettings] = None,
    generate=None,
) -> Dict[str, Any]:
    """
    Build the quiz for already extracted text and wrap it with processing
    details and UI defaults.
    """
    if not text or len(text.strip()) < MIN_TEXT_LENGTH:
        raise DocumentError("The uploaded file appears empty or unreadable.")

    quiz = build_quiz_from_text(text)
    if not quiz.questions:
        raise NoQuestionsError(
            "No valid multiple-choice questions were detected. "
            "Check document format (Question N + answer choices)."
        )

    report = EnrichmentReport(reason="Disabled by request.")
    if use_gemini:
        report = asyncio.run(enrich_questions(quiz.questions, settings=settings, generate=generate))
        logger.info("gemini enrichment for %s: %s", file_name or "document", report.reason or "ok")

    backfill_explanations(quiz.questions)

    return {
        "quiz": quiz,
        "processing": {
            "fileName": file_name,
            "parsing": quiz.parsing.model_dump(by_alias=True),
            "gemini": report.to_dict(),
        },
        "defaults": {
            "tutorMode": tutor_mode,
            "timedMode": timed_mode,
            "timedSecondsPerQuestion": TIMED_SECONDS_PER_QUESTION,
            "timedSecondsTotal": len(quiz.questions) * TIMED_SECONDS_PER_QUESTION,
        },
    }


def process_document(path: str, original_name: str = "", use_gemini: bool = False, **kwargs) -> Dict[str, Any]:
    """Extract text from the file at path and run process_text on it."""
    text = extract_text_from_path(path, original_name or None)
    return process_text(text, file_name=original_name or path, use_gemini=use_gemini, **kwargs)
