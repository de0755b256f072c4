"""
Gemini enrichment of parsed questions.

Questions that still lack an answer key or per-option explanations are sent
to the model in small chunks. Chunks sit in a work queue: a rate-limited or
unauthorised chunk is retried on the next model of the chain, a timed-out
chunk is split in half and re-queued until single questions time out.
The whole run honours one wall-clock budget.
"""

import json
import logging
import re
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from pydantic.alias_generators import to_camel

from .config import GeminiSettings
from .gemini_utils import (
    configure_gemini,
    GeminiAuthError,
    GeminiError,
    GeminiRateLimitError,
    GeminiTimeoutError,
    gemini_generate_json,
)
from .models import ExplanationSource, QuizQuestion

logger = logging.getLogger(__name__)

MIN_EXPLANATION_LENGTH = 25
MIN_BACKFILL_LENGTH = 5
MIN_REMAINING_S = 1.5
CALL_SAFETY_MARGIN_S = 0.25

MISSING_EXPLANATION_TEXT = (
    "Explanation not available in source. Enable Gemini with a valid API key to auto-generate rationale."
)
PLACEHOLDER_EXPLANATIONS = (
    MISSING_EXPLANATION_TEXT,
    "No explanation available for this option.",
    "Explanation not available.",
)

_LABEL = re.compile(r"^[A-F]$")

GenerateFn = Callable[[str, str, float], Awaitable[str]]


@dataclass
class EnrichmentReport:
    attempted: bool = False
    model: Optional[str] = None
    model_chain: List[str] = field(default_factory=list)
    tried_models: List[str] = field(default_factory=list)
    rate_limit_fallbacks: int = 0
    updated_questions: int = 0
    failed_chunks: int = 0
    processed_questions: int = 0
    skipped_questions: int = 0
    timed_out: bool = False
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel(key): value for key, value in asdict(self).items()}


def extract_json(text: str):
    """
    Parse model output that should be JSON but may be wrapped in prose
    or a code fence. Returns None when nothing parses.
    """
    if not text:
        return None
    trimmed = text.strip()

    if trimmed.startswith(("{", "[")):
        try:
            return json.loads(trimmed)
        except json.JSONDecodeError:
            pass

    fenced = re.search(r"```(?:json)?\s*(.*?)```", trimmed, re.I | re.S)
    if fenced:
        try:
            return json.loads(fenced.group(1).strip())
        except json.JSONDecodeError:
            return None

    first, last = trimmed.find("["), trimmed.rfind("]")
    if first >= 0 and last > first:
        try:
            return json.loads(trimmed[first:last + 1])
        except json.JSONDecodeError:
            return None
    return None


def normalize_option_labels(value) -> List[str]:
    items = value if isinstance(value, list) else [value]
    labels: List[str] = []
    for item in items:
        label = str(item or "").strip().upper()
        if _LABEL.match(label) and label not in labels:
            labels.append(label)
    return labels


def known_correct_labels(question: QuizQuestion) -> List[str]:
    return normalize_option_labels(question.correct_options) or normalize_option_labels(question.correct_option)


def is_placeholder_explanation(text: str) -> bool:
    stripped = (text or "").strip().lower()
    return any(stripped == placeholder.lower() for placeholder in PLACEHOLDER_EXPLANATIONS)


def is_replaceable_explanation(text: Optional[str]) -> bool:
    """Missing, too short to teach anything, or one of our own placeholders."""
    stripped = (text or "").strip()
    return len(stripped) < MIN_EXPLANATION_LENGTH or is_placeholder_explanation(stripped)


def has_sufficient_explanations(question: QuizQuestion) -> bool:
    if not known_correct_labels(question) or len(question.options) < 2:
        return False
    return all(not is_replaceable_explanation(question.explanations.get(o.label)) for o in question.options)


def build_prompt_payload(question: QuizQuestion) -> Dict[str, Any]:
    return {
        "number": question.number,
        "stem": question.stem,
        "options": [{"label": o.label, "text": o.text} for o in question.options],
        "knownCorrectOptions": known_correct_labels(question),
        "knownCorrectOption": question.correct_option,
        "knownExplanationForCorrect": question.source_explanation or None,
    }


def build_prompt(chunk: List[QuizQuestion]) -> str:
    payload = [build_prompt_payload(question) for question in chunk]
    return "\n".join([
        "You are helping build an NBME-style medical practice quiz.",
        "For each question, provide concise teaching explanations for every option.",
        "Only infer answer choice labels when none are supplied in knownCorrectOptions/knownCorrectOption.",
        "Return ONLY JSON as an array with this exact shape:",
        '[{"number":1,"correctOption":"A","correctOptions":["A"],"explanations":{"A":"...","B":"...","C":"...","D":"..."}}]',
        "Rules:",
        "- Use only option labels provided.",
        "- Keep each explanation practical and educational (1-3 sentences).",
        "- Explain why the correct option is right and why each incorrect option is wrong.",
        "- If knownCorrectOptions/knownCorrectOption is provided, preserve it.",
        "",
        json.dumps(payload),
    ])


def merge_generated(question: QuizQuestion, generated) -> bool:
    """
    Fold one model result into question. The answer key is only taken when
    the question had none; explanations only replace missing, short or
    placeholder text. Returns True when an explanation was written.
    """
    if not isinstance(generated, dict):
        return False

    labels = set(question.option_labels())
    if not known_correct_labels(question):
        resolved = normalize_option_labels(generated.get("correctOptions")) or \
            normalize_option_labels(generated.get("correctOption"))
        resolved = [label for label in resolved if label in labels]
        if resolved:
            question.set_correct(resolved)

    by_option = generated.get("explanations")
    if not isinstance(by_option, dict):
        return False

    added = False
    for option in question.options:
        incoming = by_option.get(option.label)
        if not isinstance(incoming, str) or not incoming.strip():
            continue
        if not is_replaceable_explanation(question.explanations.get(option.label)):
            continue
        question.explanations[option.label] = incoming.strip()
        added = True

    if added:
        question.mark_explanation_source(ExplanationSource.GEMINI)
    return added


def backfill_explanations(questions: List[QuizQuestion]) -> None:
    """Give every option some explanation text: the document's, or a placeholder."""
    for question in questions:
        for option in question.options:
            current = question.explanations.get(option.label, "")
            if len(current.strip()) >= MIN_BACKFILL_LENGTH:
                continue
            if question.source_explanation:
                question.explanations[option.label] = question.source_explanation
                if question.explanation_source == ExplanationSource.NONE:
                    question.explanation_source = ExplanationSource.DOCUMENT
            else:
                question.explanations[option.label] = MISSING_EXPLANATION_TEXT


def _chunks(items: List[QuizQuestion], size: int) -> List[List[QuizQuestion]]:
    size = max(1, size)
    return [items[i:i + size] for i in range(0, len(items), size)]


def _default_generate(settings: GeminiSettings) -> GenerateFn:
    configure_gemini(settings.api_key)

    async def generate(prompt: str, model: str, timeout_s: float) -> str:
        return await gemini_generate_json(prompt, model, timeout_s, settings.temperature)

    return generate


async def enrich_questions(
    questions: List[QuizQuestion],
    settings: Optional[GeminiSettings] = None,
    generate: Optional[GenerateFn] = None,
    clock: Callable[[], float] = time.monotonic,
) -> EnrichmentReport:
    """
    Ask Gemini for missing answer keys and explanations, updating questions in place.
    Failures are reported in the returned EnrichmentReport, never raised.
    """
    settings = settings or GeminiSettings.from_env()
    models = list(settings.model_chain)
    report = EnrichmentReport(model_chain=models)

    if not settings.api_key and generate is None:
        report.reason = "GEMINI_API_KEY is not configured."
        return report
    if not models:
        report.reason = "No Gemini model configured."
        return report

    targets = [q for q in questions if not has_sufficient_explanations(q)]
    if not targets:
        report.reason = "All questions already contain sufficient explanations."
        return report

    if settings.max_questions > 0:
        limited = targets[:settings.max_questions]
    else:
        limited = targets
    report.skipped_questions = len(targets) - len(limited)
    report.attempted = True

    if generate is None:
        generate = _default_generate(settings)

    pending: Deque[List[QuizQuestion]] = deque(_chunks(limited, settings.chunk_size))
    model_index = 0
    report.model = models[0]
    report.tried_models = [models[0]]
    exhausted_by = None
    split_count = 0
    budget_s = settings.max_ms / 1000.0
    per_call_s = settings.chunk_timeout_ms / 1000.0
    started = clock()

    while pending:
        remaining = budget_s - (clock() - started)
        if remaining <= MIN_REMAINING_S:
            report.timed_out = True
            report.failed_chunks += len(pending)
            logger.warning("enrichment budget spent with %d chunk(s) left", len(pending))
            break

        chunk = pending.popleft()
        model = models[model_index]
        timeout_s = max(MIN_REMAINING_S, min(per_call_s, remaining - CALL_SAFETY_MARGIN_S))

        try:
            items = extract_json(await generate(build_prompt(chunk), model, timeout_s))
            if not isinstance(items, list):
                raise GeminiError("Gemini returned non-JSON output.")
        except GeminiTimeoutError:
            if len(chunk) > 1:
                half = len(chunk) // 2
                pending.appendleft(chunk[half:])
                pending.appendleft(chunk[:half])
                split_count += 1
                logger.info("chunk of %d timed out on %s, splitting", len(chunk), model)
            else:
                report.failed_chunks += 1
                logger.warning("question %s timed out on %s", chunk[0].number, model)
            continue
        except (GeminiRateLimitError, GeminiAuthError) as exc:
            if model_index < len(models) - 1:
                model_index += 1
                report.rate_limit_fallbacks += 1
                report.model = models[model_index]
                if models[model_index] not in report.tried_models:
                    report.tried_models.append(models[model_index])
                pending.appendleft(chunk)
                logger.info("%s on %s, falling back to %s", exc.code, model, models[model_index])
                continue
            exhausted_by = exc.code
            report.failed_chunks += 1 + len(pending)
            logger.warning("%s on last model %s, giving up", exc.code, model)
            break
        except GeminiError as exc:
            report.failed_chunks += 1
            logger.warning("chunk failed on %s: %s", model, exc)
            continue

        by_number = {}
        for item in items:
            if isinstance(item, dict) and isinstance(item.get("number"), int):
                by_number[item["number"]] = item
        for question in chunk:
            if merge_generated(question, by_number.get(question.number)):
                report.updated_questions += 1
        report.processed_questions += len(chunk)

    reasons = []
    if report.skipped_questions:
        reasons.append(f"Limited to first {len(limited)} question(s) to fit runtime.")
    if report.timed_out:
        reasons.append("Stopped early due to runtime budget.")
    if split_count:
        reasons.append(f"Split {split_count} timed-out chunk(s).")
    if report.rate_limit_fallbacks:
        reasons.append(
            f"Rate-limit fallback used {report.rate_limit_fallbacks} time(s); active model: {report.model}."
        )
    if exhausted_by == GeminiAuthError.code:
        reasons.append("All fallback models rejected the API key.")
    elif exhausted_by:
        reasons.append("All fallback models were rate-limited.")
    if report.failed_chunks:
        reasons.append(f"{report.failed_chunks} chunk(s) failed.")
    report.reason = " ".join(reasons)
    return report
