"""Applies the answer map onto parsed questions and settles question types."""

import logging
import re
from typing import List, Optional

from .answers import CHECKBOX_GLYPHS, AnswerEntry, AnswerMap
from .blocks import is_likely_question_start
from .config import DEFAULT_PARSER_CONFIG, ParserConfig
from .models import OPTION_LABELS, ExplanationSource, QuestionType, QuizOption, QuizQuestion

logger = logging.getLogger(__name__)

_MULTI_SELECT_CUES = re.compile(
    r"select all that apply|choose all that apply|which\b[^?]*\bare correct|all of the following are true",
    re.I,
)
_OPTION_MARKER_START = re.compile(r"^\(?[A-F]\)?[).:\-]\s", re.I)


def _reads_as(text: str, word: str) -> bool:
    return bool(re.match(r"^\s*[" + CHECKBOX_GLYPHS + r"]?\s*" + word + r"\b", text, re.I))


def declared_labels(entry: AnswerEntry) -> List[str]:
    if entry.correct_options:
        return list(entry.correct_options)
    return [entry.correct_option] if entry.correct_option else []


def recover_leading_option(
    question: QuizQuestion, missing: List[str], config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> bool:
    """
    The answer key names the label right after the last option: the first
    option was probably folded into the stem after its colon. Split it back
    out as option A and shift the others down one label.
    """
    count = len(question.options)
    if not 2 <= count < len(OPTION_LABELS) or len(missing) != 1:
        return False
    last_label = question.options[-1].label
    if last_label not in OPTION_LABELS[:-1]:
        return False
    if missing[0] != OPTION_LABELS[OPTION_LABELS.index(last_label) + 1]:
        return False

    head, sep, clause = question.stem.rpartition(":")
    clause = clause.strip()
    if not sep or not head.strip():
        return False
    if not config.recovery_clause_min_length <= len(clause) <= config.recovery_clause_max_length:
        return False
    if clause.endswith("?") or not re.search(r"\s", clause):
        return False
    if is_likely_question_start(clause, config) or _OPTION_MARKER_START.match(clause):
        return False

    texts = [clause] + [option.text for option in question.options]
    question.stem = f"{head.strip()}:"
    question.options = [QuizOption(label=OPTION_LABELS[idx], text=text) for idx, text in enumerate(texts)]
    logger.debug("question %s: recovered leading option from stem", question.number)
    return True


def boolean_label(question: QuizQuestion, value: bool) -> Optional[str]:
    """Option whose text reads True/False; A for true and B for false otherwise."""
    word = "true" if value else "false"
    for option in question.options:
        if _reads_as(option.text, word):
            return option.label
    fallback = "A" if value else "B"
    return fallback if question.option(fallback) else None


def resolve_correct_options(question: QuizQuestion, entry: AnswerEntry) -> List[str]:
    labels = set(question.option_labels())
    from_list = [label for label in entry.correct_options if label in labels]
    if from_list:
        return from_list
    if entry.correct_option and entry.correct_option in labels:
        return [entry.correct_option]
    if entry.boolean_value is not None:
        label = boolean_label(question, entry.boolean_value)
        return [label] if label else []
    return []


def is_true_false_pair(options: List[QuizOption]) -> bool:
    if len(options) != 2:
        return False
    texts = sorted(
        re.sub(r"^[" + CHECKBOX_GLYPHS + r"]\s*", "", option.text).strip().rstrip(".").lower()
        for option in options
    )
    return texts == ["false", "true"]


def classify_question_type(question: QuizQuestion) -> QuestionType:
    if len(question.correct_options) > 1:
        return QuestionType.MULTI_SELECT
    if is_true_false_pair(question.options):
        return QuestionType.TRUE_FALSE
    if _MULTI_SELECT_CUES.search(question.stem):
        return QuestionType.MULTI_SELECT
    return QuestionType.SINGLE_SELECT


def apply_answers(
    questions: List[QuizQuestion], answer_map: AnswerMap, config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> None:
    """Finalize questions in place."""
    for question in questions:
        entry = answer_map.get(question.number)
        embedded = [label for label in question.correct_options if question.option(label)]
        question.set_correct(embedded)

        if entry is not None:
            missing = [label for label in declared_labels(entry) if not question.option(label)]
            if missing:
                recover_leading_option(question, missing, config)

            resolved = resolve_correct_options(question, entry)
            if resolved:
                question.set_correct(resolved)
            if entry.raw_answer_token:
                question.raw_answer_token = entry.raw_answer_token

            if entry.explanation:
                question.source_explanation = entry.explanation
                question.mark_explanation_source(ExplanationSource.DOCUMENT)
                if question.correct_option:
                    question.explanations[question.correct_option] = entry.explanation

        question.type = classify_question_type(question)
