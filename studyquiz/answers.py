"""
Answer-key parsing.

The answer section of a document is read into a map of question number ->
AnswerEntry. Keyed one-line answers ("12) B", "3: A, C") are read first,
then numbered blocks carrying an explanation body. Only when neither finds
a single usable answer, answer lines are matched to questions by position.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .models import OPTION_LABELS
from .normalize import normalize_whitespace

logger = logging.getLogger(__name__)

CHECKBOX_GLYPHS = "☐☑☒✓✔"


@dataclass(frozen=True)
class Letters:
    labels: Tuple[str, ...]


@dataclass(frozen=True)
class Numeric:
    numbers: Tuple[int, ...]

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(OPTION_LABELS[n - 1] for n in self.numbers)


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Unresolved:
    raw: str


AnswerToken = Union[Letters, Numeric, Boolean, Unresolved]

_BOOLEAN_TOKEN = re.compile(r"^[" + CHECKBOX_GLYPHS + r"]?\s*(TRUE|FALSE)$")
_LETTER_SET = re.compile(r"^\(?[A-F]\)?(?:\s*(?:[,/;&+]|\bAND\b)\s*\(?[A-F]\)?)*$")
_NUMERIC_SET = re.compile(r"^[1-6](?:\s*,\s*[1-6])*$")
_SPLIT_LETTERS = re.compile(r"[A-F]")


def _dedupe(items):
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def parse_answer_token(raw) -> AnswerToken:
    """
    Decode a raw answer-key token: true/false, letter set (A, C / B and D)
    or 1-based numeric set (1,3 -> A, C). Anything else is Unresolved.
    """
    text = str(raw or "").strip()
    token = text.upper().rstrip(".;:").strip()
    if not token:
        return Unresolved(text)

    m = _BOOLEAN_TOKEN.match(token)
    if m:
        return Boolean(m.group(1) == "TRUE")

    if _LETTER_SET.match(token):
        letters = _SPLIT_LETTERS.findall(token.replace("AND", ","))
        return Letters(tuple(_dedupe(letters)))

    if _NUMERIC_SET.match(token):
        numbers = [int(part) for part in token.split(",")]
        return Numeric(tuple(_dedupe(numbers)))

    return Unresolved(text)


def is_answer_token(raw) -> bool:
    return not isinstance(parse_answer_token(raw), Unresolved)


@dataclass
class AnswerEntry:
    """What the answer section says about one question."""

    correct_option: Optional[str] = None
    correct_options: List[str] = field(default_factory=list)
    boolean_value: Optional[bool] = None
    explanation: str = ""
    raw_answer_token: Optional[str] = None

    @property
    def has_answer(self) -> bool:
        return bool(self.correct_options) or self.boolean_value is not None

    def apply_token(self, token: AnswerToken, raw: str) -> bool:
        """Fill the answer from token unless one is already known."""
        if self.has_answer or isinstance(token, Unresolved):
            return False
        if isinstance(token, Boolean):
            self.boolean_value = token.value
        else:
            self.correct_options = list(token.labels)
            self.correct_option = self.correct_options[0]
        self.raw_answer_token = str(raw).strip()
        return True

    def offer_explanation(self, text: str) -> None:
        if text and len(text) > len(self.explanation):
            self.explanation = text

    def merge(self, other: "AnswerEntry") -> None:
        """Union another entry for the same number into this one, filling gaps only."""
        if not self.has_answer and other.has_answer:
            self.correct_option = other.correct_option
            self.correct_options = list(other.correct_options)
            self.boolean_value = other.boolean_value
            self.raw_answer_token = other.raw_answer_token
        self.offer_explanation(other.explanation)


AnswerMap = Dict[int, AnswerEntry]

# "12) B", "Q3: A, C", "4. Answer: True"
_KEYED_LINE = re.compile(
    r"^[ \t]*(?:q(?:uestion)?[ \t]*)?(\d{1,3})(?!\d)[ \t]*(?:[):\-]|\.(?!\d))[ \t]*"
    r"(?:(?:correct[ \t]+)?answer[ \t]*[:\-]?[ \t]*)?(.+?)[ \t]*$",
    re.I | re.M,
)

# start of a numbered answer block; the body runs to the next one
_BLOCK_START = re.compile(
    r"^[ \t]*(?:(?:question|q)[ \t]*(\d{1,3})(?!\d)[ \t]*[).:\-]?|(\d{1,3})(?!\d)[ \t]*(?:[):\-]|\.(?!\d)))[ \t]*",
    re.I | re.M,
)

_ANSWER_PREFIX = re.compile(
    r"(?:^|\b)(?:correct\s*answer|answer|ans)\s*[:\-]?\s*"
    r"(?-i:(\(?[A-F]\)?(?:\s*(?:[,/;&+]|and|AND)\s*\(?[A-F]\)?)*))(?![A-Za-z])"
    r"|(?:^|\b)(?:correct\s*answer|answer|ans)\s*[:\-]?\s*[" + CHECKBOX_GLYPHS + r"]?\s*(true|false)\b",
    re.I,
)
_LEADING_OPTION = re.compile(r"^(?:\(([A-F])\)|([A-F])\s*[).:\-])")
_LEADING_BOOLEAN = re.compile(r"^[" + CHECKBOX_GLYPHS + r"]?\s*(true|false)\b\s*(?:[).:\-]|$)", re.I)
_EXPLANATION_MARKER = re.compile(r"explanation\s*:\s*(.*)", re.I | re.S)
_ANSWER_HEADING = re.compile(
    r"^(?:answer key|answers and explanations|answers?|explanations|rationales)\s*:?$", re.I
)


def parse_keyed_answers(answer_section: str) -> AnswerMap:
    """One-line keys. The first resolvable key for a number wins."""
    answer_map: AnswerMap = {}
    for m in _KEYED_LINE.finditer(answer_section):
        number = int(m.group(1))
        raw = m.group(2)
        token = parse_answer_token(raw)
        if isinstance(token, Unresolved):
            continue
        answer_map.setdefault(number, AnswerEntry()).apply_token(token, raw)
    return answer_map


def parse_explanation_body(body: str) -> Tuple[AnswerToken, str, str]:
    """
    Split a numbered block body into (token, raw_token, explanation).
    """
    whole = parse_answer_token(body)
    if not isinstance(whole, Unresolved):
        return whole, body, ""

    token: AnswerToken = Unresolved(body)
    raw = ""
    explanation = body

    m = _ANSWER_PREFIX.search(body)
    if m:
        raw = m.group(1) or m.group(2)
        token = parse_answer_token(raw)
        if m.start() == 0:
            explanation = body[m.end():]
    else:
        lead = _LEADING_OPTION.match(body) or _LEADING_BOOLEAN.match(body)
        if lead:
            raw = next(group for group in lead.groups() if group)
            token = parse_answer_token(raw)
            explanation = body[lead.end():]

    marker = _EXPLANATION_MARKER.search(body)
    if marker:
        explanation = marker.group(1)
    explanation = re.sub(r"^[\s).:\-]+", "", explanation).strip()
    return token, raw, explanation


def parse_block_answers(answer_section: str) -> AnswerMap:
    """Numbered blocks whose body carries a key and/or an explanation."""
    answer_map: AnswerMap = {}
    starts = list(_BLOCK_START.finditer(answer_section))
    for idx, m in enumerate(starts):
        number = int(m.group(1) or m.group(2))
        end = starts[idx + 1].start() if idx + 1 < len(starts) else len(answer_section)
        body = normalize_whitespace(answer_section[m.end():end])
        if len(body) < 2 and not is_answer_token(body):
            continue

        token, raw, explanation = parse_explanation_body(body)
        entry = AnswerEntry()
        entry.apply_token(token, raw)
        entry.offer_explanation(explanation)
        answer_map.setdefault(number, AnswerEntry()).merge(entry)
    return answer_map


def parse_sequential_answers(answer_section: str, questions) -> AnswerMap:
    """
    Unnumbered answer keys: the k-th line that reads as an answer token
    belongs to the k-th extracted question.
    """
    answer_map: AnswerMap = {}
    if not answer_section or not questions:
        return answer_map

    lines = [line.strip() for line in normalize_whitespace(answer_section).split("\n") if line.strip()]
    heading = next((i for i, line in enumerate(lines) if _ANSWER_HEADING.match(line)), -1)
    candidates = lines[heading + 1:] if heading >= 0 else lines

    position = 0
    for line in candidates:
        if position >= len(questions):
            break
        token = parse_answer_token(line)
        if isinstance(token, Unresolved):
            continue
        entry = AnswerEntry()
        entry.apply_token(token, line)
        answer_map[questions[position].number] = entry
        position += 1
    return answer_map


def parse_answer_section(answer_section: str, questions=None) -> AnswerMap:
    """
    Answer map for a document. Keyed lines take priority, explanation
    blocks fill gaps, and the positional fallback only runs when neither
    produced a usable answer.
    """
    if not answer_section:
        return {}

    answer_map = parse_keyed_answers(answer_section)
    for number, entry in parse_block_answers(answer_section).items():
        answer_map.setdefault(number, AnswerEntry()).merge(entry)

    if any(entry.has_answer for entry in answer_map.values()):
        logger.debug("answer section: %d keyed entries", len(answer_map))
        return answer_map

    sequential = parse_sequential_answers(answer_section, questions or [])
    logger.debug("answer section: no keyed answers, %d matched by position", len(sequential))
    return sequential
