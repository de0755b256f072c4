# studyquiz/blocks.py
import logging
import re
from typing import List, Optional, Tuple

from .config import DEFAULT_PARSER_CONFIG, ParserConfig
from .models import OPTION_LABELS, QuestionType, QuizOption, QuizQuestion
from .normalize import normalize_whitespace
from .question_parser import create_question, parse_question_block

logger = logging.getLogger(__name__)

# "Question 12" / "Q12." alone on its line
_EXPLICIT_MARKER = re.compile(
    r"^[ \t]*(?:question[ \t]*|q[ \t]*)(\d{1,3})(?!\d)[ \t]*[).:\-]?[ \t]*\n", re.I | re.M
)
# "12) " / "12. " at line start
_NUMERIC_MARKER = re.compile(r"^[ \t]*(\d{1,3})(?!\d)[ \t]*[).][ \t]+", re.M)

_QUESTION_NUMBER_START = re.compile(r"^(?:question\s+\d+|q\d+)", re.I)
_VIGNETTE_START = re.compile(r"^(?:a|an)\s+\d{1,3}-year-old\b", re.I)
_CUE_START = re.compile(r"^(?:what|which|in the|next step|true or false|place the)\b", re.I)
_IMAGE_MARKER_LINE = re.compile(r"^\[IMAGE:", re.I)
_ANSWERS_HEADING = re.compile(r"^answers?$", re.I)
_LEADING_OPTION_MARKER = re.compile(r"^\(?[A-F]\)?[).:\-]\s+", re.I)
_TRUE_FALSE_TOKEN = re.compile(r"^[☐☑☒✓✔]?\s*(true|false)\.?$", re.I)
_TRUE_FALSE_STEM = re.compile(r"^true\s+or\s+false\s*[:.?]?$", re.I)


def is_image_marker_line(line: str) -> bool:
    return bool(_IMAGE_MARKER_LINE.match(line))


def is_likely_question_start(line: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> bool:
    trimmed = line.strip()
    if not trimmed or is_image_marker_line(trimmed):
        return False
    if _QUESTION_NUMBER_START.match(trimmed):
        return True
    if _VIGNETTE_START.match(trimmed):
        return True
    if _CUE_START.match(trimmed):
        return True
    return trimmed[-1] in "?:" and len(trimmed) >= config.question_start_min_length


def looks_like_option_text(line: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> bool:
    trimmed = line.strip()
    if not trimmed or is_image_marker_line(trimmed):
        return False
    if _ANSWERS_HEADING.match(trimmed):
        return False
    if is_likely_question_start(trimmed, config):
        return False
    return len(trimmed) <= config.max_option_line_length


def strip_leading_option_marker(text: str) -> str:
    return _LEADING_OPTION_MARKER.sub("", text).strip()


def true_false_value(text: str) -> Optional[bool]:
    m = _TRUE_FALSE_TOKEN.match(text.strip())
    if not m:
        return None
    return m.group(1).lower() == "true"


def find_numbered_blocks(question_section: str) -> List[Tuple[int, str]]:
    """
    (number, block_text) pairs from 'Question N' markers, else from bare
    'N)' / 'N.' markers. Empty when the section carries no numbering.
    """
    for pattern in (_EXPLICIT_MARKER, _NUMERIC_MARKER):
        matches = list(pattern.finditer(question_section))
        if not matches:
            continue
        blocks = []
        for idx, m in enumerate(matches):
            end = matches[idx + 1].start() if idx + 1 < len(matches) else len(question_section)
            blocks.append((int(m.group(1)), normalize_whitespace(question_section[m.end():end])))
        logger.debug("found %d numbered block(s) with %s", len(blocks), pattern.pattern[:24])
        return blocks
    return []


def expand_true_false_groups(
    stem_lines: List[str], option_lines: List[str], first_number: int
) -> List[QuizQuestion]:
    """
    'True or False' followed by repeating [statement, TRUE, FALSE] triples
    becomes one two-option question per statement. Needs at least two triples.
    """
    stem_text = " ".join(line for line in stem_lines if not is_image_marker_line(line))
    if not _TRUE_FALSE_STEM.match(stem_text.strip()):
        return []
    if len(option_lines) < 6 or len(option_lines) % 3:
        return []

    groups = []
    for i in range(0, len(option_lines), 3):
        statement, first, second = option_lines[i:i + 3]
        first_value, second_value = true_false_value(first), true_false_value(second)
        if true_false_value(statement) is not None:
            return []
        if first_value is None or second_value is None or first_value == second_value:
            return []
        groups.append((statement, first_value, second_value))

    images = "\n".join(line for line in stem_lines if is_image_marker_line(line))
    questions = []
    for offset, (statement, first_value, second_value) in enumerate(groups):
        options = [
            QuizOption(label="A", text="True" if first_value else "False"),
            QuizOption(label="B", text="True" if second_value else "False"),
        ]
        stem = f"{images}\n{statement}" if offset == 0 and images else statement
        question = create_question(first_number + offset, normalize_whitespace(stem), options)
        question.type = QuestionType.TRUE_FALSE
        questions.append(question)
    return questions


def parse_unnumbered_questions(
    question_section: str, config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> List[QuizQuestion]:
    """
    Segment text without question numbers: a question-start line opens a
    stem, short lines after it are options. Images printed after the options
    of one question belong to the next one.
    """
    raw_lines = [line.strip() for line in question_section.split("\n") if line.strip()]
    if not raw_lines:
        return []

    lines = raw_lines
    # leading title line
    if len(raw_lines) > 1 and not is_likely_question_start(raw_lines[0], config) \
            and is_likely_question_start(raw_lines[1], config):
        lines = raw_lines[1:]

    questions: List[QuizQuestion] = []
    pending_images: List[str] = []
    cursor = 0
    number = 1
    total = len(lines)

    while cursor < total:
        while cursor < total and not is_likely_question_start(lines[cursor], config):
            if is_image_marker_line(lines[cursor]):
                pending_images.append(lines[cursor])
            cursor += 1
        if cursor >= total:
            break

        stem_lines = pending_images + [lines[cursor]]
        pending_images = []
        cursor += 1

        while cursor < total:
            next_line = lines[cursor]
            if is_image_marker_line(next_line):
                stem_lines.append(next_line)
                cursor += 1
                continue
            if looks_like_option_text(next_line, config):
                break
            if is_likely_question_start(next_line, config) and any(l[-1] in "?:" for l in stem_lines):
                break
            stem_lines.append(next_line)
            cursor += 1

        stem_text = " ".join(l for l in stem_lines if not is_image_marker_line(l))
        uncapped = bool(_TRUE_FALSE_STEM.match(stem_text.strip()))

        option_lines: List[str] = []
        option_ends: List[int] = []
        deferred: List[str] = []
        while cursor < total:
            next_line = lines[cursor]
            if is_image_marker_line(next_line):
                if len(option_lines) >= 2:
                    deferred.append(next_line)
                else:
                    stem_lines.append(next_line)
                cursor += 1
                continue
            if len(option_lines) >= 2 and is_likely_question_start(next_line, config):
                break
            if not looks_like_option_text(next_line, config):
                if len(option_lines) >= 2:
                    break
                cursor += 1
                continue
            option_lines.append(next_line)
            cursor += 1
            option_ends.append(cursor)
            if not uncapped and len(option_lines) >= len(OPTION_LABELS):
                break

        if uncapped:
            expanded = expand_true_false_groups(stem_lines, option_lines, number)
            if len(expanded) >= 2:
                questions.extend(expanded)
                number += len(expanded)
                pending_images = deferred
                continue
            if len(option_lines) > len(OPTION_LABELS):
                # give the lines past the sixth option back to the walk
                cursor = option_ends[len(OPTION_LABELS) - 1]
                option_lines = option_lines[:len(OPTION_LABELS)]
                deferred = []

        pending_images = deferred
        if len(option_lines) < 2:
            continue

        options = [
            QuizOption(label=OPTION_LABELS[idx], text=normalize_whitespace(strip_leading_option_marker(text)))
            for idx, text in enumerate(option_lines)
        ]
        questions.append(create_question(number, normalize_whitespace("\n".join(stem_lines)), options))
        number += 1

    return questions


def extract_questions(
    question_section: str, config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> List[QuizQuestion]:
    """
    Questions of the question section, in document order. Blocks that do not
    yield a stem and two options are dropped.
    """
    blocks = find_numbered_blocks(question_section)
    if not blocks:
        questions = parse_unnumbered_questions(question_section, config)
        logger.debug("unnumbered segmentation produced %d question(s)", len(questions))
        return questions

    questions: List[QuizQuestion] = []
    last_number = 0
    for number, block_text in blocks:
        question = parse_question_block(number, block_text, config)
        if not question.stem or len(question.options) < 2:
            logger.debug("dropping block %s: no usable options", number)
            continue
        if number <= last_number:
            # repeated or out of order numbering, keep ids unique and increasing
            number = last_number + 1
            question.number = number
            question.id = f"q-{number}"
        last_number = number
        questions.append(question)
    return questions
