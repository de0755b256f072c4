import logging
import re

from .answers import parse_answer_section
from .blocks import extract_questions
from .config import DEFAULT_PARSER_CONFIG, ParserConfig
from .merger import apply_answers
from .models import ParsingStats, Quiz
from .question_parser import is_option_line
from .sections import split_sections

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Generated Quiz"

_NUMBERED_LINE = re.compile(r"^(?:(?:question|q)\s*\d+|\d{1,3}\s*[).])", re.I)


def infer_title(question_section: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> str:
    """First of the leading three lines that is not a question or option marker."""
    lines = [line.strip() for line in question_section.split("\n") if line.strip()][:3]
    for line in lines:
        if _NUMBERED_LINE.match(line) or is_option_line(line):
            continue
        return line[:config.title_max_length]
    return DEFAULT_TITLE


def build_quiz_from_text(raw_text: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> Quiz:
    """
    Parse extracted document text into a Quiz.
    Never raises on malformed text; a document without questions gives an empty quiz.
    """
    sections = split_sections(raw_text or "", config)
    questions = extract_questions(sections.question_section, config)
    answer_map = parse_answer_section(sections.answer_section, questions)
    apply_answers(questions, answer_map, config)

    quiz = Quiz(
        title=infer_title(sections.question_section, config),
        questions=questions,
        parsing=ParsingStats.from_questions(questions, sections.has_answer_section),
    )
    logger.info(
        "parsed %d question(s), %d with answers, answer section: %s",
        quiz.parsing.total_questions,
        quiz.parsing.answers_mapped,
        quiz.parsing.detected_answer_section,
    )
    return quiz
