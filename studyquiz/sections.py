import logging
import re
from dataclasses import dataclass

from .config import DEFAULT_PARSER_CONFIG, ParserConfig
from .normalize import normalize_whitespace

logger = logging.getLogger(__name__)

_ANSWER_HEADING = re.compile(
    r"^[ \t]*(?:answer key|answers and explanations|answers|explanations|rationales)\b[^\n]{0,40}$",
    re.I | re.M,
)
# "12) Answer: B", "3. C", "Q4 - D"
_ANSWER_LIKE_LINE = re.compile(
    r"^\s*(?:q(?:uestion)?\s*)?\d{1,3}\s*[).:\-]?\s*(?:answer\s*[:\-]\s*)?(?-i:[A-F])(?=\s*(?:$|[).,;:\-]))",
    re.I,
)


@dataclass
class Sections:
    question_section: str
    answer_section: str = ""

    @property
    def has_answer_section(self) -> bool:
        return bool(self.answer_section)


def find_answer_heading(text: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> int:
    """Offset of the earliest answer heading past the leading part of the document, or -1."""
    floor = len(text) * config.heading_min_fraction
    for m in _ANSWER_HEADING.finditer(text):
        if m.start() > floor:
            return m.start()
    return -1


def scan_for_answer_block(text: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> int:
    """
    Without a heading, look for a dense run of 'N) X' lines in the back
    part of the document. Returns the offset of the window start, or -1.
    """
    lines = text.split("\n")
    for i in range(int(len(lines) * config.scan_start_fraction), len(lines)):
        window = lines[i:i + config.scan_window]
        hits = sum(1 for line in window if _ANSWER_LIKE_LINE.match(line))
        if hits >= config.scan_min_hits:
            return len("\n".join(lines[:i]))
    return -1


def split_sections(raw_text: str, config: ParserConfig = DEFAULT_PARSER_CONFIG) -> Sections:
    text = normalize_whitespace(raw_text)

    start = find_answer_heading(text, config)
    how = "heading"
    if start < 0:
        start = scan_for_answer_block(text, config)
        how = "answer-line scan"
    if start < 0:
        logger.debug("no answer section found")
        return Sections(question_section=text)

    logger.debug("answer section at offset %d (%s)", start, how)
    return Sections(
        question_section=text[:start].strip(),
        answer_section=text[start:].strip(),
    )
