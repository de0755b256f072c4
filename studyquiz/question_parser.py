import logging
import re
from typing import List, Optional, Tuple

from .answers import Letters, parse_answer_token
from .models import OPTION_LABELS, QuizOption, QuizQuestion
from .normalize import normalize_whitespace
from .config import DEFAULT_PARSER_CONFIG, ParserConfig

logger = logging.getLogger(__name__)

_IMAGE_EXT = r"(?:png|jpe?g|gif|webp|bmp|svg)"
_IMAGE_PATH_TAIL = re.compile(r"\." + _IMAGE_EXT + r"(?:\?[^)\s]*)?$", re.I)
_IMAGE_FILE_NAME = re.compile(r"^[^\s/]+?\." + _IMAGE_EXT + r"$", re.I)

_MARKDOWN_IMAGE = re.compile(r"!\[[^\]]*]\(([^)]+)\)")
_IMAGE_MARKER = re.compile(r"\[IMAGE:([^\]]+)\]", re.I)
_IMAGE_CAPTION_LINE = re.compile(r"(?:^|\n)[ \t]*(?:image|figure)[ \t]*[:\-][ \t]*([^\n]+)", re.I)
_BARE_IMAGE_LINE = re.compile(
    r"(?:^|\n)[ \t]*((?:https?://|/|\./|\.\./)?[^\s]+\." + _IMAGE_EXT + r"(?:\?[^\s]+)?)[ \t]*(?=\n|$)",
    re.I,
)

OPTION_LINE = re.compile(r"^\s*([A-F])[).:]\s+(.*)$")
EMBEDDED_ANSWER_LINE = re.compile(r"^(?:correct\s*answer|answer)\s*[:\-]\s*(.+)$", re.I)
_ANSWER_ANYWHERE = re.compile(r"\b(?:correct\s*)?answer\s*[:\-]?\s*(?-i:([A-F]))\b", re.I)
_INLINE_OPTION = re.compile(r"\(([A-F])\)\s*(.*?)(?=\([A-F]\)|$)", re.S)


def is_option_line(line: str) -> bool:
    return bool(OPTION_LINE.match(line))


def maybe_push_image(images: List[str], raw_source) -> None:
    """Append a recognised image reference to images, keeping order and no duplicates."""
    if not raw_source:
        return
    source = str(raw_source).strip().rstrip("),.;")
    if not source:
        return

    is_data_url = bool(re.match(r"^data:image/", source, re.I))
    is_http = bool(re.match(r"^https?://", source, re.I)) and bool(_IMAGE_PATH_TAIL.search(source))
    is_relative = bool(re.match(r"^(?:/|\./|\.\./)", source)) and bool(_IMAGE_PATH_TAIL.search(source))
    is_file_name = bool(_IMAGE_FILE_NAME.match(source))

    if not (is_data_url or is_http or is_relative or is_file_name):
        return
    if source not in images:
        images.append(source)


def extract_image_refs(text: str) -> Tuple[str, List[str]]:
    """
    Strip image references out of text.
    Returns (cleaned_text, images) where images keeps document order.
    """
    images: List[str] = []

    def _inline(match):
        maybe_push_image(images, match.group(1))
        return ""

    def _caption(match):
        candidate = match.group(1).strip().split()
        maybe_push_image(images, candidate[0] if candidate else "")
        return "\n"

    def _bare(match):
        maybe_push_image(images, match.group(1))
        return "\n"

    cleaned = str(text or "")
    cleaned = _MARKDOWN_IMAGE.sub(_inline, cleaned)
    cleaned = _IMAGE_MARKER.sub(_inline, cleaned)
    cleaned = _IMAGE_CAPTION_LINE.sub(_caption, cleaned)
    cleaned = _BARE_IMAGE_LINE.sub(_bare, cleaned)
    return normalize_whitespace(cleaned), images


def labels_from_answer_text(raw: str) -> List[str]:
    """Letter labels named by an embedded 'Answer: ...' value, if any."""
    token = parse_answer_token(raw)
    if isinstance(token, Letters):
        return list(token.labels)
    return []


def create_question(
    number: int,
    stem: str,
    options: List[QuizOption],
    embedded_answer: Optional[List[str]] = None,
) -> QuizQuestion:
    """Build a QuizQuestion, pulling image references out of the stem and every option."""
    clean_stem, images = extract_image_refs(stem)

    clean_options = []
    for option in options:
        option_text, option_images = extract_image_refs(option.text)
        for source in option_images:
            maybe_push_image(images, source)
        clean_options.append(QuizOption(label=option.label, text=option_text))

    question = QuizQuestion(
        id=f"q-{number}",
        number=number,
        stem=clean_stem,
        images=images,
        options=clean_options,
    )
    question.set_correct(embedded_answer or [])
    return question


def parse_labeled_options(lines: List[str]) -> Tuple[str, List[QuizOption], List[str]]:
    """
    Stem is everything before the first 'A)' style line; every option line
    opens a new option and continuation lines are folded into the current one.

    Labels are kept as printed: 'B) ... C) ...' gives labels B and C, not a
    sequence relabeled from A, because answer keys name the printed letters.
    A repeated label or a seventh option line ends the option region; the
    rest of the block is text the block split missed.
    """
    first = next((i for i, line in enumerate(lines) if is_option_line(line)), -1)
    if first < 0:
        return "\n".join(lines), [], []

    stem = normalize_whitespace("\n".join(lines[:first]))
    options: List[QuizOption] = []
    embedded: List[str] = []
    seen: List[str] = []
    current = None

    for raw_line in lines[first:]:
        line = raw_line.strip()
        if not line:
            continue
        m = OPTION_LINE.match(line)
        if m:
            if m.group(1) in seen or len(seen) >= len(OPTION_LABELS):
                logger.debug("option region ends at repeated label %s", m.group(1))
                break
            seen.append(m.group(1))
            if current:
                options.append(QuizOption(label=current[0], text=normalize_whitespace(current[1])))
            current = [m.group(1), m.group(2)]
            continue

        answer_line = EMBEDDED_ANSWER_LINE.match(line)
        if answer_line and labels_from_answer_text(answer_line.group(1)):
            if not embedded:
                embedded = labels_from_answer_text(answer_line.group(1))
            continue

        if current:
            current[1] = f"{current[1]} {line}".strip()
        else:
            stem = f"{stem} {line}".strip()

    if current:
        options.append(QuizOption(label=current[0], text=normalize_whitespace(current[1])))
    return stem, options, embedded


def parse_inline_options(block_text: str) -> Tuple[str, List[QuizOption]]:
    """'Stem (A) one (B) two' style options anywhere in the block."""
    matches = []
    for m in _INLINE_OPTION.finditer(block_text):
        if any(m.group(1) == seen.group(1) for seen in matches) or len(matches) >= len(OPTION_LABELS):
            break
        matches.append(m)
    if len(matches) < 2:
        return block_text.strip(), []
    stem = block_text[: matches[0].start()].strip()
    options = [QuizOption(label=m.group(1), text=normalize_whitespace(m.group(2))) for m in matches]
    return stem, options


def parse_unlabeled_trailing_options(
    lines: List[str], config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> Tuple[str, List[QuizOption]]:
    """
    Trailing short lines after a stem ending in ':' or '?' become options A, B, C...
    The latest workable split point wins.
    """
    non_empty = [line.strip() for line in lines if line.strip()]
    if len(non_empty) < 3:
        return " ".join(non_empty), []

    for i in range(len(non_empty) - 2, -1, -1):
        stem_lines = non_empty[: i + 1]
        tail = non_empty[i + 1 :]
        if not 2 <= len(tail) <= len(OPTION_LABELS):
            continue
        if any(len(line) > config.max_trailing_option_length or line.endswith("?") for line in tail):
            continue
        if not re.search(r"[:?]$", stem_lines[-1]):
            continue
        options = [
            QuizOption(label=OPTION_LABELS[idx], text=normalize_whitespace(text))
            for idx, text in enumerate(tail)
        ]
        return normalize_whitespace("\n".join(stem_lines)), options

    return normalize_whitespace("\n".join(non_empty)), []


def parse_question_block(
    number: int, block_text: str, config: ParserConfig = DEFAULT_PARSER_CONFIG
) -> QuizQuestion:
    """
    Turn one numbered block into a question. Options are tried as labeled
    lines, then inline '(A)' markers, then unlabeled trailing lines.
    The result may have fewer than two options; callers drop those.
    """
    text = block_text.strip()
    lines = text.split("\n")

    stem, options, embedded = parse_labeled_options(lines)
    strategy = "labeled"

    if len(options) < 2:
        stem, options = parse_inline_options(text)
        strategy = "inline"

    if len(options) < 2:
        unanswered = [line for line in lines if not EMBEDDED_ANSWER_LINE.match(line.strip())]
        stem, options = parse_unlabeled_trailing_options(unanswered, config)
        strategy = "unlabeled"

    if not embedded:
        m = _ANSWER_ANYWHERE.search(text)
        if m:
            embedded = [m.group(1)]

    logger.debug("block %s: %d option(s) via %s parsing", number, len(options), strategy)
    return create_question(number, stem, options, embedded)
