# studyquiz/normalize.py
import re

_LINE_BREAKS = re.compile(r"\r\n?")
_SOFT_SPACES = re.compile("[\u00a0\t]+")
_SPACE_RUNS = re.compile(r" {2,}")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_whitespace(text: str) -> str:
    """
    Canonical text form used by every parsing stage: unix line endings,
    single spaces, at most one blank line in a row, trimmed.
    """
    if not text:
        return ""
    text = _LINE_BREAKS.sub("\n", str(text))
    text = _SOFT_SPACES.sub(" ", text)
    text = _SPACE_RUNS.sub(" ", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()
