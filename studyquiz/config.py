# studyquiz/config.py
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# load .env if present
load_dotenv()

DEFAULT_MODEL_CHAIN = [
    "gemini-2.5-flash-lite",
    "gemini-3.0-flash",
    "gemini-2.5-flash",
    "gemma-3-12b-it",
]


@dataclass(frozen=True)
class ParserConfig:
    """Empirical thresholds of the document parser, tuned on NBME-style exam text."""

    heading_min_fraction: float = 0.2
    scan_start_fraction: float = 0.35
    scan_window: int = 8
    scan_min_hits: int = 4
    question_start_min_length: int = 35
    max_option_line_length: int = 240
    max_trailing_option_length: int = 140
    recovery_clause_min_length: int = 18
    recovery_clause_max_length: int = 260
    title_max_length: int = 120


DEFAULT_PARSER_CONFIG = ParserConfig()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def parse_model_chain(value) -> List[str]:
    """Accept a list or a comma separated string of model identifiers."""
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value or "").split(",")
    return [str(item or "").strip() for item in items if str(item or "").strip()]


def build_model_chain(preferred: Optional[str] = None, chain=None) -> List[str]:
    """
    Preferred model first, then the configured chain (or the default one),
    without duplicates.
    """
    base = parse_model_chain(chain) or DEFAULT_MODEL_CHAIN
    ordered = ([preferred.strip()] if preferred and preferred.strip() else []) + list(base)
    unique: List[str] = []
    for model in ordered:
        if model not in unique:
            unique.append(model)
    return unique


@dataclass
class GeminiSettings:
    api_key: Optional[str] = None
    model_chain: List[str] = field(default_factory=lambda: list(DEFAULT_MODEL_CHAIN))
    chunk_size: int = 3
    chunk_timeout_ms: int = 12000
    max_ms: int = 35000
    max_questions: int = 40
    temperature: float = 0.2

    @classmethod
    def from_env(cls) -> "GeminiSettings":
        return cls(
            api_key=os.environ.get("GEMINI_API_KEY") or None,
            model_chain=build_model_chain(
                os.environ.get("GEMINI_MODEL"), os.environ.get("GEMINI_MODEL_CHAIN")
            ),
            chunk_size=_env_int("GEMINI_CHUNK_SIZE", 3),
            chunk_timeout_ms=_env_int("GEMINI_CHUNK_TIMEOUT_MS", 12000),
            max_ms=_env_int("GEMINI_MAX_MS", 35000),
            max_questions=_env_int("GEMINI_MAX_QUESTIONS", 40),
        )
