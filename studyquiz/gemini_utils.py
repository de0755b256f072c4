# studyquiz/gemini_utils.py
import asyncio
import os

import google.generativeai as genai
from google.api_core import exceptions as api_exceptions


class GeminiError(RuntimeError):
    """Generic model failure (bad output, server error)."""

    code = "MODEL_ERROR"


class GeminiRateLimitError(GeminiError):
    code = "RATE_LIMIT"


class GeminiAuthError(GeminiError):
    code = "AUTH"


class GeminiTimeoutError(GeminiError):
    code = "TIMEOUT"


_RATE_LIMIT_HINTS = ("429", "resource_exhausted", "resourceexhausted", "rate limit", "quota")
_AUTH_HINTS = ("unauthenticated", "permission", "forbidden", "401", "403", "api key")


def configure_gemini(api_key: str | None = None):
    """
    Configure google.generativeai with an API key.
    Reads GEMINI_API_KEY from environment if api_key not provided.
    """
    key = api_key or os.environ.get("GEMINI_API_KEY")
    if not key:
        raise RuntimeError("GEMINI_API_KEY not set. Set environment variable or pass it to configure_gemini().")
    genai.configure(api_key=key)


def classify_error(exc: Exception) -> GeminiError:
    """Map an SDK exception onto the GeminiError taxonomy."""
    if isinstance(exc, GeminiError):
        return exc
    if isinstance(exc, (api_exceptions.ResourceExhausted, api_exceptions.TooManyRequests)):
        return GeminiRateLimitError(str(exc))
    if isinstance(exc, (api_exceptions.Unauthenticated, api_exceptions.PermissionDenied)):
        return GeminiAuthError(str(exc))
    if isinstance(exc, (api_exceptions.DeadlineExceeded, asyncio.TimeoutError)):
        return GeminiTimeoutError(str(exc) or "Gemini call timed out.")

    text = f"{type(exc).__name__} {exc}".lower()
    if any(hint in text for hint in _RATE_LIMIT_HINTS):
        return GeminiRateLimitError(str(exc))
    if any(hint in text for hint in _AUTH_HINTS):
        return GeminiAuthError(str(exc))
    return GeminiError(str(exc))


async def gemini_generate_json(prompt: str, model_name: str, timeout_s: float, temperature: float = 0.2) -> str:
    """
    Send prompt to one Gemini model asking for JSON output and return the raw text.
    Raises GeminiTimeoutError when timeout_s elapses, other GeminiError subclasses on failure.
    """
    model = genai.GenerativeModel(
        model_name,
        generation_config={"response_mime_type": "application/json", "temperature": temperature},
    )
    try:
        response = await asyncio.wait_for(model.generate_content_async(prompt), timeout=timeout_s)
        # response.text raises ValueError when the candidate was blocked
        return getattr(response, "text", "") or ""
    except asyncio.TimeoutError as exc:
        raise GeminiTimeoutError(f"Gemini chunk timed out after {timeout_s:.1f}s.") from exc
    except Exception as exc:
        raise classify_error(exc) from exc
