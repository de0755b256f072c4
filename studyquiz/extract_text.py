import logging
import os
import re

import docx
import mammoth
from bs4 import BeautifulSoup
from PyPDF2 import PdfReader
from pptx import Presentation

from .normalize import normalize_whitespace

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".docx", ".doc", ".pptx", ".txt", ".md")
UNSUPPORTED_MESSAGE = "Unsupported file type. Upload PDF, DOCX, DOC, PPTX, TXT, or MD."

_BLOCK_TAGS = ["p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "table", "ul", "ol"]


def html_to_text_with_image_markers(markup: str) -> str:
    """
    Plain text from HTML, keeping every <img> as an [IMAGE:src] line.
    Block elements start and end a line; inline markup stays inside its line.
    """
    soup = BeautifulSoup(markup or "", "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    for img in soup.find_all("img"):
        src = img.get("src")
        img.replace_with(f"\n[IMAGE:{src}]\n" if src else "")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")
    return normalize_whitespace(soup.get_text())


def _extract_pdf(path: str) -> str:
    text_chunks = []
    with open(path, "rb") as f:
        reader = PdfReader(f)
        for page in reader.pages:
            t = page.extract_text()
            if t:
                text_chunks.append(t)
    return normalize_whitespace("\n\n".join(text_chunks))


def _extract_docx_html(path: str) -> str:
    with open(path, "rb") as f:
        result = mammoth.convert_to_html(f, convert_image=mammoth.images.data_uri)
    return html_to_text_with_image_markers(result.value)


def _extract_docx(path: str) -> str:
    """
    Raw paragraph text from python-docx, or mammoth's HTML rendering when
    that one carries images (or is simply longer).
    """
    doc = docx.Document(path)
    raw_text = normalize_whitespace("\n".join(para.text for para in doc.paragraphs if para.text))

    try:
        html_text = _extract_docx_html(path)
    except Exception as exc:
        logger.warning("docx html rendering failed for %s: %s", path, exc)
        html_text = ""

    if re.search(r"\[IMAGE:", html_text, re.I):
        return html_text
    if len(raw_text) >= len(html_text):
        return raw_text
    return html_text


def _extract_doc(path: str) -> str:
    try:
        return _extract_docx_html(path)
    except Exception as exc:
        raise ValueError("Unable to parse .doc file. Convert to .docx if parsing fails.") from exc


def _extract_pptx(path: str) -> str:
    text_chunks = []
    prs = Presentation(path)
    for slide in prs.slides:
        for shape in slide.shapes:
            if hasattr(shape, "text") and shape.text:
                text_chunks.append(shape.text)
    return normalize_whitespace("\n\n".join(text_chunks))


def _extract_plain(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return normalize_whitespace(f.read())


_EXTRACTORS = {
    ".pdf": _extract_pdf,
    ".docx": _extract_docx,
    ".doc": _extract_doc,
    ".pptx": _extract_pptx,
    ".txt": _extract_plain,
    ".md": _extract_plain,
}


def extract_text_from_path(path: str, original_name: str | None = None) -> str:
    """
    Extracts and returns normalized plain text from a study document, with
    embedded images as [IMAGE:<src>] markers where the format carries them.
    The extension of original_name (falling back to path) selects the reader.
    Raises ValueError for unsupported extensions.
    """
    ext = os.path.splitext(original_name or path)[1].lower()
    extractor = _EXTRACTORS.get(ext)
    if extractor is None:
        raise ValueError(UNSUPPORTED_MESSAGE)
    return extractor(path)
