"""
PDF tokenization with pdfplumber.

Turns a PDF into per-page lists of TextToken in top-down coordinates and
reports progress on a 0-100 scale through fixed checkpoints:
10 after the bytes are read, 20 after the document opens, then 20-80
linearly across pages.
"""

import io
import logging
import os
import re
from typing import Callable, List, Optional

import pdfplumber

from .config import LayoutConfig
from .models import TextToken

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_WHITESPACE_RE = re.compile(r"\s+")


def _report(progress: Optional[ProgressCallback], current: int, total: int = 100):
    if progress is not None:
        progress(current, total)


def page_tokens(page, page_index: int, config: Optional[LayoutConfig] = None) -> List[TextToken]:
    """Extract the non-blank words of one pdfplumber page as tokens."""
    config = config or LayoutConfig()
    words = page.extract_words(
        x_tolerance=config.word_x_tolerance,
        y_tolerance=config.word_y_tolerance,
        # spaced labels such as "地 址、电 话:" must stay one word
        keep_blank_chars=True,
        extra_attrs=["fontname"],
    )

    tokens = []
    for w in words:
        text = _WHITESPACE_RE.sub("", w.get("text") or "")
        if not text:
            continue
        x0, x1 = float(w["x0"]), float(w["x1"])
        top, bottom = float(w["top"]), float(w["bottom"])
        tokens.append(TextToken(
            text=text,
            x=x0,
            y=bottom,
            width=x1 - x0,
            height=bottom - top,
            page_index=page_index,
            font_name=w.get("fontname") or "",
        ))
    return tokens


def tokenize_pdf(pdf_path: str, progress: Optional[ProgressCallback] = None,
                 config: Optional[LayoutConfig] = None) -> List[List[TextToken]]:
    """
    Read a PDF into one token list per page.

    Raises:
        FileNotFoundError: the file does not exist
        Exception: whatever pdfplumber raises for an unreadable document
    """
    _report(progress, 0)
    if not os.path.isfile(pdf_path):
        logger.error("File not found: %s", pdf_path)
        raise FileNotFoundError(pdf_path)

    with open(pdf_path, "rb") as f:
        data = f.read()
    _report(progress, 10)

    pages: List[List[TextToken]] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        _report(progress, 20)
        page_count = len(pdf.pages)
        for i, page in enumerate(pdf.pages, start=1):
            tokens = page_tokens(page, i - 1, config)
            logger.debug("%s page %d: %d tokens", os.path.basename(pdf_path), i, len(tokens))
            pages.append(tokens)
            _report(progress, 20 + round(i / page_count * 60))

    return pages
