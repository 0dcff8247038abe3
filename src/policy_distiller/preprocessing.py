"""Text preprocessing for privacy policy documents.

Normalizes and bounds raw extracted text before it is embedded in any
prompt. Everything here is pure Python regex processing, and no method
raises: unusable input degrades to an empty string or a no-op.
"""

from __future__ import annotations

import math
import re

from .config import CHUNK_OVERLAP, CHUNK_SIZE, MAX_DOCUMENT_LENGTH, MIN_DOCUMENT_LENGTH, WORDS_PER_MINUTE

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_PUNCTUATION_RE = re.compile(r"([.!?])\1+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

# Cookie-consent banners scraped along with the policy text
_BOILERPLATE_PATTERNS: list[re.Pattern] = [
    re.compile(r"we use cookies.{0,200}?accept", re.IGNORECASE | re.DOTALL),
    re.compile(r"this site uses cookies.{0,200}?agree", re.IGNORECASE | re.DOTALL),
    re.compile(r"by continuing.{0,200}?cookies", re.IGNORECASE | re.DOTALL),
]

#: Marker appended when text is cut mid-sentence.
TRUNCATION_MARKER = "..."


# ---------------------------------------------------------------------------
# Text Preprocessor
# ---------------------------------------------------------------------------


class TextPreprocessor:
    """Clean, measure and bound policy text.

    Example::

        preprocessor = TextPreprocessor()
        text = preprocessor.truncate(preprocessor.preprocess(raw_text))
        minutes = preprocessor.estimate_reading_time(text)
    """

    def __init__(
        self,
        max_length: int = MAX_DOCUMENT_LENGTH,
        strip_boilerplate: bool = False,
        words_per_minute: int = WORDS_PER_MINUTE,
    ) -> None:
        """Initialize the preprocessor.

        Args:
            max_length: Default bound used by ``truncate()``.
            strip_boilerplate: Remove cookie-banner text in ``preprocess()``.
            words_per_minute: Reading speed for ``estimate_reading_time()``.
        """
        self.max_length = max_length
        self.strip_boilerplate = strip_boilerplate
        self.words_per_minute = words_per_minute

    def preprocess(self, text: str) -> str:
        """Normalize text for LLM analysis.

        Processing order:
        1. Cookie boilerplate removal (if enabled), repeated until none is left
        2. Every whitespace run, line breaks included, becomes one space
        3. Repeated terminal punctuation collapses (``!!!`` -> ``!``)
        4. Trim

        The result is a fixed point: preprocessing it again changes nothing.

        Args:
            text: Raw document text.

        Returns:
            Normalized text, or ``""`` for empty or non-string input.
        """
        if not text or not isinstance(text, str):
            return ""

        if not self.strip_boilerplate:
            return self._normalize(text)

        # Removing a banner can join its neighbours into a new one
        previous = None
        while text != previous:
            previous = text
            text = self._normalize(self.remove_boilerplate(text))
        return text

    @staticmethod
    def _normalize(text: str) -> str:
        text = _WHITESPACE_RE.sub(" ", text)
        text = _REPEATED_PUNCTUATION_RE.sub(r"\1", text)
        return text.strip()

    def truncate(self, text: str, max_length: int | None = None) -> str:
        """Bound text to ``max_length`` characters.

        Text that already fits is returned unchanged. Otherwise the text is
        cut at ``max_length``; if the last period of the cut lies in its final
        20%, the cut moves back to that sentence boundary, else
        :data:`TRUNCATION_MARKER` is appended so the cut is visible.

        Args:
            text: Text to bound.
            max_length: Character limit (defaults to the instance limit).

        Returns:
            Text of at most ``max_length + 3`` characters.
        """
        if not isinstance(text, str):
            return ""
        limit = self.max_length if max_length is None else max(0, max_length)
        if len(text) <= limit:
            return text

        truncated = text[:limit]
        last_period = truncated.rfind(".")
        if last_period >= 0 and last_period >= limit * 0.8:
            return truncated[: last_period + 1]
        return truncated + TRUNCATION_MARKER

    def chunk_text(
        self,
        text: str,
        chunk_size: int = CHUNK_SIZE,
        overlap: int = CHUNK_OVERLAP,
    ) -> list[str]:
        """Split text into overlapping windows.

        The window always advances: an ``overlap`` that is not smaller than
        ``chunk_size`` is ignored.

        Args:
            text: Text to split.
            chunk_size: Maximum characters per chunk.
            overlap: Characters shared by consecutive chunks.

        Returns:
            List of chunks, empty for empty input.
        """
        if not text or not isinstance(text, str):
            return []
        if chunk_size <= 0:
            return [text]

        step = chunk_size - overlap if 0 <= overlap < chunk_size else chunk_size
        chunks: list[str] = []
        start = 0
        while start < len(text):
            chunks.append(text[start : start + chunk_size])
            if start + chunk_size >= len(text):
                break
            start += step
        return chunks

    def extract_sentences(self, text: str) -> list[str]:
        """Split on runs of terminal punctuation, dropping empty pieces."""
        if not text or not isinstance(text, str):
            return []
        return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]

    def remove_boilerplate(self, text: str) -> str:
        """Strip known cookie-consent phrases. Best effort only."""
        if not text or not isinstance(text, str):
            return ""
        for pattern in _BOILERPLATE_PATTERNS:
            text = pattern.sub("", text)
        return _WHITESPACE_RE.sub(" ", text).strip()

    def count_words(self, text: str) -> int:
        if not text or not isinstance(text, str):
            return 0
        return len(text.split())

    def estimate_reading_time(self, text: str, words_per_minute: int | None = None) -> int:
        """Reading time in whole minutes, rounded up."""
        wpm = words_per_minute or self.words_per_minute
        if wpm <= 0:
            return 0
        return math.ceil(self.count_words(text) / wpm)

    def validate_length(self, text: str) -> tuple[bool, str]:
        """Check a document is long enough to be worth analyzing.

        Returns:
            ``(ok, message)``; ``message`` is empty when ``ok`` is True.
        """
        length = len(self.preprocess(text))
        if length < MIN_DOCUMENT_LENGTH:
            return False, (
                f"Document is too short ({length} characters). "
                f"Please provide at least {MIN_DOCUMENT_LENGTH} characters."
            )
        return True, ""
