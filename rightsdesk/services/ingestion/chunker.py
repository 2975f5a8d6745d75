"""Sentence-aligned text chunking with a fixed token estimate.

Splits document text into bounded-size, non-overlapping chunks for
embedding.  The algorithm is deliberately simple so chunk boundaries are
reproducible across runs and machines:

1. **Sentence split** -- text is cut at runs of ``.``, ``!`` or ``?``;
   empty fragments are dropped.  Each sentence is re-terminated with
   ``". "`` when it is added to a chunk, so ``!`` and ``?`` come back as
   ``.``.

2. **Greedy accumulation** -- sentences are appended to a buffer until the
   next one would push the buffer's estimated token count past
   ``max_tokens``.  The buffer is then emitted and a new one started with
   that sentence.

Token counts are estimated as ``ceil(len(text) / 4)``, not measured with a
tokenizer.  A single sentence longer than the budget is emitted whole as its
own chunk; it is never cut mid-sentence.
"""

from __future__ import annotations

import math
import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_SENTENCE_SUFFIX = ". "


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def split_sentences(text: str) -> list[str]:
    """Return the non-empty, stripped sentences of *text* in order."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


class TextChunker:
    """Splits text into sentence-aligned chunks under a token budget.

    Parameters
    ----------
    max_tokens:
        Default upper bound on the estimated tokens per chunk (default 500).
    """

    def __init__(self, max_tokens: int = 500) -> None:
        if max_tokens < 1:
            msg = f"max_tokens must be positive, got {max_tokens}"
            raise ValueError(msg)
        self._max_tokens = max_tokens

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def chunk(self, text: str, max_tokens: int | None = None) -> list[str]:
        """Split *text* into chunks of at most *max_tokens* estimated tokens.

        Parameters
        ----------
        text:
            The full text to chunk.
        max_tokens:
            Overrides the instance default for this call.

        Returns
        -------
        list[str]
            Chunks in document order.  Empty or punctuation-only input
            returns an empty list.
        """
        limit = max_tokens if max_tokens is not None else self._max_tokens
        if limit < 1:
            msg = f"max_tokens must be positive, got {limit}"
            raise ValueError(msg)

        chunks: list[str] = []
        current = ""
        for sentence in split_sentences(text or ""):
            piece = sentence + _SENTENCE_SUFFIX
            if current and estimate_tokens(current + piece) > limit:
                chunks.append(current.rstrip())
                current = piece
            else:
                current += piece

        if current.strip():
            chunks.append(current.rstrip())

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            max_tokens=limit,
            text_length=len(text or ""),
        )
        return chunks
