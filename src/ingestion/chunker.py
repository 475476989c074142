"""
Sliding-window sentence chunker.

This module splits text into bounded chunks built from word tokens. Each
chunk is prefixed with a short overlap window taken from the tail of the
previous chunk in the same paragraph, so concepts spanning a boundary are
captured in at least one chunk.
"""

from __future__ import annotations

from typing import Callable, Iterator, List

from src.ingestion.tokenizer import (
    PunctuationSentenceTokenizer,
    SentenceTokenizer,
    WhitespacePreservingWordTokenizer,
    WordTokenizer,
    split_paragraphs,
)
from src.utils.logging import LoggerMixin


class SentenceChunker(LoggerMixin):
    """
    Overlapping chunker working paragraph by paragraph.

    Every paragraph boundary forces a flush, and the overlap window is reset
    at the start of each paragraph. A chunk may exceed ``max_chunk_size`` by
    one word token, since the size check happens before a token is appended
    and an oversized token is never dropped.

    Args:
        max_chunk_size: Maximum chunk length in characters (default: 120).
        overlap_size: Maximum overlap window length in characters (default: 30).
        paragraph_tokenizer: Callable splitting raw text into paragraphs.
        sentence_tokenizer: Splits paragraphs into sentences.
        word_tokenizer: Splits sentences into tokens and formats them back.

    Example:
        >>> chunker = SentenceChunker(max_chunk_size=20, overlap_size=5)
        >>> chunker.chunk("This is sentence one. This is sentence two.")
        ['This is sentence ', ' one.This is sentence', ' two.']
    """

    def __init__(
        self,
        max_chunk_size: int = 120,
        overlap_size: int = 30,
        paragraph_tokenizer: Callable[[str], List[str]] | None = None,
        sentence_tokenizer: SentenceTokenizer | None = None,
        word_tokenizer: WordTokenizer | None = None,
    ) -> None:
        if max_chunk_size < 1:
            raise ValueError(f"max_chunk_size ({max_chunk_size}) must be positive")
        if overlap_size < 0:
            raise ValueError(f"overlap_size ({overlap_size}) must not be negative")

        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size
        self.paragraph_tokenizer = paragraph_tokenizer or split_paragraphs
        self.sentence_tokenizer = sentence_tokenizer or PunctuationSentenceTokenizer()
        self.word_tokenizer = word_tokenizer or WhitespacePreservingWordTokenizer()

    def chunk(self, text: str) -> List[str]:
        """
        Split ``text`` into ordered chunk strings.

        Args:
            text: Raw text, possibly containing several paragraphs.

        Returns:
            List of chunks; empty input returns an empty list.
        """
        chunks = list(self.iter_chunks(text))
        self.logger.debug(
            "chunking_complete",
            text_length=len(text),
            num_chunks=len(chunks),
            max_chunk_size=self.max_chunk_size,
            overlap_size=self.overlap_size,
        )
        return chunks

    def iter_chunks(self, text: str) -> Iterator[str]:
        """Yield the chunks of ``text`` one at a time."""
        fmt = self.word_tokenizer.format
        pending: List[str] = []

        for paragraph in self.paragraph_tokenizer(text):
            carry: List[str] = []

            for sentence in self.sentence_tokenizer.tokenize(paragraph):
                for token in self.word_tokenizer.tokenize(sentence):
                    if pending and len(fmt([*pending, token])) > self.max_chunk_size:
                        carry = self._trim_overlap(carry)
                        yield fmt([*carry, *pending])
                        carry = pending
                        pending = []

                    pending.append(token)

            if pending:
                carry = self._trim_overlap(carry)
                yield fmt([*carry, *pending])
                pending = []

    def _trim_overlap(self, carry: List[str]) -> List[str]:
        """Drop tokens off the front of ``carry`` until it fits the overlap window."""
        start = 0
        while len(self.word_tokenizer.format(carry[start:])) > self.overlap_size:
            start += 1
        return carry[start:]
