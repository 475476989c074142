"""
Paragraph, sentence and word tokenizers used to build text units.

Tokenizers are interchangeable: the chunker only relies on the
:class:`SentenceTokenizer` and :class:`WordTokenizer` contracts.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import List, Sequence

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE_RUN = re.compile(r"(\s+)")


def split_paragraphs(text: str) -> List[str]:
    """
    Split raw text into paragraphs on blank lines.

    Paragraphs are trimmed; empty results are dropped and order is kept.

    Example:
        >>> split_paragraphs("First.\\n\\n\\nSecond.  \\n")
        ['First.', 'Second.']
    """
    paragraphs = (p.strip() for p in _PARAGRAPH_BREAK.split(text))
    return [p for p in paragraphs if p]


class SentenceTokenizer(ABC):
    """Splits a paragraph into ordered sentences."""

    @abstractmethod
    def tokenize(self, text: str) -> List[str]:
        """Return the sentences of ``text`` in order."""


class WordTokenizer(ABC):
    """Splits a sentence into ordered tokens and formats them back."""

    @abstractmethod
    def tokenize(self, text: str) -> List[str]:
        """Return the tokens of ``text`` in order."""

    @abstractmethod
    def format(self, tokens: Sequence[str]) -> str:
        """Rebuild a string from ``tokens``."""


class PunctuationSentenceTokenizer(SentenceTokenizer):
    """
    Sentence tokenizer splitting after ``.``, ``!`` or ``?`` followed by whitespace.

    Abbreviations such as "Dr." are not special-cased.
    """

    def tokenize(self, text: str) -> List[str]:
        return [s for s in _SENTENCE_BREAK.split(text) if s.strip()]


class WhitespacePreservingWordTokenizer(WordTokenizer):
    """
    Alternating word / whitespace tokens.

    Concatenating the tokens reproduces the input exactly, so
    ``format(tokenize(s)) == s`` for every string.
    """

    def tokenize(self, text: str) -> List[str]:
        return [token for token in _WHITESPACE_RUN.split(text) if token]

    def format(self, tokens: Sequence[str]) -> str:
        return "".join(tokens)


class WhitespaceCollapsingWordTokenizer(WordTokenizer):
    """Words only; whitespace runs are discarded and formatted back as single spaces."""

    def tokenize(self, text: str) -> List[str]:
        return text.split()

    def format(self, tokens: Sequence[str]) -> str:
        return " ".join(tokens)
