"""
Ingestion module for the knowledge store.

This module provides text ingestion functionality including:
- Paragraph, sentence and word tokenization
- Sliding-window chunking with overlap
- Plain-text file loading
- Complete ingestion pipeline orchestration
"""

from src.ingestion.chunker import SentenceChunker
from src.ingestion.loader import TextFileLoader
from src.ingestion.models import KnowledgeRecord, RecordMetadata
from src.ingestion.pipeline import (
    IngestionPipeline,
    IngestionResult,
    OwnerRefreshResult,
    TextSource,
)
from src.ingestion.tokenizer import (
    PunctuationSentenceTokenizer,
    SentenceTokenizer,
    WhitespaceCollapsingWordTokenizer,
    WhitespacePreservingWordTokenizer,
    WordTokenizer,
    split_paragraphs,
)

__all__ = [
    "SentenceChunker",
    "TextFileLoader",
    "KnowledgeRecord",
    "RecordMetadata",
    "IngestionPipeline",
    "IngestionResult",
    "OwnerRefreshResult",
    "TextSource",
    "PunctuationSentenceTokenizer",
    "SentenceTokenizer",
    "WhitespaceCollapsingWordTokenizer",
    "WhitespacePreservingWordTokenizer",
    "WordTokenizer",
    "split_paragraphs",
]
