"""
Plain-text file loader for the ingestion pipeline.

Binary formats (PDF, DOCX, ...) are extracted upstream; this loader only
validates a path and reads already-extracted text.
"""

from __future__ import annotations

from pathlib import Path

from src.utils.exceptions import DocumentLoadError, DocumentParseError, UnsupportedDocumentError
from src.utils.logging import LoggerMixin


class TextFileLoader(LoggerMixin):
    """
    Loader for plain-text files.

    Supported formats:
    - Text (.txt, .text)
    - Markdown (.md, .markdown), read verbatim
    - Files without a suffix

    Example:
        >>> loader = TextFileLoader()
        >>> text = loader.load("notes.txt")
    """

    SUPPORTED_FORMATS = {".txt", ".text", ".md", ".markdown", ""}

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def is_supported(self, file_path: str | Path) -> bool:
        """
        Check if the file format is supported.

        Example:
            >>> TextFileLoader().is_supported(Path("doc.md"))
            True
            >>> TextFileLoader().is_supported(Path("doc.pdf"))
            False
        """
        return Path(file_path).suffix.lower() in self.SUPPORTED_FORMATS

    def load(self, file_path: str | Path) -> str:
        """
        Read the full text of a file.

        Args:
            file_path: Path to the text file.

        Returns:
            The decoded file content.

        Raises:
            DocumentLoadError: If the path does not exist or is not a file.
            UnsupportedDocumentError: If the suffix is not a plain-text format.
            DocumentParseError: If the bytes cannot be decoded.
        """
        path = Path(file_path)

        if not path.exists():
            self.logger.error("file_not_found", file_path=str(path))
            raise DocumentLoadError(
                f"Input file not found: {path}",
                details={"file_path": str(path)},
            )

        if not path.is_file():
            self.logger.error("path_not_a_file", file_path=str(path))
            raise DocumentLoadError(
                f"Input path is not a file: {path}",
                details={"file_path": str(path)},
            )

        if not self.is_supported(path):
            self.logger.error(
                "unsupported_file_format",
                file_path=str(path),
                format=path.suffix,
                supported=sorted(self.SUPPORTED_FORMATS),
            )
            raise UnsupportedDocumentError(
                f"Unsupported file format: {path.suffix}. "
                f"Extract text upstream and ingest it as plain text.",
                details={"file_path": str(path), "format": path.suffix},
            )

        try:
            text = path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            self.logger.error("file_decode_failed", file_path=str(path), encoding=self.encoding)
            raise DocumentParseError(
                f"Could not decode {path} as {self.encoding}",
                details={"file_path": str(path)},
                cause=e,
            ) from e

        self.logger.info("file_loaded", file_path=str(path), text_length=len(text))
        return text
