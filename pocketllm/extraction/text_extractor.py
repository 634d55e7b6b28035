"""
Text Extraction Module

The summarization pipeline only needs plain text; TextExtractor is the seam
where document formats are turned into it. RawTextExtractor covers the
formats PocketLLM opens itself:

- .txt / .md: read directly as UTF-8
- .rtf: control words stripped with striprtf
- .pdf: digital text layer via pdfplumber (scanned PDFs are not OCR'd)
"""

from abc import ABC, abstractmethod
from pathlib import Path

import pdfplumber
from striprtf.striprtf import rtf_to_text

from pocketllm.ai.errors import DocumentExtractionFailed, UnsupportedDocumentFormat
from pocketllm.config import LARGE_FILE_WARNING_MB, MAX_FILE_SIZE_MB, SUPPORTED_DOCUMENT_TYPES
from pocketllm.logging_config import Timer, debug, info, warning


class TextExtractor(ABC):
    """Turns a document reference into plain text."""

    @abstractmethod
    def extract(self, file_ref, type_hint: str = None) -> str:
        """
        Extract the document's text.

        Args:
            file_ref: Path (or path string) of the document
            type_hint: File extension such as ".pdf"; derived from file_ref if omitted

        Raises:
            UnsupportedDocumentFormat: No extractor for this type
            DocumentExtractionFailed: The file could not be read or holds no text
        """


class RawTextExtractor(TextExtractor):
    """Extracts text from TXT, Markdown, RTF and digital PDF files."""

    def extract(self, file_ref, type_hint: str = None) -> str:
        file_path = Path(file_ref)
        extension = (type_hint or file_path.suffix).lower()
        if not extension.startswith('.'):
            extension = f".{extension}"

        if extension not in SUPPORTED_DOCUMENT_TYPES:
            raise UnsupportedDocumentFormat(
                f"Unsupported file type: {extension}. Supported formats: "
                f"{', '.join(t.lstrip('.').upper() for t in SUPPORTED_DOCUMENT_TYPES)}"
            )

        if not file_path.is_file():
            raise DocumentExtractionFailed(f"File not found: {file_path}")

        size_mb = file_path.stat().st_size / (1024 * 1024)
        if size_mb > MAX_FILE_SIZE_MB:
            raise DocumentExtractionFailed(
                f"File exceeds maximum size ({MAX_FILE_SIZE_MB}MB). File size: {size_mb:.1f}MB"
            )
        if size_mb > LARGE_FILE_WARNING_MB:
            warning(f"Large file detected ({size_mb:.1f}MB). Processing may take longer.")

        info(f"Extracting text from {file_path.name}")
        with Timer(f"Extracting {file_path.name}"):
            if extension == '.pdf':
                text = self._extract_pdf(file_path)
            else:
                text = self._extract_text_file(file_path, extension)

        if not text.strip():
            raise DocumentExtractionFailed(f"No extractable text in {file_path.name}")

        debug(f"Extracted {len(text)} characters from {file_path.name}")
        return text

    def _extract_text_file(self, file_path: Path, extension: str) -> str:
        try:
            content = file_path.read_text(encoding='utf-8', errors='ignore')
        except OSError as e:
            raise DocumentExtractionFailed(f"Could not read {file_path.name}: {e}") from e

        if extension == '.rtf':
            return rtf_to_text(content)
        return content

    def _extract_pdf(self, file_path: Path) -> str:
        pages = []
        try:
            with pdfplumber.open(file_path) as pdf:
                debug(f"PDF has {len(pdf.pages)} pages")
                for page in pdf.pages:
                    page_text = page.extract_text()
                    if page_text:
                        pages.append(page_text)
        except Exception as e:
            message = str(e).lower()
            if "password" in message or "encrypted" in message:
                raise DocumentExtractionFailed(f"{file_path.name} is password-protected or encrypted") from e
            raise DocumentExtractionFailed(f"Could not read PDF {file_path.name}: {e}") from e

        return "\n\n".join(pages)
