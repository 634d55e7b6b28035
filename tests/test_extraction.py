"""
Tests for RawTextExtractor
"""

from unittest.mock import MagicMock, patch

import pytest

from pocketllm.ai.errors import DocumentExtractionFailed, UnsupportedDocumentFormat
from pocketllm.extraction import RawTextExtractor


@pytest.fixture
def extractor():
    return RawTextExtractor()


def fake_pdf(*page_texts):
    pdf = MagicMock()
    pdf.pages = [MagicMock(**{"extract_text.return_value": text}) for text in page_texts]
    opened = MagicMock()
    opened.__enter__.return_value = pdf
    return opened


class TestPlainText:
    """TXT, Markdown and RTF."""

    def test_reads_txt(self, extractor, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("Line one\nLine two – café", encoding="utf-8")

        assert extractor.extract(path) == "Line one\nLine two – café"

    def test_reads_markdown_with_type_hint(self, extractor, tmp_path):
        path = tmp_path / "README"
        path.write_text("# Title\n\nBody", encoding="utf-8")

        assert extractor.extract(str(path), "md") == "# Title\n\nBody"

    def test_strips_rtf_markup(self, extractor, tmp_path):
        path = tmp_path / "letter.rtf"
        path.write_text(r"{\rtf1\ansi{\fonttbl\f0\fswiss Helvetica;}\f0 Hello RTF world.\par}", encoding="utf-8")

        text = extractor.extract(path)

        assert "Hello RTF world." in text
        assert "\\rtf1" not in text


class TestPdf:
    """PDF extraction through pdfplumber."""

    def test_pages_joined_with_blank_lines(self, extractor, tmp_path):
        path = tmp_path / "report.pdf"
        path.write_bytes(b"%PDF-1.4")

        with patch("pocketllm.extraction.text_extractor.pdfplumber.open", return_value=fake_pdf("Page one", None, "Page three")):
            text = extractor.extract(path)

        assert text == "Page one\n\nPage three"

    def test_encrypted_pdf(self, extractor, tmp_path):
        path = tmp_path / "secret.pdf"
        path.write_bytes(b"%PDF-1.4")

        with patch("pocketllm.extraction.text_extractor.pdfplumber.open", side_effect=Exception("PDF is encrypted")):
            with pytest.raises(DocumentExtractionFailed, match="password-protected"):
                extractor.extract(path)

    def test_scanned_pdf_without_text(self, extractor, tmp_path):
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.4")

        with patch("pocketllm.extraction.text_extractor.pdfplumber.open", return_value=fake_pdf(None, "")):
            with pytest.raises(DocumentExtractionFailed, match="No extractable text"):
                extractor.extract(path)


class TestFailures:
    """Unsupported and unreadable inputs."""

    def test_unsupported_format(self, extractor, tmp_path):
        path = tmp_path / "slides.pptx"
        path.write_bytes(b"PK")

        with pytest.raises(UnsupportedDocumentFormat):
            extractor.extract(path)

    def test_missing_file(self, extractor, tmp_path):
        with pytest.raises(DocumentExtractionFailed, match="File not found"):
            extractor.extract(tmp_path / "nowhere.txt")

    def test_empty_file(self, extractor, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("   \n", encoding="utf-8")

        with pytest.raises(DocumentExtractionFailed):
            extractor.extract(path)
