"""
Unit tests for MIME detection and text extraction.
"""
import pandas as pd
import pytest

from core import parsing
from core.config import reset_settings
from core.exceptions import ExtractionError, FileProcessingError, UnsupportedFileError
from core.parsing import (
    CSV_MIME,
    PDF_MIME,
    XLSX_MIME,
    detect_mime_type,
    extract_text_from_file,
)


def test_detect_pdf_by_magic_bytes(tmp_path):
    """Magic bytes win over a misleading name and declared type."""
    path = tmp_path / "receipt.txt"
    path.write_bytes(b"%PDF-1.7\n...")
    assert detect_mime_type(str(path), "text/plain") == PDF_MIME


def test_detect_png(tmp_path):
    path = tmp_path / "scan"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 16)
    assert detect_mime_type(str(path)) == "image/png"


def test_detect_csv_by_extension(tmp_path):
    """CSV uploads are recognised even when labelled as octet-stream."""
    path = tmp_path / "statement.csv"
    path.write_text("date,amount\n2024-01-01,10\n")
    assert detect_mime_type(str(path), "application/octet-stream") == CSV_MIME


def test_detect_zip_only_xlsx_when_named(tmp_path):
    xlsx = tmp_path / "statement.xlsx"
    xlsx.write_bytes(b"PK\x03\x04" + b"\x00" * 16)
    other = tmp_path / "archive.zip"
    other.write_bytes(b"PK\x03\x04" + b"\x00" * 16)

    assert detect_mime_type(str(xlsx)) == XLSX_MIME
    assert detect_mime_type(str(other)) == "application/zip"


def test_detect_unknown(tmp_path):
    path = tmp_path / "blob"
    path.write_bytes(b"\x00\x01\x02")
    assert detect_mime_type(str(path)) == "application/octet-stream"


def test_extract_csv_statement(tmp_path):
    """Spreadsheet statements are rendered as CSV text without empty rows."""
    path = tmp_path / "statement.csv"
    path.write_text("Date,Description,Amount\n01/02/2024,Coffee,120\n,,\n02/02/2024,Salary,50000\n")

    text = extract_text_from_file(str(path), CSV_MIME)
    assert "Coffee" in text
    assert "Salary" in text
    assert ",,\n" not in text


def test_extract_xlsx_statement(tmp_path):
    path = tmp_path / "statement.xlsx"
    pd.DataFrame({"Party": ["Grocer"], "Amount": ["450"]}).to_excel(path, index=False)

    text = extract_text_from_file(str(path), XLSX_MIME)
    assert "Grocer" in text
    assert "450" in text


def test_extract_image_uses_ocr(tmp_path, monkeypatch):
    """Images go straight to OCR."""
    monkeypatch.setattr(parsing, "ocr_image_file", lambda file_path: "TOTAL 250.00")
    path = tmp_path / "receipt.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")

    assert extract_text_from_file(str(path), "image/png") == "TOTAL 250.00"


def test_extract_unsupported_type(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(UnsupportedFileError):
        extract_text_from_file(str(path), "text/plain")


def test_extract_missing_file(tmp_path):
    with pytest.raises(FileProcessingError):
        extract_text_from_file(str(tmp_path / "missing.pdf"), PDF_MIME)


def test_extract_empty_text(tmp_path, monkeypatch):
    """Documents without any recognisable text are rejected."""
    monkeypatch.setattr(parsing, "ocr_image_file", lambda file_path: "   ")
    path = tmp_path / "blank.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")

    with pytest.raises(ExtractionError):
        extract_text_from_file(str(path), "image/png")


def test_extract_unreadable_document(tmp_path):
    """A corrupt PDF surfaces as an extraction error."""
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"%PDF-garbage")
    with pytest.raises(ExtractionError):
        extract_text_from_file(str(path), PDF_MIME)


class FakeImage:
    def __init__(self, page_number):
        self.page_number = page_number

    def convert(self, mode):
        return self


class FakeRendered:
    def __init__(self, page_number):
        self.original = FakeImage(page_number)


class FakePage:
    def __init__(self, page_number, text, rendered_at):
        self.page_number = page_number
        self.text = text
        self.rendered_at = rendered_at

    def extract_text(self):
        return self.text

    def to_image(self, resolution=None):
        self.rendered_at.append((self.page_number, resolution))
        return FakeRendered(self.page_number)


class FakePdf:
    def __init__(self, pages):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def fake_pdf(monkeypatch, texts):
    """Replace pdfplumber and Tesseract; returns (rendered pages, OCR calls)."""
    rendered_at, ocr_calls = [], []
    pages = [FakePage(number, text, rendered_at) for number, text in enumerate(texts, start=1)]
    monkeypatch.setattr(parsing.pdfplumber, "open", lambda file_path: FakePdf(pages))

    def image_to_string(image, lang=None):
        ocr_calls.append((image.page_number, lang))
        return f"OCR page {image.page_number}"

    monkeypatch.setattr(parsing.pytesseract, "image_to_string", image_to_string)
    return rendered_at, ocr_calls


def test_scanned_pdf_falls_back_to_ocr(tmp_path, monkeypatch):
    """Only the first OCR_MAX_PAGES pages are rendered, at OCR_DPI."""
    monkeypatch.setenv("OCR_MAX_PAGES", "2")
    monkeypatch.setenv("OCR_DPI", "300")
    reset_settings()
    rendered_at, ocr_calls = fake_pdf(monkeypatch, ["", "  ", "page 3"])

    text = parsing.extract_pdf_text(str(tmp_path / "scan.pdf"))

    assert text == "OCR page 1\nOCR page 2"
    assert rendered_at == [(1, 300), (2, 300)]
    assert ocr_calls == [(1, "eng"), (2, "eng")]


def test_pdf_text_layer_skips_ocr(tmp_path, monkeypatch):
    statement = "01/03/2024 Salary credited by Employer 50,000.00 CR\n" * 2
    rendered_at, ocr_calls = fake_pdf(monkeypatch, [statement, None])

    text = parsing.extract_pdf_text(str(tmp_path / "statement.pdf"))

    assert text == statement.strip()
    assert rendered_at == []
    assert ocr_calls == []
