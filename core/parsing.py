"""
Text extraction from uploaded receipts and bank statements.
PDFs are read directly and fall back to OCR when they carry no text layer;
images go straight to OCR; spreadsheets are rendered to CSV text.
"""
import mimetypes
from pathlib import Path
from typing import List, Optional

import pandas as pd
import pdfplumber
import pytesseract
from PIL import Image

from core.config import get_settings
from core.exceptions import ExtractionError, FileProcessingError, UnsupportedFileError
from core.logger import setup_logger

logger = setup_logger(__name__)

# Below this many characters a PDF is treated as scanned
MIN_PDF_TEXT_LENGTH = 50

PDF_MIME = "application/pdf"
CSV_MIME = "text/csv"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME = "application/vnd.ms-excel"
SPREADSHEET_MIMES = {CSV_MIME, XLSX_MIME, XLS_MIME}

MAGIC_NUMBERS = [
    (b"%PDF", PDF_MIME),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"BM", "image/bmp"),
    (b"\xd0\xcf\x11\xe0", XLS_MIME),
]


def detect_mime_type(file_path: str, declared: Optional[str] = None) -> str:
    """
    Determine the MIME type of an uploaded file.

    Magic bytes win, then spreadsheet extensions (browsers label CSV files
    inconsistently), then the client-declared type, then any other extension.
    ZIP containers are only trusted as xlsx when the name says so.

    Args:
        file_path: Path to the saved upload
        declared: Content type sent by the client

    Returns:
        MIME type string ("application/octet-stream" when unknown)
    """
    path = Path(file_path)
    with open(path, "rb") as f:
        head = f.read(16)

    for magic, mime in MAGIC_NUMBERS:
        if head.startswith(magic):
            return mime
    if head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"

    guessed, _ = mimetypes.guess_type(path.name)
    if head.startswith(b"PK\x03\x04"):
        return XLSX_MIME if path.suffix.lower() == ".xlsx" else "application/zip"

    if guessed in SPREADSHEET_MIMES:
        return guessed

    declared = (declared or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared

    return guessed or "application/octet-stream"


def ocr_image(image: Image.Image) -> str:
    """Run Tesseract over a PIL image."""
    settings = get_settings()
    return pytesseract.image_to_string(image.convert("RGB"), lang=settings.ocr_language)


def ocr_image_file(file_path: str) -> str:
    """OCR an image file from disk."""
    with Image.open(file_path) as image:
        return ocr_image(image)


def extract_pdf_text(file_path: str) -> str:
    """
    Extract the text layer of a PDF, falling back to OCR for scanned documents.

    Args:
        file_path: Path to PDF file

    Returns:
        Extracted text (possibly empty)
    """
    settings = get_settings()
    pages_text: List[str] = []

    with pdfplumber.open(file_path) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text and text.strip():
                pages_text.append(text)

        text = "\n".join(pages_text).strip()
        if len(text) >= MIN_PDF_TEXT_LENGTH:
            logger.info(f"Extracted {len(text)} characters from {len(pdf.pages)} PDF page(s)")
            return text

        logger.info(
            f"PDF text layer too short ({len(text)} chars), "
            f"falling back to OCR of first {settings.ocr_max_pages} page(s)"
        )
        ocr_parts = []
        for page in pdf.pages[: settings.ocr_max_pages]:
            rendered = page.to_image(resolution=settings.ocr_dpi)
            ocr_parts.append(ocr_image(rendered.original))

    return "\n".join(part for part in ocr_parts if part).strip()


def extract_spreadsheet_text(file_path: str, mime_type: str) -> str:
    """
    Render a CSV or Excel statement as CSV text for the LLM.

    Args:
        file_path: Path to the spreadsheet
        mime_type: Detected MIME type

    Returns:
        CSV text of all non-empty rows (every sheet for Excel files)
    """
    if mime_type == CSV_MIME:
        frames = {"csv": pd.read_csv(file_path, dtype=str)}
    else:
        engine = "xlrd" if mime_type == XLS_MIME else "openpyxl"
        frames = pd.read_excel(file_path, sheet_name=None, dtype=str, engine=engine)

    parts = []
    for sheet_name, df in frames.items():
        df = df.dropna(how="all")
        if len(df) == 0:
            continue
        logger.info(f"Spreadsheet sheet '{sheet_name}': {len(df)} rows")
        parts.append(df.to_csv(index=False))

    return "\n".join(parts).strip()


def extract_text_from_file(file_path: str, mime_type: str) -> str:
    """
    Extract raw text from a receipt or statement.

    Args:
        file_path: Path to the saved upload
        mime_type: Detected MIME type

    Returns:
        Non-empty extracted text

    Raises:
        FileProcessingError: If the file does not exist
        UnsupportedFileError: If the MIME type is not supported
        ExtractionError: If no text could be extracted
    """
    if not Path(file_path).exists():
        raise FileProcessingError(f"File not found: {file_path}", details={"file_path": file_path})

    logger.info(f"Extracting text from {Path(file_path).name} ({mime_type})")

    try:
        if mime_type == PDF_MIME:
            text = extract_pdf_text(file_path)
        elif mime_type.startswith("image/"):
            text = ocr_image_file(file_path)
        elif mime_type in SPREADSHEET_MIMES:
            text = extract_spreadsheet_text(file_path, mime_type)
        else:
            raise UnsupportedFileError(
                "Unsupported file type",
                details={"mime_type": mime_type}
            )
    except (UnsupportedFileError, ExtractionError):
        raise
    except Exception as e:
        logger.error(f"Failed to read {Path(file_path).name}: {e}")
        raise ExtractionError(
            "Could not read the uploaded document",
            details={"mime_type": mime_type, "error": str(e)}
        )

    text = (text or "").strip()
    if not text:
        raise ExtractionError(
            "No text could be extracted from the document",
            details={"mime_type": mime_type}
        )

    logger.info(f"Extracted {len(text)} characters")
    return text
