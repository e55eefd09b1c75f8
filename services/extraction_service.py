"""
Document extraction service.
Orchestrates file -> text -> LLM -> normalized draft transactions.
"""
from pathlib import Path
from typing import List, Optional

from core.config import get_settings
from core.db import Database, get_db
from core.exceptions import FileProcessingError
from core.logger import setup_logger
from core.parsing import detect_mime_type, extract_text_from_file
from core.schema import ExtractedTransactionOut
from llm.extract import extract_transactions
from services.category_service import CategoryService

logger = setup_logger(__name__)


class ExtractionService:
    """Turns uploaded receipts and statements into draft transactions."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()
        self.settings = get_settings()
        self.category_service = CategoryService(self.db)

    def process_file(
        self,
        user_id: int,
        file_path: str,
        declared_type: Optional[str] = None,
        currency: Optional[str] = None
    ) -> List[ExtractedTransactionOut]:
        """
        Extract draft transactions from a saved upload and delete it afterwards.

        Args:
            user_id: Owner whose categories guide classification
            file_path: Path to the saved upload
            declared_type: Content type sent by the client
            currency: Currency for the drafts

        Returns:
            Normalized draft transactions (not persisted)
        """
        path = Path(file_path)
        try:
            if not path.exists():
                raise FileProcessingError("Uploaded file is missing", details={"file": path.name})

            mime_type = detect_mime_type(file_path, declared_type)
            logger.info(f"Processing upload {path.name} as {mime_type} for user {user_id}")

            text = extract_text_from_file(file_path, mime_type)
            categories = self.category_service.category_names_by_type(user_id)

            return extract_transactions(text, categories, currency=currency)

        finally:
            try:
                if path.exists():
                    path.unlink()
                    logger.debug(f"Cleaned up: {path}")
            except OSError as cleanup_error:
                logger.warning(f"Failed to cleanup {path}: {cleanup_error}")
