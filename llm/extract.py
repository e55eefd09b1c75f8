"""
Structured transaction extraction from document text using the LLM.
Handles malformed replies and normalizes every extracted item.
"""
from typing import Dict, List, Optional

from pydantic import ValidationError

from core.config import get_settings
from core.exceptions import ConfigurationError, ExtractionError, LLMError
from core.logger import setup_logger
from core.matching import resolve_category
from core.normalize import (
    clean_amount,
    normalize_currency,
    normalize_payment_method,
    normalize_type,
    parse_document_date,
)
from core.schema import ExtractedTransaction, ExtractedTransactionOut, ExtractionBatch
from llm.client import get_client
from llm.prompts import build_system_prompt, build_user_message

logger = setup_logger(__name__)

# Max retries for validation errors (malformed LLM responses)
MAX_VALIDATION_RETRIES = 3


def normalize_extracted(
    item: ExtractedTransaction,
    categories: Dict[str, List[str]],
    currency: str
) -> Optional[ExtractedTransactionOut]:
    """
    Turn one raw LLM item into a draft transaction.

    Args:
        item: Item as returned by the LLM
        categories: User category names by type
        currency: Currency assigned to the draft

    Returns:
        Normalized draft, or None when the item has no usable type or amount
    """
    txn_type = normalize_type(item.type)
    amount = clean_amount(item.amount)

    if txn_type is None or amount is None:
        logger.warning(
            f"Dropping extracted item with type={item.type!r} amount={item.amount!r}"
        )
        return None

    created_at = parse_document_date(item.date)
    party = item.party.strip() if item.party and item.party.strip() else None

    return ExtractedTransactionOut(
        date=item.date,
        party=party,
        amount=round(amount, 2),
        type=txn_type,
        payment_method=normalize_payment_method(item.payment_method),
        category=resolve_category(item.category, categories.get(txn_type, [])),
        currency=currency,
        description=item.description,
        created_at=created_at,
    )


def extract_transactions(
    text: str,
    categories: Dict[str, List[str]],
    currency: Optional[str] = None,
    temperature: float = 0.1
) -> List[ExtractedTransactionOut]:
    """
    Extract transactions from document text using the LLM.

    Args:
        text: Raw text of the receipt or statement
        categories: {"income": [...], "expenditure": [...]} user category names
        currency: Currency for the drafts (defaults to configured currency)
        temperature: LLM temperature (0.0-1.0)

    Returns:
        List of normalized draft transactions

    Raises:
        LLMError: If the LLM call fails or keeps returning malformed data
        ExtractionError: If the reply holds no usable transaction
    """
    currency = normalize_currency(currency) or normalize_currency(get_settings().default_currency)

    system_prompt = build_system_prompt()
    user_message = build_user_message(text, categories)

    try:
        client = get_client()
    except ConfigurationError as e:
        logger.error(f"LLM client unavailable: {e.message}")
        raise LLMError("Transaction extraction is currently unavailable")

    batch = None
    last_validation_error = None

    for attempt in range(MAX_VALIDATION_RETRIES):
        llm_response = client.call_json(
            system_prompt=system_prompt,
            user_message=user_message,
            temperature=temperature,
        )

        try:
            batch = ExtractionBatch.model_validate(llm_response)
            break
        except ValidationError as e:
            last_validation_error = e
            if attempt < MAX_VALIDATION_RETRIES - 1:
                logger.warning(
                    f"Validation failed (attempt {attempt + 1}/{MAX_VALIDATION_RETRIES}), retrying: {e}"
                )

    if batch is None:
        logger.error(f"LLM response validation failed after {MAX_VALIDATION_RETRIES} attempts")
        raise LLMError(
            "LLM returned malformed transactions",
            details={"error": str(last_validation_error)}
        )

    results = []
    for item in batch.transactions:
        normalized = normalize_extracted(item, categories, currency)
        if normalized is not None:
            results.append(normalized)

    if not results:
        raise ExtractionError(
            "No transactions could be extracted from the document",
            details={"returned_items": len(batch.transactions)}
        )

    logger.info(f"Extracted {len(results)} of {len(batch.transactions)} returned transaction(s)")
    return results
