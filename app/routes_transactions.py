"""
Transaction endpoints: CRUD, bulk insert, filtered listing with aggregates,
trend statistics, Excel export and document extraction.
"""
import asyncio
import json
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from pydantic import ValidationError as PydanticValidationError

from app.deps import get_current_user, get_extraction_service, get_transaction_service
from core.config import get_settings
from core.exceptions import FileTooLargeError, ValidationError
from core.exporters import XLSX_MEDIA_TYPE, create_export_filename
from core.logger import setup_logger
from core.normalize import MAX_CURRENCY_LENGTH, normalize_currency
from core.schema import (
    StatsPoint,
    TransactionCreate,
    TransactionFilters,
    TransactionOut,
    TransactionPage,
    TransactionUpdate,
    UserOut,
)
from services.extraction_service import ExtractionService
from services.transaction_service import TransactionService

logger = setup_logger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


def split_payment_methods(values: Optional[List[str]]) -> List[str]:
    """
    Flatten paymentMethod query values.

    Accepts repeated parameters, JSON arrays ('["card","upi"]') and
    comma-separated lists ("card,upi").
    """
    methods: List[str] = []
    for value in values or []:
        value = value.strip()
        if value.startswith("["):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                raise ValidationError("paymentMethod must be a valid JSON array", details={"value": value})
            if not isinstance(parsed, list):
                raise ValidationError("paymentMethod must be a valid JSON array", details={"value": value})
            methods.extend(str(item).strip() for item in parsed)
        else:
            methods.extend(part.strip() for part in value.split(",") if part.strip())
    return methods


def transaction_filters(
    category: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    party: Optional[str] = Query(None),
    amount: Optional[float] = Query(None),
    payment_method: Optional[List[str]] = Query(None, alias="paymentMethod"),
    from_date: Optional[str] = Query(None, alias="fromDate"),
    to_date: Optional[str] = Query(None, alias="toDate"),
) -> TransactionFilters:
    """Dependency collecting the listing filters from the query string."""
    try:
        return TransactionFilters(
            category=category or None,
            type=type or None,
            party=party.strip() if party and party.strip() else None,
            amount=amount,
            payment_methods=split_payment_methods(payment_method),
            from_date=from_date or None,
            to_date=to_date or None,
        )
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid transaction filters",
            details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]}
        )


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    return service.create_transaction(user.id, payload)


@router.get("", response_model=TransactionPage)
def list_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    """
    Filtered, paginated transactions with totals and category breakdowns.
    """
    return service.query_transactions(user.id, filters, sort_by=sort_by, limit=limit, page=page)


@router.get("/stats", response_model=List[StatsPoint])
def transaction_stats(
    period: str = Query("weekly"),
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    """Income and expenditure per day (weekly), month (monthly) or year (yearly)."""
    return service.transaction_stats(user.id, period)


@router.post("/bulk", response_model=List[TransactionOut], status_code=201)
def create_bulk_transactions(
    payload: List[TransactionCreate],
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    return service.create_bulk_transactions(user.id, payload)


@router.get("/export")
def export_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    """Download the matching transactions as an Excel workbook."""
    content = service.export_transactions(user.id, filters, sort_by)
    filename = create_export_filename()
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/extract")
async def extract_transactions(
    file: Optional[UploadFile] = File(None),
    currency: Optional[str] = Form(None),
    user: UserOut = Depends(get_current_user),
    service: ExtractionService = Depends(get_extraction_service),
):
    """
    Extract draft transactions from a receipt or bank statement.

    Nothing is saved; the client reviews the drafts and posts them to /bulk.
    """
    if file is None or not file.filename:
        raise ValidationError("File is required")

    currency = normalize_currency(currency)
    if currency and len(currency) > MAX_CURRENCY_LENGTH:
        raise ValidationError(
            f"Currency must be at most {MAX_CURRENCY_LENGTH} characters",
            details={"currency": currency}
        )

    settings = get_settings()
    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise FileTooLargeError(
            f"File exceeds the {settings.max_upload_mb} MB limit",
            details={"size": len(content)}
        )

    safe_name = Path(file.filename).name or "upload"
    upload_path = Path(settings.temp_storage_path) / f"{uuid.uuid4().hex}_{safe_name}"
    upload_path.parent.mkdir(parents=True, exist_ok=True)
    with open(upload_path, "wb") as f:
        f.write(content)

    logger.info(f"Received {safe_name} ({len(content)} bytes) from user {user.id}")

    # OCR and the LLM call block, so they run in the thread pool
    loop = asyncio.get_running_loop()
    drafts = await loop.run_in_executor(
        None,
        service.process_file,
        user.id,
        str(upload_path),
        file.content_type,
        currency,
    )

    items = [draft.model_dump(by_alias=True, mode="json") for draft in drafts]
    if len(items) == 1:
        return {"transaction": items[0]}
    return {"transactions": items}


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    return service.get_transaction(user.id, transaction_id)


@router.api_route("/{transaction_id}", methods=["PUT", "PATCH"], response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    return service.update_transaction(user.id, transaction_id, payload)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    user: UserOut = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
):
    service.delete_transaction(user.id, transaction_id)
    return Response(status_code=204)
