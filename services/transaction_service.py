"""
Transaction service.
Encapsulates storage, filtering, pagination, aggregation and trend statistics.
"""
import math
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from core.config import get_settings
from core.db import Database, get_db
from core.exceptions import NotFoundError, ValidationError
from core.exporters import export_to_excel
from core.logger import setup_logger
from core.normalize import end_bound, start_bound, to_db_timestamp, utc_now
from core.schema import (
    BreakdownItem,
    StatsPoint,
    TransactionCreate,
    TransactionFilters,
    TransactionOut,
    TransactionPage,
    TransactionUpdate,
)

logger = setup_logger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT = "created_at ASC"

# Public sort keys (camelCase and snake_case) -> column
SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "amount": "amount",
    "party": "party",
    "category": "category",
    "type": "type",
    "currency": "currency",
    "paymentMethod": "payment_method",
    "payment_method": "payment_method",
}

# period -> (strftime bucket format)
STATS_BUCKETS = {
    "weekly": "%Y-%m-%d",
    "monthly": "%Y-%m",
    "yearly": "%Y",
}

WRITABLE_FIELDS = (
    "party", "category", "type", "currency", "amount",
    "description", "payment_method", "created_at",
)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parse_sort_by(sort_by: Optional[str]) -> str:
    """
    Translate a "field:order[,field:order]" expression into ORDER BY terms.

    Args:
        sort_by: e.g. "amount:desc,createdAt:asc"; order defaults to asc

    Returns:
        ORDER BY clause body with id as final tie-break

    Raises:
        ValidationError: If a field or order is not supported
    """
    terms = []
    for criterion in (sort_by or "").split(","):
        criterion = criterion.strip()
        if not criterion:
            continue

        key, _, order = criterion.partition(":")
        column = SORT_FIELDS.get(key.strip())
        if column is None:
            raise ValidationError(
                f"Cannot sort by '{key.strip()}'",
                details={"allowed": sorted(k for k in SORT_FIELDS if "_" not in k)}
            )

        order = (order.strip() or "asc").lower()
        if order not in ("asc", "desc"):
            raise ValidationError(f"Invalid sort order '{order}'", details={"allowed": ["asc", "desc"]})

        terms.append(f"{column} {order.upper()}")

    if not terms:
        terms.append(DEFAULT_SORT)
    terms.append("id ASC")
    return ", ".join(terms)


def build_filter(user_id: int, filters: TransactionFilters) -> Tuple[str, List[Any]]:
    """
    Build the WHERE clause for a user's transactions.

    Args:
        user_id: Owner id (always applied)
        filters: Query filters

    Returns:
        Tuple of (clause, params)
    """
    clauses = ["user_id = ?"]
    params: List[Any] = [user_id]

    if filters.category:
        clauses.append("category = ?")
        params.append(filters.category)

    if filters.type:
        clauses.append("type = ?")
        params.append(filters.type)

    if filters.party:
        clauses.append("party LIKE ? ESCAPE '\\'")
        params.append(f"%{escape_like(filters.party.strip())}%")

    if filters.amount is not None:
        clauses.append("amount = ?")
        params.append(filters.amount)

    if filters.payment_methods:
        placeholders = ", ".join("?" for _ in filters.payment_methods)
        clauses.append(f"payment_method IN ({placeholders})")
        params.extend(filters.payment_methods)

    if filters.from_date:
        clauses.append("created_at >= ?")
        params.append(start_bound(filters.from_date))

    if filters.to_date:
        clauses.append("created_at <= ?")
        params.append(end_bound(filters.to_date))

    return " AND ".join(clauses), params


def stats_window_start(period: str, now: datetime) -> datetime:
    """
    First instant covered by a trend period.

    weekly covers today and the six days before, monthly the current and
    eleven previous months, yearly the current and four previous years.

    Raises:
        ValidationError: If the period is unknown
    """
    if period == "weekly":
        return (now - timedelta(days=6)).replace(hour=0, minute=0, second=0, microsecond=0)

    if period == "monthly":
        year, month = now.year, now.month - 11
        if month <= 0:
            month += 12
            year -= 1
        return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)

    if period == "yearly":
        return now.replace(year=now.year - 4, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)

    raise ValidationError("Invalid period", details={"period": period, "allowed": list(STATS_BUCKETS)})


class TransactionService:
    """Service for recording and analysing a user's transactions."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize transaction service."""
        self.db = db or get_db()
        self.settings = get_settings()

    def _row_values(self, data: TransactionCreate) -> Dict[str, Any]:
        now = utc_now()
        return {
            "party": data.party or None,
            "category": data.category,
            "type": data.type,
            "currency": (data.currency or self.settings.default_currency).upper(),
            "amount": data.amount,
            "description": data.description,
            "payment_method": data.payment_method,
            "created_at": to_db_timestamp(data.created_at or now),
            "updated_at": to_db_timestamp(now),
        }

    def _insert(self, conn: sqlite3.Connection, user_id: int, data: TransactionCreate) -> int:
        values = self._row_values(data)
        columns = ", ".join(["user_id", *values])
        placeholders = ", ".join("?" for _ in range(len(values) + 1))
        cursor = conn.execute(
            f"INSERT INTO transactions ({columns}) VALUES ({placeholders})",
            [user_id, *values.values()]
        )
        return cursor.lastrowid

    def _fetch(self, conn: sqlite3.Connection, user_id: int, transaction_id: int) -> TransactionOut:
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ? AND user_id = ?",
            (transaction_id, user_id)
        ).fetchone()
        if row is None:
            raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
        return TransactionOut.model_validate(dict(row))

    def create_transaction(self, user_id: int, data: TransactionCreate) -> TransactionOut:
        with self.db.connect() as conn:
            transaction_id = self._insert(conn, user_id, data)
            transaction = self._fetch(conn, user_id, transaction_id)
        logger.info(f"User {user_id} created transaction {transaction_id}")
        return transaction

    def create_bulk_transactions(self, user_id: int, items: List[TransactionCreate]) -> List[TransactionOut]:
        """
        Insert several transactions atomically.

        Raises:
            ValidationError: If no items are given
        """
        if not items:
            raise ValidationError("At least one transaction is required")

        with self.db.connect() as conn:
            ids = [self._insert(conn, user_id, item) for item in items]
            placeholders = ", ".join("?" for _ in ids)
            rows = conn.execute(
                f"SELECT * FROM transactions WHERE user_id = ? AND id IN ({placeholders}) ORDER BY id",
                [user_id, *ids]
            ).fetchall()

        logger.info(f"User {user_id} bulk-created {len(ids)} transactions")
        return [TransactionOut.model_validate(dict(row)) for row in rows]

    def get_transaction(self, user_id: int, transaction_id: int) -> TransactionOut:
        with self.db.connect() as conn:
            return self._fetch(conn, user_id, transaction_id)

    def update_transaction(self, user_id: int, transaction_id: int, data: TransactionUpdate) -> TransactionOut:
        changes = data.model_dump(exclude_unset=True)
        if "created_at" in changes:
            changes["created_at"] = to_db_timestamp(changes["created_at"])
        if "currency" in changes:
            changes["currency"] = changes["currency"].upper()
        changes = {field: value for field, value in changes.items() if field in WRITABLE_FIELDS}
        changes["updated_at"] = to_db_timestamp(utc_now())

        with self.db.connect() as conn:
            self._fetch(conn, user_id, transaction_id)
            assignments = ", ".join(f"{field} = ?" for field in changes)
            conn.execute(
                f"UPDATE transactions SET {assignments} WHERE id = ? AND user_id = ?",
                [*changes.values(), transaction_id, user_id]
            )
            transaction = self._fetch(conn, user_id, transaction_id)

        logger.info(f"User {user_id} updated transaction {transaction_id}")
        return transaction

    def delete_transaction(self, user_id: int, transaction_id: int) -> None:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM transactions WHERE id = ? AND user_id = ?",
                (transaction_id, user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Transaction not found", details={"transaction_id": transaction_id})
        logger.info(f"User {user_id} deleted transaction {transaction_id}")

    def _breakdown(
        self,
        conn: sqlite3.Connection,
        user_id: int,
        filters: TransactionFilters,
        txn_type: str
    ) -> List[BreakdownItem]:
        """Sum of amounts per category for one transaction type."""
        where, params = build_filter(user_id, filters.model_copy(update={"type": txn_type}))
        rows = conn.execute(
            f"SELECT category AS name, SUM(amount) AS value, COUNT(*) AS count "
            f"FROM transactions WHERE {where} "
            f"GROUP BY category ORDER BY value DESC, name ASC",
            params
        ).fetchall()
        return [
            BreakdownItem(name=row["name"], value=round(row["value"], 2), count=row["count"])
            for row in rows
        ]

    def query_transactions(
        self,
        user_id: int,
        filters: Optional[TransactionFilters] = None,
        sort_by: Optional[str] = None,
        limit: Optional[int] = None,
        page: Optional[int] = None
    ) -> TransactionPage:
        """
        Paginated listing plus totals and category breakdowns.

        Totals and breakdowns cover every matching transaction, not just the page.

        Args:
            user_id: Owner id
            filters: Query filters
            sort_by: Sort expression (see parse_sort_by)
            limit: Page size (1..100, default 10)
            page: 1-based page number

        Returns:
            TransactionPage
        """
        filters = filters or TransactionFilters()
        limit = min(max(int(limit or DEFAULT_LIMIT), 1), MAX_LIMIT)
        page = max(int(page or 1), 1)
        order_by = parse_sort_by(sort_by)
        where, params = build_filter(user_id, filters)

        with self.db.connect() as conn:
            total_results = conn.execute(
                f"SELECT COUNT(*) FROM transactions WHERE {where}", params
            ).fetchone()[0]

            rows = conn.execute(
                f"SELECT * FROM transactions WHERE {where} ORDER BY {order_by} LIMIT ? OFFSET ?",
                [*params, limit, (page - 1) * limit]
            ).fetchall()

            totals = conn.execute(
                f"SELECT type, SUM(amount) AS total_amount, COUNT(*) AS count "
                f"FROM transactions WHERE {where} GROUP BY type",
                params
            ).fetchall()

            income_breakdown = self._breakdown(conn, user_id, filters, "income")
            expenditure_breakdown = self._breakdown(conn, user_id, filters, "expenditure")

        total_income = 0.0
        total_expenditure = 0.0
        total_transactions = 0
        for item in totals:
            if item["type"] == "income":
                total_income = item["total_amount"]
            elif item["type"] == "expenditure":
                total_expenditure = item["total_amount"]
            total_transactions += item["count"]

        return TransactionPage(
            results=[TransactionOut.model_validate(dict(row)) for row in rows],
            page=page,
            limit=limit,
            total_pages=math.ceil(total_results / limit),
            total_results=total_results,
            total_income=round(total_income, 2),
            total_expenditure=round(total_expenditure, 2),
            total_transactions=total_transactions,
            total_balance=round(total_income - total_expenditure, 2),
            income_breakdown=income_breakdown,
            expenditure_breakdown=expenditure_breakdown,
        )

    def list_all(
        self,
        user_id: int,
        filters: Optional[TransactionFilters] = None,
        sort_by: Optional[str] = None
    ) -> List[TransactionOut]:
        """Every matching transaction, unpaginated."""
        where, params = build_filter(user_id, filters or TransactionFilters())
        order_by = parse_sort_by(sort_by)
        with self.db.connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM transactions WHERE {where} ORDER BY {order_by}", params
            ).fetchall()
        return [TransactionOut.model_validate(dict(row)) for row in rows]

    def transaction_stats(
        self,
        user_id: int,
        period: str = "weekly",
        now: Optional[datetime] = None
    ) -> List[StatsPoint]:
        """
        Income and expenditure totals per time bucket.

        Args:
            user_id: Owner id
            period: "weekly" (days), "monthly" (months) or "yearly" (years)
            now: Reference time (defaults to current UTC time)

        Returns:
            One StatsPoint per bucket holding data, oldest first

        Raises:
            ValidationError: If the period is unknown
        """
        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        date_from = stats_window_start(period, now)
        bucket_format = STATS_BUCKETS[period]

        logger.debug(f"Fetching {period} stats for user {user_id} from {date_from.isoformat()}")

        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT strftime(?, created_at) AS bucket, type, SUM(amount) AS total_amount "
                "FROM transactions WHERE user_id = ? AND created_at >= ? "
                "GROUP BY bucket, type ORDER BY bucket",
                (bucket_format, user_id, to_db_timestamp(date_from))
            ).fetchall()

        result: Dict[str, Dict[str, float]] = {}
        for row in rows:
            bucket = result.setdefault(row["bucket"], {"income": 0.0, "expenditure": 0.0})
            bucket[row["type"]] = round(row["total_amount"], 2)

        return [StatsPoint(date=bucket, **values) for bucket, values in result.items()]

    def export_transactions(
        self,
        user_id: int,
        filters: Optional[TransactionFilters] = None,
        sort_by: Optional[str] = None
    ) -> bytes:
        """Export every matching transaction as an xlsx workbook."""
        transactions = self.list_all(user_id, filters, sort_by)
        return export_to_excel(transactions)

    def spent_by_category(self, user_id: int, since: datetime) -> Dict[str, float]:
        """Expenditure per category since the given instant."""
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT category, SUM(amount) AS spent FROM transactions "
                "WHERE user_id = ? AND type = 'expenditure' AND created_at >= ? "
                "GROUP BY category",
                (user_id, to_db_timestamp(since))
            ).fetchall()
        return {row["category"]: row["spent"] for row in rows}
