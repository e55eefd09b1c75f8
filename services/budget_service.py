"""
Budget service.
Per-category spending limits with spend computed from expenditure transactions.
"""
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from core.db import Database, get_db
from core.exceptions import DuplicateError, NotFoundError
from core.logger import setup_logger
from core.normalize import to_db_timestamp, utc_now
from core.schema import BudgetCreate, BudgetOut, BudgetSummary, BudgetUpdate
from services.transaction_service import TransactionService

logger = setup_logger(__name__)

# Share of the limit at which a budget is flagged as near its limit
NEAR_LIMIT_RATIO = 0.8


def period_start(period: str, now: datetime) -> datetime:
    """
    Start of the budget period containing now.

    Weeks start on Monday, months on the 1st, years on 1 January.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "weekly":
        return midnight - timedelta(days=midnight.weekday())
    if period == "monthly":
        return midnight.replace(day=1)
    return midnight.replace(month=1, day=1)


def budget_status(spent: float, limit: float) -> str:
    if spent > limit:
        return "over"
    if limit > 0 and spent >= limit * NEAR_LIMIT_RATIO:
        return "near"
    return "ok"


class BudgetService:
    """CRUD for budgets plus spend tracking against their limits."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()
        self.transaction_service = TransactionService(self.db)

    def _spent_lookup(self, user_id: int, now: datetime) -> Dict[str, Dict[str, float]]:
        """period -> {category: spent} for the current period windows."""
        return {
            period: self.transaction_service.spent_by_category(user_id, period_start(period, now))
            for period in ("weekly", "monthly", "yearly")
        }

    @staticmethod
    def _to_out(row: sqlite3.Row, spent: float) -> BudgetOut:
        limit = row["limit_amount"]
        spent = round(spent, 2)
        return BudgetOut(
            id=row["id"],
            category=row["category"],
            limit=limit,
            period=row["period"],
            spent=spent,
            remaining=round(limit - spent, 2),
            percentage=round(spent / limit * 100, 2) if limit else 0.0,
            status=budget_status(spent, limit),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _fetch_row(self, conn: sqlite3.Connection, user_id: int, budget_id: int) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM budgets WHERE id = ? AND user_id = ?", (budget_id, user_id)
        ).fetchone()
        if row is None:
            raise NotFoundError("Budget not found", details={"budget_id": budget_id})
        return row

    def _with_spend(self, user_id: int, row: sqlite3.Row, now: Optional[datetime] = None) -> BudgetOut:
        now = now or utc_now()
        spent = self.transaction_service.spent_by_category(user_id, period_start(row["period"], now))
        return self._to_out(row, spent.get(row["category"], 0.0))

    def create_budget(self, user_id: int, data: BudgetCreate) -> BudgetOut:
        now = to_db_timestamp(utc_now())
        with self.db.connect() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO budgets (user_id, category, limit_amount, period, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (user_id, data.category, data.limit, data.period, now, now)
                )
            except sqlite3.IntegrityError:
                raise DuplicateError(
                    f"A {data.period} budget for '{data.category}' already exists",
                    details={"category": data.category, "period": data.period}
                )
            row = self._fetch_row(conn, user_id, cursor.lastrowid)

        logger.info(f"User {user_id} created {data.period} budget {row['id']}")
        return self._with_spend(user_id, row)

    def list_budgets(self, user_id: int, now: Optional[datetime] = None) -> List[BudgetOut]:
        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM budgets WHERE user_id = ? ORDER BY category, period", (user_id,)
            ).fetchall()

        spent = self._spent_lookup(user_id, now) if rows else {}
        return [
            self._to_out(row, spent[row["period"]].get(row["category"], 0.0))
            for row in rows
        ]

    def get_budget(self, user_id: int, budget_id: int) -> BudgetOut:
        with self.db.connect() as conn:
            row = self._fetch_row(conn, user_id, budget_id)
        return self._with_spend(user_id, row)

    def update_budget(self, user_id: int, budget_id: int, data: BudgetUpdate) -> BudgetOut:
        changes = data.model_dump(exclude_unset=True)
        if "limit" in changes:
            changes["limit_amount"] = changes.pop("limit")
        changes["updated_at"] = to_db_timestamp(utc_now())

        with self.db.connect() as conn:
            self._fetch_row(conn, user_id, budget_id)
            assignments = ", ".join(f"{field} = ?" for field in changes)
            try:
                conn.execute(
                    f"UPDATE budgets SET {assignments} WHERE id = ? AND user_id = ?",
                    [*changes.values(), budget_id, user_id]
                )
            except sqlite3.IntegrityError:
                raise DuplicateError(
                    "A budget for this category and period already exists",
                    details={"budget_id": budget_id}
                )
            row = self._fetch_row(conn, user_id, budget_id)

        return self._with_spend(user_id, row)

    def delete_budget(self, user_id: int, budget_id: int) -> None:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM budgets WHERE id = ? AND user_id = ?", (budget_id, user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Budget not found", details={"budget_id": budget_id})
        logger.info(f"User {user_id} deleted budget {budget_id}")

    def budget_summary(self, user_id: int, now: Optional[datetime] = None) -> BudgetSummary:
        """Totals across all of the user's budgets."""
        budgets = self.list_budgets(user_id, now)

        total_budget = sum(b.limit for b in budgets)
        total_spent = sum(b.spent for b in budgets)

        return BudgetSummary(
            total_budget=round(total_budget, 2),
            total_spent=round(total_spent, 2),
            remaining=round(total_budget - total_spent, 2),
            over_budget_count=sum(1 for b in budgets if b.status == "over"),
            near_limit_count=sum(1 for b in budgets if b.status == "near"),
            usage_percentage=round(total_spent / total_budget * 100, 2) if total_budget else 0.0,
        )
