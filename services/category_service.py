"""
Category management scoped to the owning user.
"""
import sqlite3
from typing import Dict, List, Optional

from core.db import Database, get_db
from core.exceptions import DuplicateError, NotFoundError
from core.logger import setup_logger
from core.normalize import to_db_timestamp, utc_now
from core.schema import CategoryCreate, CategoryOut, CategoryUpdate

logger = setup_logger(__name__)

DEFAULT_INCOME_CATEGORIES = ["Salary", "Bonus", "Interest", "Investment"]
DEFAULT_EXPENDITURE_CATEGORIES = ["Food", "Transport", "Rent", "Utilities", "Health"]
COLORS = ["#4285F4", "#DB4437", "#F4B400", "#0F9D58", "#AB47BC", "#00ACC1", "#FF7043", "#9E9D24"]


def default_categories() -> List[CategoryCreate]:
    """Default category set, income first, colours continuing round-robin."""
    defaults = [
        CategoryCreate(name=name, type="income", color=COLORS[idx % len(COLORS)])
        for idx, name in enumerate(DEFAULT_INCOME_CATEGORIES)
    ]
    offset = len(DEFAULT_INCOME_CATEGORIES)
    defaults.extend(
        CategoryCreate(name=name, type="expenditure", color=COLORS[(offset + idx) % len(COLORS)])
        for idx, name in enumerate(DEFAULT_EXPENDITURE_CATEGORIES)
    )
    return defaults


class CategoryService:
    """CRUD for user-defined income and expenditure categories."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()

    def _insert(self, conn: sqlite3.Connection, user_id: int, data: CategoryCreate) -> int:
        now = to_db_timestamp(utc_now())
        try:
            cursor = conn.execute(
                "INSERT INTO categories (user_id, name, type, color, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, data.name, data.type, data.color, now, now)
            )
        except sqlite3.IntegrityError:
            raise DuplicateError(
                f"Category '{data.name}' already exists",
                details={"name": data.name}
            )
        return cursor.lastrowid

    def _fetch(self, conn: sqlite3.Connection, user_id: int, category_id: int) -> CategoryOut:
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ? AND user_id = ?",
            (category_id, user_id)
        ).fetchone()
        if row is None:
            raise NotFoundError("Category not found", details={"category_id": category_id})
        return CategoryOut.model_validate(dict(row))

    def create_category(self, user_id: int, data: CategoryCreate) -> CategoryOut:
        with self.db.connect() as conn:
            category_id = self._insert(conn, user_id, data)
            category = self._fetch(conn, user_id, category_id)
        logger.info(f"User {user_id} created category {category_id} ({data.type})")
        return category

    def list_categories(self, user_id: int) -> List[CategoryOut]:
        """All categories of the user, newest first."""
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM categories WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,)
            ).fetchall()
        return [CategoryOut.model_validate(dict(row)) for row in rows]

    def get_category(self, user_id: int, category_id: int) -> CategoryOut:
        with self.db.connect() as conn:
            return self._fetch(conn, user_id, category_id)

    def update_category(self, user_id: int, category_id: int, data: CategoryUpdate) -> CategoryOut:
        changes = data.model_dump(exclude_unset=True)
        with self.db.connect() as conn:
            self._fetch(conn, user_id, category_id)
            assignments = ", ".join(f"{field} = ?" for field in changes)
            params = list(changes.values()) + [to_db_timestamp(utc_now()), category_id, user_id]
            try:
                conn.execute(
                    f"UPDATE categories SET {assignments}, updated_at = ? WHERE id = ? AND user_id = ?",
                    params
                )
            except sqlite3.IntegrityError:
                raise DuplicateError(
                    f"Category '{changes.get('name')}' already exists",
                    details={"name": changes.get("name")}
                )
            return self._fetch(conn, user_id, category_id)

    def delete_category(self, user_id: int, category_id: int) -> None:
        with self.db.connect() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ? AND user_id = ?",
                (category_id, user_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Category not found", details={"category_id": category_id})
        logger.info(f"User {user_id} deleted category {category_id}")

    def seed_default_categories(self, user_id: int, conn: Optional[sqlite3.Connection] = None) -> int:
        """
        Create the default categories for a user who has none.

        Args:
            user_id: Owner id
            conn: Open connection to reuse (the caller's transaction)

        Returns:
            Number of categories created
        """
        if conn is None:
            with self.db.connect() as own_conn:
                return self.seed_default_categories(user_id, own_conn)

        existing = conn.execute(
            "SELECT 1 FROM categories WHERE user_id = ? LIMIT 1", (user_id,)
        ).fetchone()
        if existing:
            return 0

        defaults = default_categories()
        for data in defaults:
            self._insert(conn, user_id, data)
        logger.info(f"Seeded {len(defaults)} default categories for user {user_id}")
        return len(defaults)

    def category_names_by_type(self, user_id: int) -> Dict[str, List[str]]:
        """Category names grouped by transaction type, for LLM prompting."""
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT name, type FROM categories WHERE user_id = ? ORDER BY name",
                (user_id,)
            ).fetchall()

        names: Dict[str, List[str]] = {"income": [], "expenditure": []}
        for row in rows:
            names[row["type"]].append(row["name"])
        return names
