"""
User registration, login and bearer token resolution.
"""
import sqlite3
from datetime import timedelta
from typing import Optional, Tuple

from core.config import get_settings
from core.db import Database, get_db
from core.exceptions import AuthenticationError, DuplicateError
from core.logger import setup_logger
from core.normalize import to_db_timestamp, utc_now
from core.schema import AccessToken, AuthResponse, LoginRequest, RegisterRequest, TokenBundle, UserOut
from core.security import generate_token, hash_password, hash_token, verify_password
from services.category_service import CategoryService

logger = setup_logger(__name__)

INVALID_CREDENTIALS = "Incorrect email or password"


class AuthService:
    """Issues and resolves opaque bearer tokens for registered users."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_db()
        self.settings = get_settings()
        self.category_service = CategoryService(self.db)

    def _issue_token(self, conn: sqlite3.Connection, user_id: int) -> AccessToken:
        token = generate_token()
        now = utc_now()
        expires = now + timedelta(minutes=self.settings.token_expire_minutes)
        conn.execute(
            "INSERT INTO auth_tokens (token_hash, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (hash_token(token), user_id, to_db_timestamp(now), to_db_timestamp(expires))
        )
        return AccessToken(token=token, expires=expires)

    @staticmethod
    def _user_out(row: sqlite3.Row) -> UserOut:
        return UserOut.model_validate({
            "id": row["id"],
            "name": row["name"],
            "email": row["email"],
            "created_at": row["created_at"],
        })

    def register(self, data: RegisterRequest) -> AuthResponse:
        """
        Create a user, seed their default categories and log them in.

        Raises:
            DuplicateError: If the email is already registered
        """
        now = to_db_timestamp(utc_now())
        with self.db.connect() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (name, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (data.name, data.email, hash_password(data.password), now)
                )
            except sqlite3.IntegrityError:
                raise DuplicateError("Email already taken", details={"email": data.email})

            user_id = cursor.lastrowid
            self.category_service.seed_default_categories(user_id, conn)
            token = self._issue_token(conn, user_id)
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

        logger.info(f"Registered user {user_id}")
        return AuthResponse(user=self._user_out(row), tokens=TokenBundle(access=token))

    def login(self, data: LoginRequest) -> AuthResponse:
        """
        Check credentials and issue a new token.

        Raises:
            AuthenticationError: If the email is unknown or the password wrong
        """
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (data.email.lower(),)
            ).fetchone()
            if row is None or not verify_password(data.password, row["password_hash"]):
                logger.info("Rejected login attempt")
                raise AuthenticationError(INVALID_CREDENTIALS)

            token = self._issue_token(conn, row["id"])

        logger.info(f"User {row['id']} logged in")
        return AuthResponse(user=self._user_out(row), tokens=TokenBundle(access=token))

    def logout(self, token: str) -> None:
        """Revoke a token. Unknown tokens are ignored."""
        with self.db.connect() as conn:
            conn.execute("DELETE FROM auth_tokens WHERE token_hash = ?", (hash_token(token),))

    def resolve_token(self, token: str) -> UserOut:
        """
        Find the user a bearer token belongs to.

        Raises:
            AuthenticationError: If the token is unknown or expired
        """
        now = to_db_timestamp(utc_now())
        with self.db.connect() as conn:
            row = conn.execute(
                "SELECT u.*, t.expires_at FROM auth_tokens t "
                "JOIN users u ON u.id = t.user_id WHERE t.token_hash = ?",
                (hash_token(token),)
            ).fetchone()

            if row is None:
                raise AuthenticationError("Please authenticate")

            expired = row["expires_at"] <= now
            if expired:
                conn.execute("DELETE FROM auth_tokens WHERE token_hash = ?", (hash_token(token),))

        if expired:
            raise AuthenticationError("Token expired")
        return self._user_out(row)

    def purge_expired_tokens(self) -> int:
        """Delete expired tokens, returning how many were removed."""
        now = to_db_timestamp(utc_now())
        with self.db.connect() as conn:
            cursor = conn.execute("DELETE FROM auth_tokens WHERE expires_at <= ?", (now,))
        if cursor.rowcount:
            logger.info(f"Purged {cursor.rowcount} expired token(s)")
        return cursor.rowcount
