"""
Password hashing and bearer token helpers.
"""
import hashlib
import secrets

import bcrypt

# bcrypt only looks at the first 72 bytes and bcrypt>=5 rejects longer input
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        # Registration never accepts such a password
        return False
    try:
        return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in storage
        return False


def generate_token() -> str:
    """Create an opaque URL-safe bearer token."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Digest stored in place of the token itself."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
