"""
Shared FastAPI dependencies: services and the authenticated user.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.exceptions import AuthenticationError
from core.schema import UserOut
from services.auth_service import AuthService
from services.budget_service import BudgetService
from services.category_service import CategoryService
from services.extraction_service import ExtractionService
from services.transaction_service import TransactionService

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> AuthService:
    return AuthService()


def get_category_service() -> CategoryService:
    return CategoryService()


def get_transaction_service() -> TransactionService:
    return TransactionService()


def get_budget_service() -> BudgetService:
    return BudgetService()


def get_extraction_service() -> ExtractionService:
    return ExtractionService()


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Raw bearer token from the Authorization header."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Please authenticate")
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserOut:
    """
    Resolve the authenticated user. Typical usage in routes:
        user: UserOut = Depends(get_current_user)
    """
    return auth_service.resolve_token(token)
