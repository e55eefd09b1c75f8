"""
Authentication endpoints: register, login, logout, current user.
"""
from fastapi import APIRouter, Depends, Response

from app.deps import get_auth_service, get_bearer_token, get_current_user
from core.logger import setup_logger
from core.schema import AuthResponse, LoginRequest, RegisterRequest, UserOut
from services.auth_service import AuthService

logger = setup_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Create an account (with default categories) and return an access token."""
    return auth_service.register(payload)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    return auth_service.login(payload)


@router.post("/logout", status_code=204)
def logout(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke the presented token."""
    auth_service.logout(token)
    return Response(status_code=204)


@router.get("/me", response_model=UserOut)
def me(user: UserOut = Depends(get_current_user)):
    return user
