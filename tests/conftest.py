"""
Shared fixtures: isolated settings and database per test, a registered user,
an API client and a scripted LLM client.
"""
from typing import Any, List

import pytest

from core.config import reset_settings
from core.db import get_db, reset_db
from core.schema import RegisterRequest
from llm.client import reset_client


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point settings at a temporary database and upload directory."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "finance.db"))
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "uploads"))
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.delenv("FUZZY_MATCH_THRESHOLD", raising=False)
    reset_settings()
    reset_db()
    reset_client()
    yield
    reset_settings()
    reset_db()
    reset_client()


@pytest.fixture
def db():
    return get_db()


@pytest.fixture
def registered():
    """A freshly registered user (with default categories) and their token."""
    from services.auth_service import AuthService

    return AuthService().register(
        RegisterRequest(name="Asha", email="asha@example.com", password="secret123")
    )


@pytest.fixture
def user(registered):
    return registered.user


@pytest.fixture
def other_user():
    from services.auth_service import AuthService

    return AuthService().register(
        RegisterRequest(name="Ravi", email="ravi@example.com", password="secret456")
    ).user


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.api import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(registered):
    return {"Authorization": f"Bearer {registered.tokens.access.token}"}


class FakeLLMClient:
    """Returns scripted replies in order and records every call."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.calls = []

    def call_json(self, system_prompt: str, user_message: str, temperature: float = 0.1):
        self.calls.append({"system_prompt": system_prompt, "user_message": user_message})
        return self.responses.pop(0)


@pytest.fixture
def fake_llm(monkeypatch):
    """Install a FakeLLMClient; call with the replies it should return."""
    def install(*responses):
        fake = FakeLLMClient(list(responses))
        monkeypatch.setattr("llm.extract.get_client", lambda: fake)
        return fake
    return install
