"""
Pytest configuration and shared fixtures.

Environment is pinned before any ``inflio`` import so settings, the engine
and the provider clients all come up in offline mode against in-memory
SQLite.
"""

import asyncio
import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("APP_URL", "https://app.example.com")
for _key in ("OPENAI_API_KEY", "GROQ_API_KEY", "FAL_KEY", "ASSEMBLYAI_API_KEY", "KLAP_API_KEY", "CLERK_ISSUER"):
    os.environ[_key] = ""

from inflio.database import drop_db, get_session_context, init_db  # noqa: E402


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no database)")
    config.addinivalue_line("markers", "integration: Tests that hit the SQLite database")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")


@pytest.fixture
def db():
    """Fresh schema per test."""
    asyncio.run(init_db())
    yield get_session_context
    asyncio.run(drop_db())


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def fake_sleep():
    return FakeSleep()
