"""
tests/conftest.py -- Shared test fixtures for Authflow unit and integration tests.

This module provides:
  - FakeMailer: records OTP emails instead of sending them; can be told to fail
  - FakeClock: epoch-ms clock that tests move forward explicitly
  - store: isolated in-memory AccountStore for unit tests
  - api_client: TestClient wired to a test store, FakeMailer and FakeClock

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because sync route handlers run in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Every fixture instance gets its own database name.

DEBUG must be set before any auth/core import so get_settings()
auto-generates JWT_SECRET instead of raising ValueError. SEND_EMAILS is
turned off so nothing can reach a real SMTP server.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# Must run before any auth/core import
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SEND_EMAILS", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import CredentialService
from auth.store import AccountStore
from auth.verification import VerificationService
from core.errors import DeliveryError

_db_counter = itertools.count()

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


@dataclass
class SentCode:
    kind: str  # "verify" | "reset"
    email: str
    code: str


class FakeMailer:
    """Stand-in for notify.mailer.Mailer with the same async interface."""

    def __init__(self) -> None:
        self.sent: list[SentCode] = []
        self.fail = False

    async def send_verify_otp(self, email: str, code: str) -> None:
        self._record("verify", email, code)

    async def send_reset_otp(self, email: str, code: str) -> None:
        self._record("reset", email, code)

    def _record(self, kind: str, email: str, code: str) -> None:
        if self.fail:
            raise DeliveryError("Failed to send email. Please try again.")
        self.sent.append(SentCode(kind, email, code))

    def last_code(self, kind: str, email: str) -> str:
        for sent in reversed(self.sent):
            if sent.kind == kind and sent.email == email:
                return sent.code
        raise AssertionError(f"no {kind} code sent to {email}")


class FakeClock:
    """Epoch-millisecond clock starting at a fixed instant."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store() -> AccountStore:
    """Create an AccountStore on a fresh named shared-memory SQLite database."""
    name = f"test_accounts_{next(_db_counter)}"
    return AccountStore(f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(store: AccountStore, mailer: FakeMailer, clock: FakeClock):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and doubles into app.state so TestClient routes hit
    real handlers and services without touching SMTP or the wall clock.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.mailer = mailer
        app.state.credential_service = CredentialService(store)
        app.state.verification_service = VerificationService(store, mailer, clock=clock)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = make_test_store()
    yield s
    s.close()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api_client(
    store: AccountStore, mailer: FakeMailer, clock: FakeClock
) -> Generator[tuple[TestClient, FakeMailer, FakeClock], None, None]:
    """Yield (client, mailer, clock) for API integration tests.

    Function-scoped: every test starts with an empty account table and a
    fresh cookie jar.
    """
    app.router.lifespan_context = _patch_lifespan(store, mailer, clock)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, mailer, clock
