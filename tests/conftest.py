"""Shared test fixtures.

Database-backed tests get a fresh in-memory SQLite database with the plan catalog
seeded. Redis is never initialised, so the rate limiter passes requests
through. Notifications are captured instead of sent.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Iterator
from typing import Any

os.environ.update(
    {
        "QAF_DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "QAF_JWT_SECRET": "test-secret-key-with-enough-length-for-hs256",
        "QAF_NOTIFICATION_BACKEND": "log",
        "QAF_PAYMENT_BACKEND": "sandbox",
        "QAF_MEDIA_BACKEND": "local",
        "QAF_MEDIA_ROOT": tempfile.mkdtemp(prefix="qaforum_media_"),
        # Time-of-day windows fully open unless a test narrows them
        "QAF_PAYMENT_WINDOW_START_MINUTE": "0",
        "QAF_PAYMENT_WINDOW_END_MINUTE": "1440",
        "QAF_MOBILE_LOGIN_WINDOW_START_MINUTE": "0",
        "QAF_MOBILE_LOGIN_WINDOW_END_MINUTE": "1440",
        "QAF_LOG_FORMAT": "console",
    }
)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from qaforum.config import get_settings  # noqa: E402

get_settings.cache_clear()

from qaforum.auth.jwt import create_access_token  # noqa: E402
from qaforum.auth.service import register_user  # noqa: E402
from qaforum.database import close_db, create_schema, get_session_factory, init_db  # noqa: E402
from qaforum.db.models import User  # noqa: E402
from qaforum.main import create_app  # noqa: E402
from qaforum.notifications.service import (  # noqa: E402
    LogEmailProvider,
    LogSmsProvider,
    NotificationService,
    reset_notification_service,
    set_notification_service,
)
from qaforum.social.media import reset_media_storage  # noqa: E402
from qaforum.subscriptions.payments import reset_payment_gateways  # noqa: E402
from qaforum.subscriptions.plans import seed_plans  # noqa: E402

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.91"
)
FIREFOX_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)


class RecordingNotifier(NotificationService):
    """Keeps every message instead of sending it."""

    def __init__(self) -> None:
        super().__init__(email_provider=LogEmailProvider(), sms_provider=LogSmsProvider())
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.fail = False

    async def notify(self, channel: str, recipient: str, payload: dict[str, Any]) -> bool:  # type: ignore[override]
        self.sent.append((channel, recipient, payload))
        return not self.fail

    def last(self, template: str) -> dict[str, Any]:
        """Context of the most recent message rendered with ``template``."""
        for _, _, payload in reversed(self.sent):
            if payload["template"] == template:
                return payload["context"]
        msg = f"no {template} message was sent"
        raise AssertionError(msg)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema and plan catalog per test."""
    settings = get_settings()
    await init_db(settings.database_url)
    await create_schema()
    async with get_session_factory()() as session:
        await seed_plans(session)
    yield
    await close_db()


@pytest.fixture(autouse=True)
def notifier() -> Iterator[RecordingNotifier]:
    recorder = RecordingNotifier()
    set_notification_service(recorder)
    yield recorder
    reset_notification_service()


@pytest.fixture(autouse=True)
def _reset_providers() -> Iterator[None]:
    reset_payment_gateways()
    reset_media_storage()
    yield
    reset_payment_gateways()
    reset_media_storage()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh app (lifespan is handled by the fixtures above)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(
    name: str = "Alice",
    email: str = "alice@example.com",
    password: str = "secret123",
    phone: str | None = None,
) -> User:
    """Create and commit a user through the service layer."""
    async with get_session_factory()() as session:
        user = await register_user(session, name=name, email=email, password=password, phone=phone)
        await session.commit()
        return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def alice(database: None) -> User:
    return await make_user()


@pytest_asyncio.fixture
async def bob(database: None) -> User:
    return await make_user(name="Bob", email="bob@example.com", phone="+911234567890")


async def points_of(user_id: int) -> int | None:
    """Current balance read through a fresh session, None when there is no account."""
    from qaforum.rewards.service import get_account

    async with get_session_factory()() as session:
        reward = await get_account(session, user_id)
        return reward.points if reward is not None else None
