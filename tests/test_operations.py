import json
from contextlib import asynccontextmanager

import httpx
import pytest
from sqlalchemy import func, select

from conftest import create_user
from vivaform_api import cli
from vivaform_api.core.settings import AppSettings
from vivaform_api.db import seed
from vivaform_api.db.models.admin import AppSetting, FeatureToggle
from vivaform_api.db.models.catalog import FoodItem, MealTemplate
from vivaform_api.db.models.users import User
from vivaform_api.services import email as email_module
from vivaform_api.services.email import SENDGRID_URL, EmailService

pytestmark = pytest.mark.asyncio


@pytest.fixture(name="scoped_sessions")
def scoped_sessions_fixture(session_maker, monkeypatch):
    """Point seed and CLI session_scope at the test database."""

    @asynccontextmanager
    async def scope():
        async with session_maker() as session:
            yield session

    async def no_dispose():
        return None

    monkeypatch.setattr(seed, "session_scope", scope)
    monkeypatch.setattr(cli, "session_scope", scope)
    monkeypatch.setattr(cli, "dispose_engine", no_dispose)
    return session_maker


async def row_count(session_maker, model) -> int:
    async with session_maker() as session:
        return int((await session.execute(select(func.count()).select_from(model))).scalar_one())


async def get_user(session_maker, email: str) -> User:
    async with session_maker() as session:
        return (await session.execute(select(User).where(User.email == email))).scalar_one()


# Seeding
async def test_seed_is_idempotent_and_creates_admin(scoped_sessions, monkeypatch):
    monkeypatch.setattr(
        seed, "get_app_settings", lambda: AppSettings(SEED_ADMIN_EMAIL="ops@example.com", SEED_ADMIN_PASSWORD="Adm1nPass!")
    )

    await seed.seed_all()
    counts = {model: await row_count(scoped_sessions, model) for model in (FoodItem, MealTemplate, FeatureToggle, AppSetting)}
    assert counts[FoodItem] == len(seed.FOODS)
    assert counts[MealTemplate] == len(seed.MEAL_TEMPLATES)
    assert counts[FeatureToggle] == len(seed.FEATURE_TOGGLES)
    assert counts[AppSetting] == len(seed.DEFAULT_APP_SETTINGS)

    admin = await get_user(scoped_sessions, "ops@example.com")
    assert admin.role == "ADMIN"
    assert admin.tier == "PREMIUM"

    await seed.seed_all()
    for model, expected in counts.items():
        assert await row_count(scoped_sessions, model) == expected
    assert await row_count(scoped_sessions, User) == 1


async def test_seed_promotes_existing_admin_account(scoped_sessions, monkeypatch):
    await create_user(scoped_sessions, "ops@example.com")
    monkeypatch.setattr(
        seed, "get_app_settings", lambda: AppSettings(SEED_ADMIN_EMAIL="ops@example.com", SEED_ADMIN_PASSWORD="Adm1nPass!")
    )

    await seed.seed_all()
    user = await get_user(scoped_sessions, "ops@example.com")
    assert user.role == "ADMIN"
    assert user.tier == "FREE"
    assert await row_count(scoped_sessions, User) == 1


async def test_seed_skips_admin_without_credentials(scoped_sessions, monkeypatch):
    monkeypatch.setattr(seed, "get_app_settings", lambda: AppSettings(SEED_ADMIN_EMAIL=None, SEED_ADMIN_PASSWORD=None))
    await seed.seed_all()
    assert await row_count(scoped_sessions, User) == 0


# CLI
async def test_set_user_field_updates_role_and_tier(scoped_sessions):
    await create_user(scoped_sessions, "member@example.com")

    await cli.set_user_field("member@example.com", "role", "SUPPORT")
    await cli.set_user_field("member@example.com", "tier", "PREMIUM")

    user = await get_user(scoped_sessions, "member@example.com")
    assert (user.role, user.tier) == ("SUPPORT", "PREMIUM")

    with pytest.raises(cli.UserNotFound):
        await cli.set_user_field("ghost@example.com", "role", "ADMIN")


def test_main_dispatches_promote_and_set_tier(monkeypatch):
    calls = []

    async def fake_set_user_field(email, field, value):
        calls.append((email, field, value))

    monkeypatch.setattr(cli, "set_user_field", fake_set_user_field)

    assert cli.main(["promote", "member@example.com", "admin"]) == 0
    assert cli.main(["set-tier", "member@example.com", "premium"]) == 0
    assert calls == [("member@example.com", "role", "ADMIN"), ("member@example.com", "tier", "PREMIUM")]


def test_main_returns_1_for_unknown_email(monkeypatch):
    async def missing(email, field, value):
        raise cli.UserNotFound(email)

    monkeypatch.setattr(cli, "set_user_field", missing)
    assert cli.main(["promote", "ghost@example.com", "ADMIN"]) == 1


# Email transports
class RecordingSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port = host, port
        self.calls = []
        self.messages = []
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, msg):
        self.messages.append(msg)


async def test_smtp_transport(monkeypatch):
    RecordingSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP", RecordingSMTP)
    service = EmailService(
        AppSettings(EMAIL_SERVICE="smtp", SMTP_HOST="mail.test", SMTP_PORT=587, SMTP_USER="bot", SMTP_PASSWORD="pw")
    )

    assert await service.send("user@example.com", "Hello", "<p>Hi</p>") is True
    smtp = RecordingSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("mail.test", 587)
    assert smtp.calls == ["starttls", ("login", "bot", "pw")]
    assert smtp.messages[0]["To"] == "user@example.com"
    assert smtp.messages[0]["Subject"] == "Hello"


async def test_smtp_failure_returns_false(monkeypatch):
    class BrokenSMTP(RecordingSMTP):
        def send_message(self, msg):
            raise email_module.smtplib.SMTPException("relay denied")

    monkeypatch.setattr(email_module.smtplib, "SMTP", BrokenSMTP)
    service = EmailService(AppSettings(EMAIL_SERVICE="smtp", SMTP_HOST="mail.test", SMTP_PORT=587))
    assert await service.send("user@example.com", "Hello", "<p>Hi</p>") is False


def mock_sendgrid(monkeypatch, status_code: int):
    requests = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={})

    monkeypatch.setattr(
        email_module.httpx, "AsyncClient", lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs)
    )
    return requests


async def test_sendgrid_transport(monkeypatch):
    requests = mock_sendgrid(monkeypatch, 202)
    service = EmailService(
        AppSettings(EMAIL_SERVICE="sendgrid", SENDGRID_API_KEY="SG.key", EMAIL_FROM="VivaForm <hello@vivaform.app>")
    )

    assert await service.send("user@example.com", "Hello", "<p>Hi</p>") is True
    request = requests[0]
    assert str(request.url) == SENDGRID_URL
    assert request.headers["Authorization"] == "Bearer SG.key"
    body = json.loads(request.content)
    assert body["personalizations"] == [{"to": [{"email": "user@example.com"}]}]
    assert body["from"] == {"email": "hello@vivaform.app", "name": "VivaForm"}
    assert body["content"][0]["value"] == "<p>Hi</p>"


async def test_sendgrid_error_returns_false(monkeypatch):
    mock_sendgrid(monkeypatch, 500)
    service = EmailService(AppSettings(EMAIL_SERVICE="sendgrid", SENDGRID_API_KEY="SG.key"))
    assert await service.send("user@example.com", "Hello", "<p>Hi</p>") is False


async def test_console_transport_does_not_touch_network(monkeypatch):
    requests = mock_sendgrid(monkeypatch, 500)
    service = EmailService(AppSettings(EMAIL_SERVICE="console"))
    assert await service.send_welcome_email("user@example.com", "Ann") is True
    assert requests == []
