import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient

from conftest import bearer, register
from vivaform_api.api.generate_openapi import write_openapi
from vivaform_api.cli import build_parser
from vivaform_api.core.env_validation import EnvironmentValidationError, validate_environment
from vivaform_api.core.settings import AppSettings
from vivaform_api.db.config import DatabaseSettings
from vivaform_api.services.scheduler import RecommendationScheduler, seconds_until_next_run

pytestmark = pytest.mark.asyncio


async def test_health(client: AsyncClient):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"]["status"] == "up"
    assert body["runtime"]["env"] == "test"
    assert body["memory"]["rss_mb"] >= 0
    assert response.headers["X-Correlation-ID"]


async def test_correlation_id_is_echoed(client: AsyncClient):
    response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"

    missing = await client.get("/api/v1/users/not-a-uuid", headers={"X-Correlation-ID": "abc-456"})
    assert missing.json()["correlation_id"] == "abc-456"


async def test_health_metrics(client: AsyncClient, user_headers):
    body = (await client.get("/api/v1/health/metrics")).json()
    assert body["active_users_24h"] >= 0
    assert body["subscriptions_active"] == 0


async def test_user_can_read_self_only(client: AsyncClient, user_auth, user_headers):
    user_id = user_auth["user"]["id"]
    own = await client.get(f"/api/v1/users/{user_id}", headers=user_headers)
    assert own.status_code == 200
    assert own.json()["email"] == "user@example.com"

    other = await register(client, "other@example.com")
    forbidden = await client.get(f"/api/v1/users/{other['user']['id']}", headers=user_headers)
    assert forbidden.status_code == 403


async def test_admin_reads_and_creates_users(client: AsyncClient, admin_headers, user_auth, user_headers):
    user_id = user_auth["user"]["id"]
    assert (await client.get(f"/api/v1/users/{user_id}", headers=admin_headers)).status_code == 200
    assert (await client.get(f"/api/v1/users/{uuid4()}", headers=admin_headers)).status_code == 404

    payload = {"email": "new@example.com", "password": "AnotherPass1", "name": "New"}
    assert (await client.post("/api/v1/users", json=payload, headers=user_headers)).status_code == 403
    created = await client.post("/api/v1/users", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["role"] == "USER"
    assert created.json()["tier"] == "FREE"

    login = await client.post("/api/v1/auth/login", json={"email": "new@example.com", "password": "AnotherPass1"})
    assert (await client.get("/api/v1/auth/me", headers=bearer(login.json()))).status_code == 200


def test_seconds_until_next_run():
    now = datetime(2026, 3, 1, 7, 30, tzinfo=timezone.utc)
    assert seconds_until_next_run(now, 9, "UTC") == 5400
    assert seconds_until_next_run(now, 7, "UTC") == 23.5 * 3600
    assert seconds_until_next_run(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc), 9, "UTC") == 86400
    # Warsaw is UTC+1 in March before the clock change
    assert seconds_until_next_run(now, 9, "Europe/Warsaw") == 1800


async def test_scheduler_start_and_stop():
    scheduler = RecommendationScheduler(9, "UTC")
    scheduler.start()
    assert scheduler.running
    await scheduler.stop()
    assert not scheduler.running


def test_cli_parser():
    parser = build_parser()
    args = parser.parse_args(["promote", "someone@example.com", "admin"])
    assert (args.command, args.email, args.role) == ("promote", "someone@example.com", "ADMIN")
    assert parser.parse_args(["set-tier", "someone@example.com", "premium"]).tier == "PREMIUM"
    with pytest.raises(SystemExit):
        parser.parse_args(["promote", "someone@example.com", "root"])
    migrate = parser.parse_args(["migrate", "downgrade", "-1"])
    assert (migrate.action, migrate.revision) == ("downgrade", "-1")
    assert parser.parse_args(["migrate", "upgrade"]).revision is None
    assert parser.parse_args(["seed"]).command == "seed"


def test_database_settings_urls():
    heroku = DatabaseSettings(DATABASE_URL="postgres://u:p@db:5432/viva")
    assert heroku.async_database_url == "postgresql+asyncpg://u:p@db:5432/viva"
    assert heroku.sync_database_url == "postgresql://u:p@db:5432/viva"
    assert heroku.engine_options()["pool_pre_ping"] is True

    sqlite = DatabaseSettings(DATABASE_URL="sqlite+aiosqlite:///:memory:")
    assert sqlite.async_database_url == "sqlite+aiosqlite:///:memory:"
    assert sqlite.engine_options() == {"echo": False}


def test_database_url_from_postgres_parts():
    composed = DatabaseSettings(
        DATABASE_URL=None,
        POSTGRES_USER="viva",
        POSTGRES_PASSWORD="p@ss:word",
        POSTGRES_DB="vivaform",
        POSTGRES_HOST="db",
        POSTGRES_PORT=6432,
    )
    assert composed.is_configured
    assert composed.database_url == "postgresql://viva:p%40ss%3Aword@db:6432/vivaform"
    assert composed.async_database_url == "postgresql+asyncpg://viva:p%40ss%3Aword@db:6432/vivaform"

    defaults = DatabaseSettings(DATABASE_URL=None, POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_DB="d")
    assert defaults.database_url == "postgresql://u:p@localhost:5432/d"

    # an explicit URL wins over the parts
    explicit = DatabaseSettings(DATABASE_URL="postgres://x:y@h/z", POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_DB="d")
    assert explicit.database_url == "postgresql://x:y@h/z"

    partial = DatabaseSettings(DATABASE_URL=None, POSTGRES_USER="u", POSTGRES_PASSWORD=None, POSTGRES_DB="d")
    assert not partial.is_configured
    with pytest.raises(EnvironmentValidationError) as exc:
        validate_environment(AppSettings(ENVIRONMENT="production"), partial)
    assert "DATABASE_URL (or POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB) is required" in exc.value.problems


def test_environment_validation():
    app = AppSettings(
        ENVIRONMENT="production", JWT_SECRET="short", JWT_REFRESH_SECRET="x" * 32, STRIPE_WEBHOOK_SECRET="secret"
    )
    db = DatabaseSettings(DATABASE_URL="sqlite+aiosqlite:///:memory:")
    with pytest.raises(EnvironmentValidationError) as exc:
        validate_environment(app, db)
    problems = exc.value.problems
    assert "DATABASE_URL must be a postgresql:// connection string" in problems
    assert "JWT_SECRET must be at least 32 characters" in problems
    assert "STRIPE_WEBHOOK_SECRET must start with whsec_" in problems

    assert validate_environment(AppSettings(ENVIRONMENT="test"), db) == []


def test_openapi_document(tmp_path):
    path = write_openapi(tmp_path / "interfaces" / "openapi.json")
    document = json.loads(path.read_text())
    assert "/api/v1/auth/login" in document["paths"]
    assert document["x-webhooks"][0]["headers"] == ["Stripe-Signature"]
