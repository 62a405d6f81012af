"""``flask auth ...`` commands run against the test application."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine, inspect

from gatehouse.cli.auth import sweep_once
from gatehouse.core.auth import get_components
from gatehouse.core.config import TestingConfig
from gatehouse.factory import create_app
from gatehouse.security.tokens import Token, new_identifier
from gatehouse.services._shared.errors import NotFoundError
from gatehouse.services._shared.ports import InMemoryWhitelist


@pytest.fixture()
def runner(app, session):
    return app.test_cli_runner()


def test_create_user_then_login(runner, client):
    result = runner.invoke(
        args=["auth", "create-user", "zed", "--password", "zed-pw", "--class", "staff", "--admin"]
    )

    assert result.exit_code == 0, result.output
    assert "Created user 'zed'" in result.output
    resp = client.post("/api/v1/auth/login", json={"username": "zed", "password": "zed-pw"})
    assert resp.status_code == 200


def test_create_user_twice_fails_cleanly(runner):
    args = ["auth", "create-user", "yan", "--password", "pw"]
    assert runner.invoke(args=args).exit_code == 0

    result = runner.invoke(args=args)

    assert result.exit_code == 1
    assert "already exists" in result.output


@pytest.fixture()
def file_backed_app(tmp_path):
    """An app on its own SQLite file, outside the shared nested transaction."""

    class FileDatabaseConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'users.db'}"
        JWT_SECRET_KEY = "cli-test-secret-that-is-at-least-32-bytes-long"
        TOKEN_ISSUER = "gatehouse-cli-test"
        LOG_LEVEL = "WARNING"

    return create_app(FileDatabaseConfig)


def test_init_db_is_idempotent(file_backed_app):
    runner = file_backed_app.test_cli_runner()

    with file_backed_app.app_context():
        first = runner.invoke(args=["auth", "init-db"])
        second = runner.invoke(args=["auth", "init-db"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "User tables ready." in second.output
    engine = create_engine(file_backed_app.config["SQLALCHEMY_DATABASE_URI"])
    try:
        assert "users" in inspect(engine).get_table_names()
    finally:
        engine.dispose()


def test_reap_once_removes_expired_entries(app, runner):
    whitelist = get_components(app).whitelist
    old = Token.new(
        issuer="gatehouse-test",
        subject="s",
        lifetime=timedelta(hours=72),
        token_id=new_identifier(),
        now=datetime.now(UTC) - timedelta(days=4),
    )
    whitelist.put_token(old.id, old)

    result = runner.invoke(args=["auth", "reap", "--once"])

    assert result.exit_code == 0, result.output
    assert "Reaped 1 expired refresh token(s)." in result.output
    with pytest.raises(NotFoundError):
        whitelist.get_token(old.id)


def test_sweep_once_walks_every_batch(now):
    whitelist = InMemoryWhitelist(batch_size=2, clock=lambda: now)
    for i in range(5):
        stale = Token.new(
            issuer="i",
            subject="s",
            lifetime=timedelta(hours=1),
            token_id=f"k{i}",
            now=now - timedelta(hours=2),
        )
        whitelist.put_token(stale.id, stale)
    fresh = Token.new(issuer="i", subject="s", lifetime=timedelta(hours=1), token_id="k9", now=now)
    whitelist.put_token(fresh.id, fresh)

    assert sweep_once(whitelist, timedelta(hours=1)) == 5
    assert len(whitelist) == 1
