"""SQL-specific behaviour of :class:`SQLWhitelist`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import insert

from gatehouse.infra.sql.whitelist import SQLWhitelist, token_whitelist
from gatehouse.security.tokens import Token
from gatehouse.services._shared.errors import StorageError

MAX_AGE = timedelta(hours=72)
NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def store(tmp_path):
    wl = SQLWhitelist.from_url(f"sqlite:///{tmp_path / 'wl.db'}", clock=lambda: NOW)
    yield wl
    wl.close()


def test_entries_survive_reopening(tmp_path):
    url = f"sqlite:///{tmp_path / 'persist.db'}"
    token = Token.new(issuer="i", subject="s", lifetime=MAX_AGE, token_id="t1", now=NOW)
    first = SQLWhitelist.from_url(url)
    first.put_token("t1", token)
    first.close()

    second = SQLWhitelist.from_url(url)
    try:
        assert second.get_token("t1") == token
    finally:
        second.close()


def test_corrupt_row_is_a_storage_error(store):
    with store.engine.begin() as conn:
        conn.execute(insert(token_whitelist).values(token_id="bad", value=b"\x00" * 8 + b"junk"))

    with pytest.raises(StorageError):
        store.get_token("bad")


def test_len_counts_rows(store):
    for i in range(3):
        store.put_token(
            f"t{i}", Token.new(issuer="i", subject="s", lifetime=MAX_AGE, token_id=f"t{i}", now=NOW)
        )

    assert len(store) == 3
