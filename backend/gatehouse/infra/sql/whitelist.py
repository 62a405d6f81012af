"""
SQL-backed refresh-token whitelist (SQLAlchemy Core).

The whitelist owns its engine, separate from the Flask-SQLAlchemy session,
because the reaper runs on its own thread outside any application context.
By default it lives in an embedded SQLite file.
"""

from __future__ import annotations

import threading
from datetime import timedelta

from sqlalchemy import (
    Column,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from gatehouse.security.tokens import Token
from gatehouse.services._shared.errors import NotFoundError, StorageError
from gatehouse.services._shared.ports.whitelist import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_REAP_INTERVAL,
    HEADER_SIZE,
    Clock,
    Whitelist,
    is_stale,
    pack_entry,
    reap_forever,
    unpack_entry,
    utc_now,
)

metadata = MetaData()

token_whitelist = Table(
    "token_whitelist",
    metadata,
    Column("token_id", String(64), primary_key=True),
    Column("value", LargeBinary, nullable=False),
)


class SQLWhitelist(Whitelist):
    """
    :class:`Whitelist` stored in table ``token_whitelist(token_id, value)``.

    :param engine: Engine dedicated to the whitelist.
    :param batch_size: Entries inspected per reap transaction.
    :param interval: Seconds slept between reap batches.
    :param clock: Source of "now" for age checks.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        interval: float = DEFAULT_REAP_INTERVAL,
        clock: Clock = utc_now,
    ) -> None:
        self.engine = engine
        self.batch_size = batch_size
        self.interval = interval
        self.clock = clock
        self._closed = threading.Event()
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"could not open whitelist: {exc}") from exc

    @classmethod
    def from_url(cls, url: str, **kwargs) -> SQLWhitelist:
        """Build the whitelist on a fresh engine for ``url``."""
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(url, connect_args=connect_args, future=True)
        return cls(engine, **kwargs)

    def _ensure_open(self) -> None:
        if self._closed.is_set():
            raise StorageError("whitelist is closed")

    # -------------------- API ------------------------

    def put_token(self, token_id: str, token: Token) -> None:
        value = pack_entry(token)
        self._ensure_open()
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(token_whitelist).where(token_whitelist.c.token_id == token_id))
                conn.execute(insert(token_whitelist).values(token_id=token_id, value=value))
        except SQLAlchemyError as exc:
            raise StorageError(f"could not put token: {exc}") from exc

    def get_token(self, token_id: str) -> Token:
        self._ensure_open()
        try:
            with self.engine.connect() as conn:
                value = conn.execute(
                    select(token_whitelist.c.value).where(token_whitelist.c.token_id == token_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError(f"could not get token: {exc}") from exc
        if value is None:
            raise NotFoundError("Token", token_id)
        return unpack_entry(value)

    def rotate_token(self, old_id: str, new_id: str, token: Token) -> None:
        value = pack_entry(token)
        self._ensure_open()
        try:
            with self.engine.begin() as conn:
                removed = conn.execute(
                    delete(token_whitelist).where(token_whitelist.c.token_id == old_id)
                ).rowcount
                if not removed:
                    # Leaving the block through an exception rolls back.
                    raise NotFoundError("Token", old_id)
                conn.execute(insert(token_whitelist).values(token_id=new_id, value=value))
        except SQLAlchemyError as exc:
            raise StorageError(f"could not rotate token: {exc}") from exc

    def sweep_batch(self, after: str | None, max_age: timedelta) -> tuple[str | None, int]:
        """
        Inspect up to ``batch_size`` keys after ``after`` in one transaction.

        Only the 8-byte header of each value is read.
        """
        self._ensure_open()
        now = self.clock()
        header = func.substr(token_whitelist.c.value, 1, HEADER_SIZE)
        stmt = select(token_whitelist.c.token_id, header).order_by(token_whitelist.c.token_id)
        if after is not None:
            stmt = stmt.where(token_whitelist.c.token_id > after)
        # One extra row tells whether the keyspace continues past this batch.
        stmt = stmt.limit(self.batch_size + 1)

        try:
            with self.engine.begin() as conn:
                rows = conn.execute(stmt).all()
                batch = rows[: self.batch_size]
                stale = [
                    key
                    for key, prefix in batch
                    if is_stale(bytes(prefix), now=now, max_age=max_age)
                ]
                if stale:
                    conn.execute(delete(token_whitelist).where(token_whitelist.c.token_id.in_(stale)))
        except SQLAlchemyError as exc:
            raise StorageError(f"could not reap whitelist: {exc}") from exc

        resume = batch[-1][0] if len(rows) > self.batch_size else None
        return resume, len(stale)

    def reap(self, max_age: timedelta, stop: threading.Event | None = None) -> None:
        reap_forever(self, max_age, stop=stop, interval=self.interval)

    def close(self) -> None:
        self._closed.set()
        self.engine.dispose()

    def __len__(self) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(select(func.count()).select_from(token_whitelist)).scalar_one())
