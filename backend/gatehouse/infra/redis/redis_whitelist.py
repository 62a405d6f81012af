# comments in English; reST docstrings
from __future__ import annotations

import threading
from datetime import timedelta

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]

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


class RedisWhitelist(Whitelist):
    """
    Redis-backed whitelist.

    Layout
    ------
    - ``wl:<id>``: entry value (header + serialized token).
    - ``wl:index``: sorted set of ids, all with score 0, so ``ZRANGEBYLEX``
      walks them in ascending key order for the reaper.

    Keys carry no TTL: removal is the reaper's job, as in every backend.

    :param r: A Redis client (already connected).
    """

    INDEX_KEY = "wl:index"

    def __init__(
        self,
        r: redis.Redis,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        interval: float = DEFAULT_REAP_INTERVAL,
        clock: Clock = utc_now,
    ) -> None:
        self.r = r
        self.batch_size = batch_size
        self.interval = interval
        self.clock = clock
        self._closed = threading.Event()

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_id: str) -> str:
        return f"wl:{token_id}"

    @staticmethod
    def _member(raw: bytes | str) -> str:
        return raw.decode() if isinstance(raw, bytes | bytearray) else str(raw)

    def _ensure_open(self) -> None:
        if self._closed.is_set():
            raise StorageError("whitelist is closed")

    # -------------------- API ------------------------

    def put_token(self, token_id: str, token: Token) -> None:
        value = pack_entry(token)
        self._ensure_open()
        try:
            with self.r.pipeline(transaction=True) as p:
                p.set(self._k(token_id), value)
                p.zadd(self.INDEX_KEY, {token_id: 0})
                p.execute()
        except RedisError as exc:
            raise StorageError(f"could not put token: {exc}") from exc

    def get_token(self, token_id: str) -> Token:
        self._ensure_open()
        try:
            value = self.r.get(self._k(token_id))
        except RedisError as exc:
            raise StorageError(f"could not get token: {exc}") from exc
        if value is None:
            raise NotFoundError("Token", token_id)
        return unpack_entry(value)

    def rotate_token(self, old_id: str, new_id: str, token: Token) -> None:
        """
        Atomically consume ``old_id`` and store ``new_id``.

        Uses WATCH/MULTI/EXEC on the old key: a concurrent rotation or reap of
        the same id aborts the transaction and the check is retried.
        """
        value = pack_entry(token)
        self._ensure_open()
        k_old = self._k(old_id)
        try:
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_old)
                        if not p.exists(k_old):
                            p.unwatch()
                            raise NotFoundError("Token", old_id)
                        p.multi()
                        p.delete(k_old)
                        p.zrem(self.INDEX_KEY, old_id)
                        p.set(self._k(new_id), value)
                        p.zadd(self.INDEX_KEY, {new_id: 0})
                        p.execute()
                    return
                except redis.WatchError:
                    continue
        except RedisError as exc:
            raise StorageError(f"could not rotate token: {exc}") from exc

    def sweep_batch(self, after: str | None, max_age: timedelta) -> tuple[str | None, int]:
        """
        Inspect up to ``batch_size`` ids after ``after``.

        Headers are read with ``GETRANGE 0 7``; stale entries and dangling
        index members are removed in a single MULTI/EXEC.
        """
        self._ensure_open()
        now = self.clock()
        lower = "-" if after is None else f"({after}"
        try:
            members = [
                self._member(m)
                for m in self.r.zrangebylex(
                    self.INDEX_KEY, lower, "+", start=0, num=self.batch_size + 1
                )
            ]
            batch = members[: self.batch_size]
            if not batch:
                return None, 0

            with self.r.pipeline(transaction=False) as p:
                for token_id in batch:
                    p.getrange(self._k(token_id), 0, HEADER_SIZE - 1)
                prefixes = p.execute()

            stale: list[str] = []
            dangling: list[str] = []
            for token_id, prefix in zip(batch, prefixes, strict=True):
                if not prefix:
                    dangling.append(token_id)
                elif is_stale(prefix, now=now, max_age=max_age):
                    stale.append(token_id)

            if stale or dangling:
                with self.r.pipeline(transaction=True) as p:
                    if stale:
                        p.delete(*(self._k(t) for t in stale))
                    p.zrem(self.INDEX_KEY, *(stale + dangling))
                    p.execute()
        except RedisError as exc:
            raise StorageError(f"could not reap whitelist: {exc}") from exc

        resume = batch[-1] if len(members) > self.batch_size else None
        return resume, len(stale)

    def reap(self, max_age: timedelta, stop: threading.Event | None = None) -> None:
        reap_forever(self, max_age, stop=stop, interval=self.interval)

    def close(self) -> None:
        self._closed.set()
        self.r.close()

    def __len__(self) -> int:
        return int(self.r.zcard(self.INDEX_KEY))
