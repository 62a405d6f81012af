"""
Refresh-token whitelist port.

A refresh token is valid only while its id is present in the whitelist.
Entries are written once on issuance, read on presentation and removed by a
background reaper once older than the refresh-token lifetime.

Record layout
-------------
Every backend stores the same binary value under the token id::

    -8 bytes-        --n bytes--
    issued_at (BE) + serialized Token

The fixed header lets the reaper decide an entry's age without decoding the
token itself.
"""

from __future__ import annotations

import struct
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from gatehouse.security.tokens import Token
from gatehouse.services._shared.errors import NotFoundError, StorageError

HEADER = struct.Struct(">Q")
HEADER_SIZE = HEADER.size

DEFAULT_BATCH_SIZE = 1000
DEFAULT_REAP_INTERVAL = 1.0

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --------------------------------------------------------------------------- #
# Record format
# --------------------------------------------------------------------------- #


def pack_entry(token: Token) -> bytes:
    """
    Serialize ``token`` as ``header + payload``.

    :raises StorageError: If the token was issued before the Unix epoch.
    """
    ts = int(token.issued_at.timestamp())
    if ts < 0:
        raise StorageError("token has negative time")
    return HEADER.pack(ts) + token.to_bytes()


def unpack_entry(value: bytes) -> Token:
    """Discard the header and deserialize the token payload."""
    if len(value) < HEADER_SIZE:
        raise StorageError("whitelist entry is truncated")
    try:
        return Token.from_bytes(bytes(value[HEADER_SIZE:]))
    except ValueError as exc:
        raise StorageError(f"could not decode token: {exc}") from exc


def issued_at_from_header(prefix: bytes) -> datetime:
    """Read the issue time from the first :data:`HEADER_SIZE` bytes of an entry."""
    if len(prefix) < HEADER_SIZE:
        raise StorageError("whitelist entry header is truncated")
    (ts,) = HEADER.unpack(bytes(prefix[:HEADER_SIZE]))
    return datetime.fromtimestamp(ts, tz=UTC)


def is_stale(prefix: bytes, *, now: datetime, max_age: timedelta) -> bool:
    return now - issued_at_from_header(prefix) > max_age


# --------------------------------------------------------------------------- #
# Port
# --------------------------------------------------------------------------- #


class Whitelist(Protocol):
    """
    Durable registry of outstanding refresh tokens.

    Implementations must give read-committed isolation per key: a concurrent
    reap batch never exposes a half-written entry to ``get_token``.
    """

    def put_token(self, token_id: str, token: Token) -> None:
        """Store ``token`` under ``token_id``. :raises StorageError:"""

    def get_token(self, token_id: str) -> Token:
        """Fetch a token. :raises NotFoundError: :raises StorageError:"""

    def rotate_token(self, old_id: str, new_id: str, token: Token) -> None:
        """
        Atomically delete ``old_id`` and store ``token`` under ``new_id``.

        :raises NotFoundError: If ``old_id`` is no longer whitelisted.
        """

    def sweep_batch(self, after: str | None, max_age: timedelta) -> tuple[str | None, int]:
        """
        Run one reap batch over keys strictly greater than ``after``.

        :returns: ``(resume_key, reaped)``; ``resume_key`` is ``None`` once the
                  end of the keyspace was reached.
        """

    def reap(self, max_age: timedelta, stop: threading.Event | None = None) -> None:
        """Sweep forever until ``stop`` is set. :raises StorageError:"""

    def close(self) -> None:
        """Release resources; later calls raise :class:`StorageError`."""


def reap_forever(
    whitelist: Whitelist,
    max_age: timedelta,
    *,
    stop: threading.Event | None = None,
    interval: float = DEFAULT_REAP_INTERVAL,
) -> None:
    """
    Drive ``whitelist.sweep_batch`` in an endless, resumable loop.

    The resume key is carried between batches so a full pass completes
    incrementally; after the last batch the next pass starts over. Storage
    errors propagate and end the loop.
    """
    after: str | None = None
    while True:
        after, _ = whitelist.sweep_batch(after, max_age)
        if stop is None:
            time.sleep(interval)
        elif stop.wait(interval):
            return


# --------------------------------------------------------------------------- #
# In-memory double
# --------------------------------------------------------------------------- #


class InMemoryWhitelist(Whitelist):
    """
    Process-local whitelist with the same record layout and batch semantics.

    .. note::
       Uses a threading lock to simulate transactions in unit tests.
    """

    def __init__(
        self,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        interval: float = DEFAULT_REAP_INTERVAL,
        clock: Clock = utc_now,
    ) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._closed = False
        self.batch_size = batch_size
        self.interval = interval
        self.clock = clock

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageError("whitelist is closed")

    def put_token(self, token_id: str, token: Token) -> None:
        value = pack_entry(token)
        with self._lock:
            self._ensure_open()
            self._data[token_id] = value

    def get_token(self, token_id: str) -> Token:
        with self._lock:
            self._ensure_open()
            value = self._data.get(token_id)
        if value is None:
            raise NotFoundError("Token", token_id)
        return unpack_entry(value)

    def rotate_token(self, old_id: str, new_id: str, token: Token) -> None:
        value = pack_entry(token)
        with self._lock:
            self._ensure_open()
            if self._data.pop(old_id, None) is None:
                raise NotFoundError("Token", old_id)
            self._data[new_id] = value

    def sweep_batch(self, after: str | None, max_age: timedelta) -> tuple[str | None, int]:
        now = self.clock()
        reaped = 0
        with self._lock:
            self._ensure_open()
            keys = sorted(k for k in self._data if after is None or k > after)
            batch = keys[: self.batch_size]
            for key in batch:
                if is_stale(self._data[key][:HEADER_SIZE], now=now, max_age=max_age):
                    del self._data[key]
                    reaped += 1
        resume = batch[-1] if len(keys) > self.batch_size else None
        return resume, reaped

    def reap(self, max_age: timedelta, stop: threading.Event | None = None) -> None:
        reap_forever(self, max_age, stop=stop, interval=self.interval)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def __len__(self) -> int:
        return len(self._data)
