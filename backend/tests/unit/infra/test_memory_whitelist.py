"""Backend-specific edge cases of the in-memory whitelist double."""

from __future__ import annotations

import pytest

from gatehouse.services._shared.errors import StorageError
from gatehouse.services._shared.ports import InMemoryWhitelist


def test_corrupt_entry_is_a_storage_error():
    wl = InMemoryWhitelist()
    wl._data["bad"] = b"\x00" * 8 + b"{not json"

    with pytest.raises(StorageError):
        wl.get_token("bad")


def test_truncated_entry_is_a_storage_error():
    wl = InMemoryWhitelist()
    wl._data["short"] = b"\x00\x01"

    with pytest.raises(StorageError):
        wl.get_token("short")
