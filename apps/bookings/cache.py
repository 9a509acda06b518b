"""Read-through cache for booking lookups and listings."""

from __future__ import annotations

import fnmatch
import hashlib
from typing import Any, Dict, List, Protocol

from django.core.cache import cache as default_cache  # type: ignore

CACHE_KEYS_STORAGE_KEY = "bookings:cache_keys"
ID_KEY_TEMPLATE = "bookings:id:{}"
LIST_KEY_PREFIX = "bookings:list"
LIST_KEY_PATTERN = f"{LIST_KEY_PREFIX}:*"


def booking_key(booking_id) -> str:
    return ID_KEY_TEMPLATE.format(booking_id)


def list_key(params: Dict[str, object]) -> str:
    normalized_parts = [f"{key}={params[key]}" for key in sorted(params)]
    fingerprint = "|".join(normalized_parts)
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()
    return f"{LIST_KEY_PREFIX}:{digest}"


class BookingCache(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any, timeout: int | None = None) -> None: ...

    def invalidate(self, key: str) -> None: ...

    def invalidate_pattern(self, pattern: str) -> None: ...


class DjangoBookingCache:
    """
    Django cache framework adapter

    django-redis exposes ``delete_pattern``; other backends (LocMem in
    development and tests) get pattern invalidation through a registry
    of the keys this adapter has written.
    """

    def __init__(self, backend=None, timeout: int = 300):
        self._cache = backend if backend is not None else default_cache
        self._timeout = timeout

    @property
    def _supports_patterns(self) -> bool:
        return callable(getattr(self._cache, "delete_pattern", None))

    def get(self, key: str) -> Any:
        return self._cache.get(key)

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        self._cache.set(key, value, self._timeout if timeout is None else timeout)
        if not self._supports_patterns:
            self._register_key(key)

    def invalidate(self, key: str) -> None:
        self._cache.delete(key)

    def invalidate_pattern(self, pattern: str) -> None:
        if self._supports_patterns:
            self._cache.delete_pattern(pattern)
            return

        keys: List[str] = self._cache.get(CACHE_KEYS_STORAGE_KEY) or []
        matched = [key for key in keys if fnmatch.fnmatchcase(key, pattern)]
        if not matched:
            return
        self._cache.delete_many(matched)
        remaining = [key for key in keys if key not in matched]
        self._cache.set(CACHE_KEYS_STORAGE_KEY, remaining, None)

    def _register_key(self, key: str) -> None:
        keys: List[str] | None = self._cache.get(CACHE_KEYS_STORAGE_KEY)
        if keys is None:
            self._cache.set(CACHE_KEYS_STORAGE_KEY, [key], None)
            return
        if key in keys:
            return
        keys.append(key)
        self._cache.set(CACHE_KEYS_STORAGE_KEY, keys, None)


class NullBookingCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Any:
        return None

    def set(self, key: str, value: Any, timeout: int | None = None) -> None:
        return None

    def invalidate(self, key: str) -> None:
        return None

    def invalidate_pattern(self, pattern: str) -> None:
        return None


__all__ = [
    "BookingCache",
    "DjangoBookingCache",
    "NullBookingCache",
    "booking_key",
    "list_key",
    "LIST_KEY_PATTERN",
]
