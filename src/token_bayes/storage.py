"""Counter storage: key schema, store interface, and backends.

The classifier never builds storage keys by hand. It addresses counters
through a small key schema:

- ``KeySpace`` names one group of counters (the vocabulary, the
  per-category example counts, or the token counts of one category).
- ``CounterKey`` is a single field inside a key space.

A ``CounterStore`` maps that schema onto a concrete backend. Two are
provided: ``MemoryCounterStore`` (in-process, used by tests and for
embedding) and ``RedisCounterStore`` (one Redis hash per key space).
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Optional

import redis
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key schema
# ---------------------------------------------------------------------------

class Namespace(str, Enum):
    """Groups of counters the classifier keeps."""

    VOCABULARY = "vocabulary"
    CATEGORIES = "categories"
    CATEGORY_TOKENS = "category_tokens"


@dataclass(frozen=True)
class KeySpace:
    """A namespace, qualified by category where the namespace needs one."""

    namespace: Namespace
    category: Optional[Hashable] = None

    def __post_init__(self) -> None:
        if self.namespace is Namespace.CATEGORY_TOKENS and self.category is None:
            raise ValueError("CATEGORY_TOKENS key spaces require a category")
        if self.namespace is not Namespace.CATEGORY_TOKENS and self.category is not None:
            raise ValueError(f"{self.namespace.value} key spaces take no category")

    @classmethod
    def vocabulary(cls) -> "KeySpace":
        return cls(Namespace.VOCABULARY)

    @classmethod
    def categories(cls) -> "KeySpace":
        return cls(Namespace.CATEGORIES)

    @classmethod
    def tokens_of(cls, category: Hashable) -> "KeySpace":
        return cls(Namespace.CATEGORY_TOKENS, category)

    def key(self, field: Hashable) -> "CounterKey":
        """Address one counter inside this key space."""
        return CounterKey(self, field)


@dataclass(frozen=True)
class CounterKey:
    """A single integer counter."""

    space: KeySpace
    field: Hashable


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------

class CounterStore(ABC):
    """Integer counters addressed by ``CounterKey``.

    Implementations must make ``increment`` atomic per key; nothing else is
    required to be atomic. Missing counters read as 0.
    """

    @abstractmethod
    def increment(self, key: CounterKey, delta: int = 1) -> int:
        """Add ``delta`` (may be negative) and return the new value."""
        ...

    @abstractmethod
    def get(self, key: CounterKey) -> int:
        """Return the counter value, or 0 if it does not exist."""
        ...

    @abstractmethod
    def delete(self, key: CounterKey) -> bool:
        """Remove the counter. Returns True iff it existed."""
        ...

    @abstractmethod
    def keys(self, space: KeySpace) -> set:
        """Return a snapshot of the fields present in ``space``."""
        ...

    @abstractmethod
    def count(self, space: KeySpace) -> int:
        """Return the number of fields present in ``space``."""
        ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class MemoryCounterStore(CounterStore):
    """Thread-safe in-process counter store.

    Key spaces that become empty are dropped, matching how Redis removes a
    hash once its last field is deleted.
    """

    def __init__(self) -> None:
        self._data: dict[KeySpace, dict[Hashable, int]] = {}
        self._lock = threading.Lock()

    def increment(self, key: CounterKey, delta: int = 1) -> int:
        with self._lock:
            fields = self._data.setdefault(key.space, {})
            value = fields.get(key.field, 0) + int(delta)
            fields[key.field] = value
            return value

    def get(self, key: CounterKey) -> int:
        with self._lock:
            return self._data.get(key.space, {}).get(key.field, 0)

    def delete(self, key: CounterKey) -> bool:
        with self._lock:
            fields = self._data.get(key.space)
            if not fields or key.field not in fields:
                return False
            del fields[key.field]
            if not fields:
                del self._data[key.space]
            return True

    def keys(self, space: KeySpace) -> set:
        with self._lock:
            return set(self._data.get(space, {}))

    def count(self, space: KeySpace) -> int:
        with self._lock:
            return len(self._data.get(space, {}))

    def __repr__(self) -> str:
        return f"MemoryCounterStore(spaces={len(self._data)})"


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------

DEFAULT_PREFIX = "nbayes"


def redis_key(space: KeySpace, prefix: str = DEFAULT_PREFIX) -> str:
    """Map a key space to the name of the Redis hash that holds it."""
    if space.namespace is Namespace.VOCABULARY:
        return f"{prefix}:vocab:tokens"
    if space.namespace is Namespace.CATEGORIES:
        return f"{prefix}:data:categories"
    return f"{prefix}:data:category:{space.category}"


class RedisCounterStore(CounterStore):
    """Counter store backed by Redis hashes.

    Each key space is one hash; each counter is one hash field updated with
    ``HINCRBY``, so concurrent writers never lose increments. Fields and
    categories are stored as strings.

    Redis errors are not caught here. The only retry is in ``ping()``, used
    to wait for a server that is still starting up.

    Args:
        client: A ``redis.Redis`` instance. ``decode_responses=True`` is
            expected so that ``keys()`` returns ``str`` fields.
        prefix: Prefix shared by every classifier using the same counters.
    """

    def __init__(self, client: Any, prefix: str = DEFAULT_PREFIX) -> None:
        self._client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = DEFAULT_PREFIX) -> "RedisCounterStore":
        """Create a store from a ``redis://`` URL."""
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, prefix=prefix)

    @retry(
        retry=retry_if_exception_type(redis.exceptions.ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def ping(self) -> bool:
        """Check that the server answers, retrying briefly on connection errors."""
        return bool(self._client.ping())

    def _hash(self, space: KeySpace) -> str:
        return redis_key(space, self.prefix)

    def increment(self, key: CounterKey, delta: int = 1) -> int:
        return int(self._client.hincrby(self._hash(key.space), key.field, int(delta)))

    def get(self, key: CounterKey) -> int:
        value = self._client.hget(self._hash(key.space), key.field)
        return int(value) if value is not None else 0

    def delete(self, key: CounterKey) -> bool:
        return self._client.hdel(self._hash(key.space), key.field) != 0

    def keys(self, space: KeySpace) -> set:
        return set(self._client.hkeys(self._hash(space)))

    def count(self, space: KeySpace) -> int:
        return int(self._client.hlen(self._hash(space)))

    def __repr__(self) -> str:
        return f"RedisCounterStore(prefix={self.prefix!r})"
