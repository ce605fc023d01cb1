"""Global token registry."""

from __future__ import annotations

import math
from enum import Enum
from typing import Hashable, Iterator

from .errors import DegenerateStateError
from .storage import CounterStore, KeySpace


class VocabularySizeTransform(str, Enum):
    """How the distinct-token count is turned into the smoothing term ``V``."""

    IDENTITY = "identity"
    NATURAL_LOG = "natural_log"


class TokenVocabulary:
    """Distinct tokens ever observed, with their global occurrence counts.

    Every token present has a count of at least 1. Nothing is cached: each
    call reads the store.

    Args:
        store: Counter store shared with the category counters.
        size_transform: Transform applied by ``size()``. With
            ``NATURAL_LOG`` smoothing uses ``ln(|vocabulary|)`` rather than
            ``|vocabulary|``.
    """

    def __init__(
        self,
        store: CounterStore,
        size_transform: VocabularySizeTransform = VocabularySizeTransform.IDENTITY,
    ) -> None:
        self._store = store
        self._space = KeySpace.vocabulary()
        self.size_transform = VocabularySizeTransform(size_transform)

    def observe(self, token: Hashable) -> int:
        """Count one occurrence of ``token``, registering it if new."""
        return self._store.increment(self._space.key(token), 1)

    def remove(self, token: Hashable) -> bool:
        """Forget ``token`` whatever its count. Absent tokens are a no-op."""
        return self._store.delete(self._space.key(token))

    def count(self, token: Hashable) -> int:
        return self._store.get(self._space.key(token))

    def raw_size(self) -> int:
        """Number of distinct registered tokens."""
        return self._store.count(self._space)

    def size(self) -> float:
        """Smoothing term ``V``: the distinct-token count, log-transformed if configured.

        Raises:
            DegenerateStateError: In log mode with an empty vocabulary.
        """
        n = self.raw_size()
        if self.size_transform is VocabularySizeTransform.NATURAL_LOG:
            if n < 1:
                raise DegenerateStateError("Cannot take the log of an empty vocabulary.")
            return math.log(n)
        return float(n)

    def tokens(self) -> Iterator[Hashable]:
        """Yield every known token. Each call starts a fresh read."""
        yield from self._store.keys(self._space)

    def __iter__(self) -> Iterator[Hashable]:
        return self.tokens()

    def __contains__(self, token: object) -> bool:
        return self.count(token) > 0  # type: ignore[arg-type]

    def __len__(self) -> int:
        return self.raw_size()
