"""Per-category example and token counts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Iterator

from .storage import CounterStore, KeySpace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryStats:
    """Snapshot of one category's counters."""

    examples: int
    tokens: int

    def to_dict(self) -> dict:
        return {"examples": self.examples, "tokens": self.tokens}


class CategoryCounters:
    """Example counts per category and token counts per (category, token).

    Invariants kept here:

    - a category exists only while its example count is at least 1;
    - an occurrence entry exists only while its count is at least 1.

    All mutations are single-key atomic increments on the store. Reads
    spanning several keys (totals, sums across categories) are not
    transactional.

    Args:
        store: Counter store shared with the vocabulary.
    """

    def __init__(self, store: CounterStore) -> None:
        self._store = store
        self._categories = KeySpace.categories()

    # ------------------------------------------------------------------
    # Examples
    # ------------------------------------------------------------------

    def record_example(self, category: Hashable) -> int:
        return self._store.increment(self._categories.key(category), 1)

    def remove_example(self, category: Hashable) -> int:
        """Decrement the example count, deleting the category when it drops below 1.

        Deletion removes the example counter and every occurrence entry of
        the category.

        Returns:
            The count after decrementing (may be 0 or negative).
        """
        remaining = self._store.increment(self._categories.key(category), -1)
        if remaining < 1:
            self._store.delete(self._categories.key(category))
            tokens_space = KeySpace.tokens_of(category)
            for token in self._store.keys(tokens_space):
                self._store.delete(tokens_space.key(token))
            logger.debug("Category %r has no examples left; deleted", category)
        return remaining

    def example_count(self, category: Hashable) -> int:
        return self._store.get(self._categories.key(category))

    def total_examples(self) -> int:
        return sum(self.example_count(c) for c in self.categories())

    # ------------------------------------------------------------------
    # Token occurrences
    # ------------------------------------------------------------------

    def has_token_occurrence(self, category: Hashable, token: Hashable) -> bool:
        return self.occurrence_count(category, token) > 0

    def add_token_occurrence(self, category: Hashable, token: Hashable) -> int:
        return self._store.increment(KeySpace.tokens_of(category).key(token), 1)

    def remove_token_occurrence(self, category: Hashable, token: Hashable) -> bool:
        """Decrement an occurrence count; returns True if the entry was deleted."""
        key = KeySpace.tokens_of(category).key(token)
        if self._store.increment(key, -1) < 1:
            return self._store.delete(key)
        return False

    def occurrence_count(self, category: Hashable, token: Hashable) -> int:
        return self._store.get(KeySpace.tokens_of(category).key(token))

    def category_token_total(self, category: Hashable) -> int:
        """Sum of all token occurrence counts in ``category``."""
        space = KeySpace.tokens_of(category)
        return sum(self._store.get(space.key(token)) for token in self._store.keys(space))

    def occurrence_across_categories(self, token: Hashable) -> int:
        return sum(self.occurrence_count(c, token) for c in self.categories())

    def purge_below_threshold(self, token: Hashable, min_total: int) -> bool:
        """Drop ``token`` from every category if its total count is under ``min_total``.

        Returns:
            True if the token was dropped; the caller should then remove it
            from the vocabulary as well.
        """
        if self.occurrence_across_categories(token) >= min_total:
            return False
        for category in self.categories():
            self._store.delete(KeySpace.tokens_of(category).key(token))
        return True

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def delete_category(self, category: Hashable) -> bool:
        """Remove the category's example counter.

        Occurrence entries are left in place; they become invisible to
        classification but reappear if the category is trained again.
        """
        return self._store.delete(self._categories.key(category))

    def categories(self) -> Iterator[Hashable]:
        """Yield every known category. Each call starts a fresh read."""
        yield from self._store.keys(self._categories)

    def __iter__(self) -> Iterator[Hashable]:
        return self.categories()

    def stats(self) -> dict[Hashable, CategoryStats]:
        return {
            category: CategoryStats(
                examples=self.example_count(category),
                tokens=self.category_token_total(category),
            )
            for category in self.categories()
        }
