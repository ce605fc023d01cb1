"""Online Naive Bayes classifier over arbitrary discrete tokens.

Training and untraining update counters in a shared ``CounterStore``;
classification reads them back and scores every known category. Tokens can
be any hashable value (words, n-grams, feature ids), not only text.

Features:
- Log-domain probabilities to avoid floating point underflow
- Laplace smoothing for unseen tokens
- Standard or binarized (presence/absence) counting
- Optional uniform category priors
- Optional log-scaled vocabulary size for smoothing
- Pruning of rare tokens

Example::

    store = MemoryCounterStore()
    nb = NaiveBayesClassifier(store)
    nb.train(["cheap", "meds"], "spam")
    nb.train(["hello", "friend"], "ham")

    result = nb.classify(["cheap"])
    print(result.argmax())      # "spam"
    print(result["spam"])       # 0.58...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Iterable, Optional

from .counters import CategoryCounters, CategoryStats
from .engine import ClassificationResult, ProbabilityEngine
from .storage import CounterStore
from .vocabulary import TokenVocabulary, VocabularySizeTransform

logger = logging.getLogger(__name__)


@dataclass
class ClassifierConfig:
    """Classifier options.

    Args:
        binarized: Count each distinct token once per example.
        assume_uniform_priors: Give every category the same prior.
        k: Laplace smoothing constant (must be positive).
        vocabulary_size_transform: Transform applied to the vocabulary size
            before it is used for smoothing.
    """

    binarized: bool = False
    assume_uniform_priors: bool = False
    k: float = 1.0
    vocabulary_size_transform: VocabularySizeTransform = VocabularySizeTransform.IDENTITY

    def __post_init__(self) -> None:
        if self.k <= 0:
            raise ValueError(f"k must be positive, got {self.k}")
        self.vocabulary_size_transform = VocabularySizeTransform(self.vocabulary_size_transform)


def _unique(tokens: Iterable[Hashable]) -> list[Hashable]:
    """Drop repeated tokens, keeping first-seen order."""
    return list(dict.fromkeys(tokens))


class NaiveBayesClassifier:
    """Incrementally trainable Naive Bayes classifier backed by a counter store.

    The store is the only state. Several classifiers sharing a store (for
    instance several processes pointed at the same Redis prefix) see each
    other's training immediately.

    Args:
        store: Counter store holding the vocabulary and category counts.
        config: Classifier options; defaults to ``ClassifierConfig()``.
    """

    def __init__(
        self,
        store: CounterStore,
        config: Optional[ClassifierConfig] = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.vocabulary = TokenVocabulary(store, self.config.vocabulary_size_transform)
        self.counters = CategoryCounters(store)
        self.engine = ProbabilityEngine(
            self.vocabulary,
            self.counters,
            k=self.config.k,
            assume_uniform_priors=self.config.assume_uniform_priors,
        )

    @property
    def categories(self) -> list[Hashable]:
        """Currently known categories."""
        return list(self.counters.categories())

    def _prepare(self, tokens: Iterable[Hashable]) -> list[Hashable]:
        if self.config.binarized:
            return _unique(tokens)
        return list(tokens)

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(self, tokens: Iterable[Hashable], category: Hashable) -> None:
        """Record one example of ``category`` made of ``tokens``."""
        tokens = self._prepare(tokens)
        self.counters.record_example(category)
        for token in tokens:
            self.vocabulary.observe(token)
            self.counters.add_token_occurrence(category, token)
        logger.debug("Trained %r with %d tokens", category, len(tokens))

    def untrain(self, tokens: Iterable[Hashable], category: Hashable) -> None:
        """Reverse a previous ``train(tokens, category)``.

        Be careful with this method:

        - It decrements the example count of ``category``; when no examples
          remain the category and its token counts are deleted.
        - Tokens never trained in ``category`` are ignored.
        - Every untrained token is dropped from the global vocabulary, even
          if other categories still count it.
        """
        tokens = self._prepare(tokens)
        # Read before remove_example: deleting the category also deletes its occurrences.
        trained = [t for t in _unique(tokens) if self.counters.has_token_occurrence(category, t)]
        remaining = self.counters.remove_example(category)
        if remaining < 1:
            for token in trained:
                self.vocabulary.remove(token)
        else:
            for token in tokens:
                if self.counters.has_token_occurrence(category, token):
                    self.vocabulary.remove(token)
                    self.counters.remove_token_occurrence(category, token)
        logger.debug("Untrained %r with %d tokens", category, len(tokens))

    def purge_less_than(self, threshold: int) -> list[Hashable]:
        """Remove tokens whose count summed over all categories is below ``threshold``.

        Rare tokens slow classification down and tend to overfit. Example
        counts are left alone, so purging is not exactly the same as never
        having trained the purged tokens.

        Returns:
            The tokens that were removed.
        """
        removed = [
            token
            for token in self.vocabulary.tokens()
            if self.counters.purge_below_threshold(token, threshold)
        ]
        for token in removed:
            self.vocabulary.remove(token)
        logger.info(
            "Purged %d tokens below %s; vocabulary size is now %d",
            len(removed), threshold, self.vocabulary.raw_size(),
        )
        return removed

    def delete_category(self, category: Hashable) -> bool:
        """Drop a category from classification. Returns True if it existed."""
        deleted = self.counters.delete_category(category)
        if deleted:
            logger.info("Deleted category %r", category)
        return deleted

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def classify(self, tokens: Iterable[Hashable]) -> ClassificationResult:
        """Probability of each known category given ``tokens``.

        Raises:
            DegenerateStateError: If nothing has been trained yet.
        """
        tokens = self._prepare(tokens)
        logger.debug("classify: %s", ", ".join(map(str, tokens)))
        result = self.engine.calculate(tokens)
        logger.debug("results: %s", result.probabilities)
        return result

    def category_stats(self) -> dict[Hashable, CategoryStats]:
        """Example count and token total for every category."""
        return self.counters.stats()
