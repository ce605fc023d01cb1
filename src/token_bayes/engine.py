"""Log-domain Naive Bayes scoring and renormalization.

For each category ``c`` the engine computes a raw log score::

    log P(c) + sum over t of log((count(c, t) + k) / (tokens(c) + k * V))

where ``V`` is the vocabulary smoothing term. The raw scores are negative;
the closer to zero, the more likely the category.

Raw scores are turned into probabilities by a ratio-preserving rescaling,
not by softmax. With ``N`` the sum of the raw scores::

    intermediate[c] = N / raw[c]
    p[c] = intermediate[c] / sum(intermediate)

Example: raw scores -1, -1, -2 give N = -4, intermediates 4, 4, 2 and
probabilities 0.4, 0.4, 0.2. The results sum to 1 but are not the exact
posterior.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Iterator

from .counters import CategoryCounters
from .errors import DegenerateStateError
from .vocabulary import TokenVocabulary


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClassificationResult(Mapping):
    """Probability per category, with the raw log scores they came from.

    Behaves as a read-only mapping of category to probability.
    """

    probabilities: dict[Hashable, float]
    log_scores: dict[Hashable, float] = field(default_factory=dict, repr=False)

    def __getitem__(self, category: Hashable) -> float:
        return self.probabilities[category]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.probabilities)

    def __len__(self) -> int:
        return len(self.probabilities)

    def argmax(self) -> Hashable:
        """Category with the highest probability.

        Ties go to the category whose ``str()`` sorts first.

        Raises:
            ValueError: If the result is empty.
        """
        if not self.probabilities:
            raise ValueError("argmax() of an empty classification result")
        return min(self.probabilities.items(), key=lambda kv: (-kv[1], str(kv[0])))[0]

    @property
    def predicted_class(self) -> Hashable:
        return self.argmax()

    @property
    def confidence(self) -> float:
        return self.probabilities[self.argmax()]

    def to_dict(self) -> dict:
        return {
            "predicted_class": self.predicted_class,
            "confidence": round(self.confidence, 4),
            "probabilities": {
                k: round(v, 4) for k, v in sorted(
                    self.probabilities.items(),
                    key=lambda x: x[1],
                    reverse=True,
                )
            },
        }


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize(raw_scores: Mapping[Hashable, float]) -> dict[Hashable, float]:
    """Rescale negative log scores into probabilities that sum to 1.

    A raw score of exactly 0 only arises for an empty token set with a zero
    log prior (a single category). That is the limit in which the
    category's intermediate value grows without bound, so zero-score
    categories share all of the mass and the others get none.

    Args:
        raw_scores: Category to raw log score (each <= 0).

    Returns:
        Category to probability.

    Raises:
        DegenerateStateError: If a score is positive, or the scores cannot
            be rescaled without dividing by zero.
    """
    if not raw_scores:
        return {}

    positive = {cat: score for cat, score in raw_scores.items() if score > 0}
    if positive:
        raise DegenerateStateError(f"Log scores must not be positive: {positive}")

    zero_scored = [cat for cat, score in raw_scores.items() if score == 0]
    if zero_scored:
        share = 1.0 / len(zero_scored)
        return {cat: (share if score == 0 else 0.0) for cat, score in raw_scores.items()}

    normalizer = sum(raw_scores.values())
    if normalizer == 0:
        raise DegenerateStateError("Log scores sum to zero; cannot normalize.")
    intermediate = {cat: normalizer / score for cat, score in raw_scores.items()}
    renormalizer = sum(intermediate.values())
    if renormalizer == 0:
        raise DegenerateStateError("Rescaled scores sum to zero; cannot normalize.")
    return {cat: value / renormalizer for cat, value in intermediate.items()}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ProbabilityEngine:
    """Computes category probabilities from the stored counts.

    Read-only: it never mutates the vocabulary or the counters, and it
    re-reads storage on every call.

    Args:
        vocabulary: Token registry supplying ``V``.
        counters: Category and occurrence counts.
        k: Laplace smoothing constant.
        assume_uniform_priors: Use ``1 / number_of_categories`` as every
            category's prior instead of its share of training examples.
    """

    def __init__(
        self,
        vocabulary: TokenVocabulary,
        counters: CategoryCounters,
        k: float = 1.0,
        assume_uniform_priors: bool = False,
    ) -> None:
        self._vocabulary = vocabulary
        self._counters = counters
        self.k = k
        self.assume_uniform_priors = assume_uniform_priors

    def raw_scores(self, tokens: Iterable[Hashable]) -> dict[Hashable, float]:
        """Unnormalized log score for every known category.

        Raises:
            DegenerateStateError: If nothing has been trained, a
                smoothing denominator is not positive, or a log score
                comes out positive.
        """
        tokens = list(tokens)
        categories = list(self._counters.categories())
        example_counts = {c: self._counters.example_count(c) for c in categories}
        total_examples = sum(example_counts.values())
        if not categories or total_examples <= 0:
            raise DegenerateStateError(
                "Cannot classify: no training examples have been recorded."
            )

        v_size = self._vocabulary.size() if tokens else 0.0
        uniform_prior = math.log(1 / len(categories))

        scores: dict[Hashable, float] = {}
        for category in categories:
            if self.assume_uniform_priors:
                log_prior = uniform_prior
            elif example_counts[category] > 0:
                log_prior = math.log(example_counts[category] / total_examples)
            else:
                # Torn read: the category vanished after it was listed.
                continue

            log_likelihood = 0.0
            if tokens:
                denominator = self._counters.category_token_total(category) + self.k * v_size
                if denominator <= 0:
                    raise DegenerateStateError(
                        f"Smoothing denominator for category {category!r} is {denominator}."
                    )
                for token in tokens:
                    numerator = self._counters.occurrence_count(category, token) + self.k
                    log_likelihood += math.log(numerator / denominator)

            score = log_likelihood + log_prior
            if score > 0:
                # Happens when k * V < k, e.g. V = ln(1) or an emptied vocabulary.
                raise DegenerateStateError(
                    f"Log score for category {category!r} is positive ({score:.4f}); "
                    f"vocabulary smoothing term V = {v_size} is too small."
                )
            scores[category] = score
        return scores

    def calculate(self, tokens: Iterable[Hashable]) -> ClassificationResult:
        """Classify ``tokens`` against the current counts."""
        scores = self.raw_scores(tokens)
        return ClassificationResult(probabilities=normalize(scores), log_scores=scores)
