"""token-bayes -- online Naive Bayes over arbitrary tokens, backed by a counter store."""

__version__ = "0.1.0"

from .classifier import ClassifierConfig, NaiveBayesClassifier
from .counters import CategoryCounters, CategoryStats
from .engine import ClassificationResult, ProbabilityEngine, normalize
from .errors import ConfigurationError, DegenerateStateError, TokenBayesError
from .storage import (
    CounterKey,
    CounterStore,
    KeySpace,
    MemoryCounterStore,
    Namespace,
    RedisCounterStore,
)
from .vocabulary import TokenVocabulary, VocabularySizeTransform

__all__ = [
    # Core
    "NaiveBayesClassifier",
    "ClassifierConfig",
    "ClassificationResult",
    # Components
    "TokenVocabulary",
    "VocabularySizeTransform",
    "CategoryCounters",
    "CategoryStats",
    "ProbabilityEngine",
    "normalize",
    # Storage
    "CounterStore",
    "MemoryCounterStore",
    "RedisCounterStore",
    "KeySpace",
    "CounterKey",
    "Namespace",
    # Errors
    "TokenBayesError",
    "DegenerateStateError",
    "ConfigurationError",
]
