"""Shared test fixtures for token-bayes tests."""

from __future__ import annotations

import pytest

from token_bayes.classifier import ClassifierConfig, NaiveBayesClassifier
from token_bayes.storage import MemoryCounterStore


@pytest.fixture
def store() -> MemoryCounterStore:
    """Empty in-memory counter store."""
    return MemoryCounterStore()


@pytest.fixture
def classifier(store: MemoryCounterStore) -> NaiveBayesClassifier:
    """Classifier with default options over an empty store."""
    return NaiveBayesClassifier(store)


@pytest.fixture
def binarized_classifier(store: MemoryCounterStore) -> NaiveBayesClassifier:
    """Classifier that counts each distinct token once per example."""
    return NaiveBayesClassifier(store, ClassifierConfig(binarized=True))


@pytest.fixture
def spam_ham(classifier: NaiveBayesClassifier) -> NaiveBayesClassifier:
    """Classifier trained with one spam and one ham example."""
    classifier.train(["cheap", "meds"], "spam")
    classifier.train(["hello", "friend"], "ham")
    return classifier
