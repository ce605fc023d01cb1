"""Tests for NaiveBayesClassifier.

Covers training and untraining bookkeeping, binarized counting, purging of
rare tokens, category deletion, and end-to-end classification scenarios.
"""

from __future__ import annotations

import logging
import math

import pytest

from token_bayes.classifier import ClassifierConfig, NaiveBayesClassifier
from token_bayes.counters import CategoryStats
from token_bayes.errors import DegenerateStateError
from token_bayes.storage import KeySpace, MemoryCounterStore
from token_bayes.vocabulary import VocabularySizeTransform

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestClassifierConfig:
    def test_defaults(self) -> None:
        config = ClassifierConfig()
        assert config.binarized is False
        assert config.assume_uniform_priors is False
        assert config.k == 1.0
        assert config.vocabulary_size_transform is VocabularySizeTransform.IDENTITY

    @pytest.mark.parametrize("k", [0, -1.0])
    def test_k_must_be_positive(self, k: float) -> None:
        with pytest.raises(ValueError):
            ClassifierConfig(k=k)

    def test_transform_from_string(self) -> None:
        config = ClassifierConfig(vocabulary_size_transform="natural_log")
        assert config.vocabulary_size_transform is VocabularySizeTransform.NATURAL_LOG


# ---------------------------------------------------------------------------
# Training
# ---------------------------------------------------------------------------


class TestTrain:
    """Tests for train()."""

    def test_train_updates_all_counters(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["a", "b", "a"], "x")
        assert classifier.counters.example_count("x") == 1
        assert classifier.counters.occurrence_count("x", "a") == 2
        assert classifier.counters.occurrence_count("x", "b") == 1
        assert classifier.vocabulary.count("a") == 2
        assert classifier.vocabulary.raw_size() == 2
        assert classifier.categories == ["x"]

    def test_train_accepts_any_iterable(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train((t for t in ["a", "b"]), "x")
        assert classifier.counters.category_token_total("x") == 2

    def test_train_empty_tokens_records_example(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train([], "x")
        assert classifier.counters.example_count("x") == 1
        assert classifier.vocabulary.raw_size() == 0

    def test_non_string_tokens(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train([1, 2, (3, 4)], "even")
        classifier.train([5, 7], "odd")
        assert classifier.classify([(3, 4)]).argmax() == "even"

    def test_binarized_dedupes(self, store: MemoryCounterStore) -> None:
        binarized = NaiveBayesClassifier(store, ClassifierConfig(binarized=True))
        binarized.train(["x", "x", "y"], "A")

        reference = NaiveBayesClassifier(MemoryCounterStore())
        reference.train(["x", "y"], "A")

        assert binarized.category_stats() == reference.category_stats()
        for token in ["x", "y"]:
            assert binarized.counters.occurrence_count("A", token) == reference.counters.occurrence_count("A", token)
            assert binarized.vocabulary.count(token) == reference.vocabulary.count(token)


# ---------------------------------------------------------------------------
# Untraining
# ---------------------------------------------------------------------------


class TestUntrain:
    """Tests for untrain()."""

    def test_round_trip_restores_counts(self, spam_ham: NaiveBayesClassifier) -> None:
        before = spam_ham.category_stats()
        before_occ = spam_ham.counters.occurrence_count("spam", "cheap")

        spam_ham.train(["cheap", "deal"], "spam")
        spam_ham.untrain(["cheap", "deal"], "spam")

        assert spam_ham.category_stats() == before
        assert spam_ham.counters.occurrence_count("spam", "cheap") == before_occ
        assert not spam_ham.counters.has_token_occurrence("spam", "deal")

    def test_round_trip_deletes_new_category(
        self, spam_ham: NaiveBayesClassifier, store: MemoryCounterStore
    ) -> None:
        spam_ham.train(["news", "today"], "newsletter")
        spam_ham.untrain(["news", "today"], "newsletter")
        assert "newsletter" not in spam_ham.categories
        assert spam_ham.counters.example_count("newsletter") == 0
        assert store.count(KeySpace.tokens_of("newsletter")) == 0
        assert "news" not in spam_ham.vocabulary
        assert "today" not in spam_ham.vocabulary
        assert set(spam_ham.vocabulary) == {"cheap", "meds", "hello", "friend"}

    def test_deleting_category_keeps_vocabulary_in_step(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["cheap"], "spam")
        classifier.train(["news", "news"], "newsletter")
        classifier.untrain(["news", "news", "never-seen"], "newsletter")
        assert classifier.categories == ["spam"]
        assert set(classifier.vocabulary) == {"cheap"}

    def test_untrained_token_is_noop(self, spam_ham: NaiveBayesClassifier) -> None:
        spam_ham.train(["cheap"], "spam")
        spam_ham.untrain(["never-seen"], "spam")
        assert spam_ham.counters.example_count("spam") == 1
        assert spam_ham.counters.occurrence_count("spam", "cheap") == 2
        assert "never-seen" not in spam_ham.vocabulary

    def test_untrain_drops_token_from_global_vocabulary(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["shared"], "a")
        classifier.train(["shared"], "a")
        classifier.train(["shared"], "b")
        classifier.untrain(["shared"], "a")
        assert "shared" not in classifier.vocabulary
        assert classifier.counters.occurrence_count("a", "shared") == 1
        assert classifier.counters.occurrence_count("b", "shared") == 1

    def test_binarized_untrain_dedupes(self, binarized_classifier: NaiveBayesClassifier) -> None:
        binarized_classifier.train(["x", "y"], "A")
        binarized_classifier.train(["x"], "A")
        binarized_classifier.untrain(["x", "x"], "A")
        assert binarized_classifier.counters.occurrence_count("A", "x") == 1


# ---------------------------------------------------------------------------
# Purging and deletion
# ---------------------------------------------------------------------------


class TestPurgeLessThan:
    """Tests for purge_less_than()."""

    @pytest.fixture
    def trained(self, classifier: NaiveBayesClassifier) -> NaiveBayesClassifier:
        classifier.train(["common", "rare1", "mid"], "a")
        classifier.train(["common", "mid"], "b")
        classifier.train(["common", "rare2"], "b")
        return classifier

    def test_removes_tokens_below_threshold(self, trained: NaiveBayesClassifier) -> None:
        removed = trained.purge_less_than(2)
        assert set(removed) == {"rare1", "rare2"}
        assert set(trained.vocabulary) == {"common", "mid"}
        for token in trained.vocabulary:
            assert trained.counters.occurrence_across_categories(token) >= 2
        for token in ("rare1", "rare2"):
            assert trained.counters.occurrence_across_categories(token) == 0

    def test_keeps_example_counts(self, trained: NaiveBayesClassifier) -> None:
        trained.purge_less_than(3)
        assert trained.counters.example_count("a") == 1
        assert trained.counters.example_count("b") == 2
        assert set(trained.vocabulary) == {"common"}

    def test_threshold_one_keeps_everything(self, trained: NaiveBayesClassifier) -> None:
        assert trained.purge_less_than(1) == []
        assert trained.vocabulary.raw_size() == 4

    def test_logs_summary(self, trained: NaiveBayesClassifier, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="token_bayes.classifier"):
            trained.purge_less_than(2)
        assert "Purged 2 tokens" in caplog.text


class TestDeleteCategory:
    def test_delete_category(self, spam_ham: NaiveBayesClassifier) -> None:
        assert spam_ham.delete_category("spam") is True
        assert spam_ham.categories == ["ham"]
        assert set(spam_ham.classify(["cheap"])) == {"ham"}

    def test_delete_missing_category(self, spam_ham: NaiveBayesClassifier) -> None:
        assert spam_ham.delete_category("nope") is False


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    """End-to-end classification scenarios."""

    def test_spam_beats_ham(self, spam_ham: NaiveBayesClassifier) -> None:
        result = spam_ham.classify(["cheap"])
        assert result["spam"] > result["ham"]
        assert result.argmax() == "spam"

    def test_probabilities_sum_to_one(self, spam_ham: NaiveBayesClassifier) -> None:
        spam_ham.train(["meeting", "friend", "today"], "work")
        for tokens in (["cheap"], ["friend", "today"], ["unknown"], [], ["cheap", "cheap", "meds"]):
            assert sum(spam_ham.classify(tokens).values()) == pytest.approx(1.0, abs=1e-9)

    def test_single_category(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["a", "b"], "only")
        assert dict(classifier.classify(["a", "b"])) == {"only": 1.0}

    def test_single_category_empty_tokens(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["a"], "only")
        assert dict(classifier.classify([])) == {"only": 1.0}

    def test_unseen_token_is_smoothed(self, spam_ham: NaiveBayesClassifier) -> None:
        result = spam_ham.classify(["zzz-never-trained"])
        for prob in result.values():
            assert prob > 0
            assert not math.isnan(prob)

    def test_untrained_classifier_raises(self, classifier: NaiveBayesClassifier) -> None:
        with pytest.raises(DegenerateStateError):
            classifier.classify(["anything"])

    def test_log_vocab_with_single_token_raises(self, store: MemoryCounterStore) -> None:
        nb = NaiveBayesClassifier(
            store, ClassifierConfig(vocabulary_size_transform=VocabularySizeTransform.NATURAL_LOG)
        )
        nb.train(["a"], "A")
        nb.train(["a"], "A")
        for _ in range(3):
            nb.train(["a"], "B")
        # ln(1) == 0 leaves nothing to smooth against.
        with pytest.raises(DegenerateStateError):
            nb.classify(["a", "a"])

    def test_classify_after_untrain_empties_vocabulary_raises(self, classifier: NaiveBayesClassifier) -> None:
        classifier.train(["a"], "A")
        classifier.train(["a"], "A")
        classifier.train(["b"], "B")
        classifier.train(["b"], "B")
        classifier.untrain(["a"], "A")
        classifier.untrain(["b"], "B")
        assert classifier.vocabulary.raw_size() == 0
        assert len(classifier.categories) == 2
        with pytest.raises(DegenerateStateError):
            classifier.classify(["a", "a"])

    def test_uniform_priors_ignore_example_share(self, store: MemoryCounterStore) -> None:
        nb = NaiveBayesClassifier(store, ClassifierConfig(assume_uniform_priors=True))
        for _ in range(5):
            nb.train(["x"], "big")
        nb.train(["y"], "small")
        result = nb.classify([])
        assert result["big"] == pytest.approx(result["small"])

    def test_binarized_classify_dedupes(self, binarized_classifier: NaiveBayesClassifier) -> None:
        binarized_classifier.train(["cheap", "meds"], "spam")
        binarized_classifier.train(["hello", "friend"], "ham")
        assert dict(binarized_classifier.classify(["cheap", "cheap"])) == pytest.approx(
            dict(binarized_classifier.classify(["cheap"]))
        )

    def test_log_vocab_classifier(self, store: MemoryCounterStore) -> None:
        nb = NaiveBayesClassifier(
            store, ClassifierConfig(vocabulary_size_transform=VocabularySizeTransform.NATURAL_LOG)
        )
        nb.train(["cheap", "meds"], "spam")
        nb.train(["hello", "friend"], "ham")
        assert nb.classify(["cheap"]).argmax() == "spam"

    def test_shared_store_is_visible_immediately(self, store: MemoryCounterStore) -> None:
        writer = NaiveBayesClassifier(store)
        reader = NaiveBayesClassifier(store)
        writer.train(["a"], "x")
        assert reader.categories == ["x"]
        writer.train(["b"], "y")
        assert set(reader.classify(["a"])) == {"x", "y"}

    def test_classify_logs_debug(self, spam_ham: NaiveBayesClassifier, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="token_bayes.classifier"):
            spam_ham.classify(["cheap"])
        assert "classify: cheap" in caplog.text


class TestCategoryStats:
    def test_category_stats(self, spam_ham: NaiveBayesClassifier) -> None:
        spam_ham.train(["cheap"], "spam")
        assert spam_ham.category_stats() == {
            "spam": CategoryStats(examples=2, tokens=3),
            "ham": CategoryStats(examples=1, tokens=2),
        }
