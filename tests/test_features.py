"""Tests for lexical feature extraction."""

import pytest

from hashsphere.features import LexicalAnalyzer, LexicalFeatures, extract_features


class TestExtractFeatures:
    """Tests for extract_features."""

    def test_empty_text(self):
        assert extract_features("") == LexicalFeatures()
        assert extract_features("   \n ") == LexicalFeatures()

    def test_counts(self):
        f = extract_features("This is the BEST and fastest release ever!!!")
        assert f.tokens == 8
        assert f.exclamations == 3
        assert f.superlatives == 2
        assert f.sentences == 1

    def test_superlative_exclusions(self):
        """Words that merely end in -est are not superlatives."""
        f = extract_features("Please run the latest test and ingest the request.")
        assert f.superlatives == 0

    def test_most_prefix(self):
        f = extract_features("The most reliable option")
        assert f.superlatives == 1

    def test_sentiment_lexicon(self):
        f = extract_features("Great work, but the build is broken and slow.")
        assert f.positive == 1
        assert f.negative == 2
        assert f.polarity == pytest.approx(-1 / 3)

    def test_topic_direction(self):
        f = extract_features("The python module exposes a vector index api.")
        assert f.technical >= 3
        assert f.creative == 0
        assert f.topic_direction == 1.0

    def test_ratios_bounded(self):
        f = extract_features("WOW!!! THIS IS LOUD")
        assert 0.0 <= f.caps_ratio <= 1.0
        assert f.caps_ratio == 1.0
        assert 0.0 <= f.punctuation_density <= 1.0

    def test_neutral_ratios_are_zero(self):
        f = extract_features("plain words here")
        assert f.polarity == 0.0
        assert f.topic_direction == 0.0


class TestSummaries:
    """Tests for the quantized summaries fed to the hashes."""

    def test_energy_summary_quantized(self):
        summary = extract_features("Fast!").energy_summary()
        assert summary.startswith("punct=")
        assert "|excl=1" in summary

    def test_exclamations_capped_in_summary(self):
        summary = extract_features("yes" + "!" * 20).energy_summary()
        assert summary.endswith("|excl=9")

    def test_spin_summary_fields(self):
        summary = extract_features("Is it not broken?").spin_summary()
        assert summary.startswith("pol=-1.00")
        assert "|q=1.00" in summary


class TestLexicalAnalyzer:
    """Tests for custom analyzers."""

    def test_subclass_word_lists(self):
        class Custom(LexicalAnalyzer):
            TECHNICAL = frozenset({"sprocket"})

        f = Custom().analyze("sprocket sprocket code")
        assert f.technical == 2
