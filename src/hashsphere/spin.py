"""Spin and semantic scoring from lexical features.

Each record gets a spin vector built from three independent signals:

- spin_x, topic direction: technical (+1) versus creative (-1) vocabulary.
- spin_y, emotional valence: positive (+1) versus negative (-1) vocabulary.
- spin_z, complexity: long words and long sentences (+1) versus short (-1).

plus three bounded scalar scores: meaning (vocabulary diversity saturating
with length), intensity (exclamations, superlatives, capitals) and
sentiment (0.5 is exactly neutral).
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from .features import LexicalFeatures, extract_features

# Tokens at which the meaning length curve reaches 1 - 1/e.
MEANING_LENGTH_SCALE = 20.0
# Word and sentence lengths treated as maximally complex.
COMPLEX_WORD_LENGTH = 10.0
COMPLEX_SENTENCE_LENGTH = 30.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SpinProfile(BaseModel):
    """Spin vector and semantic scores for one piece of content."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    spin_x: float = Field(ge=-1.0, le=1.0)
    spin_y: float = Field(ge=-1.0, le=1.0)
    spin_z: float = Field(ge=-1.0, le=1.0)
    meaning_score: float = Field(ge=0.0, le=1.0)
    intensity_score: float = Field(ge=0.0, le=1.0)
    sentiment_score: float = Field(ge=0.0, le=1.0)

    @property
    def spin_magnitude(self) -> float:
        return math.sqrt(self.spin_x**2 + self.spin_y**2 + self.spin_z**2)


class SpinSemanticAnalyzer:
    """Turns lexical features into a SpinProfile."""

    def analyze(self, content: str, features: LexicalFeatures | None = None) -> SpinProfile:
        if features is None:
            features = extract_features(content)

        if features.tokens == 0:
            return SpinProfile(
                spin_x=0.0,
                spin_y=0.0,
                spin_z=0.0,
                meaning_score=0.0,
                intensity_score=0.0,
                sentiment_score=0.5,
            )

        return SpinProfile(
            spin_x=_clamp(features.topic_direction, -1.0, 1.0),
            spin_y=_clamp(features.polarity, -1.0, 1.0),
            spin_z=_clamp(2.0 * self.complexity(features) - 1.0, -1.0, 1.0),
            meaning_score=self.meaning(features),
            intensity_score=self.intensity(features),
            sentiment_score=self.sentiment(features),
        )

    @staticmethod
    def complexity(features: LexicalFeatures) -> float:
        """Average of word-length and sentence-length saturation, in [0, 1]."""
        word = min(1.0, features.avg_word_length / COMPLEX_WORD_LENGTH)
        sentence = min(1.0, features.avg_sentence_length / COMPLEX_SENTENCE_LENGTH)
        return 0.5 * word + 0.5 * sentence

    @staticmethod
    def meaning(features: LexicalFeatures) -> float:
        """Type-token ratio scaled by a length saturation curve."""
        saturation = 1.0 - math.exp(-features.tokens / MEANING_LENGTH_SCALE)
        return _clamp(features.type_token_ratio * saturation, 0.0, 1.0)

    @staticmethod
    def intensity(features: LexicalFeatures) -> float:
        exclaim = min(1.0, features.exclamations / features.sentences) if features.sentences else 0.0
        superlative = min(1.0, 5.0 * features.superlative_ratio)
        return _clamp(0.4 * exclaim + 0.3 * superlative + 0.3 * features.caps_ratio, 0.0, 1.0)

    @staticmethod
    def sentiment(features: LexicalFeatures) -> float:
        """0.5 + polarity / 2, so text with no sentiment words is exactly 0.5."""
        return _clamp(0.5 + 0.5 * features.polarity, 0.0, 1.0)
