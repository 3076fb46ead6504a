"""Lightweight lexical feature extraction.

Features feed two consumers: the HashDeriver, which hashes quantized
summaries of them into the energy and spin hashes, and the
SpinSemanticAnalyzer, which turns them into spin axes and bounded scores.

Everything here is deterministic, dictionary-based and cheap; no model is
involved.

Example:
    >>> from hashsphere.features import extract_features
    >>> f = extract_features("This is the BEST and fastest release ever!!!")
    >>> f.exclamations
    3
    >>> f.superlatives
    2
"""

from __future__ import annotations

import re
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

_TOKEN_RE = re.compile(r"[A-Za-z0-9_']+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+(?:\s+|$)")
_PUNCT_RE = re.compile(r"[!?.,;:\-…]")
_SUPERLATIVE_SUFFIX_RE = re.compile(r"^[a-z]{3,}est$")


class LexicalFeatures(BaseModel):
    """Counts and ratios extracted from one piece of text.

    Attributes:
        tokens: Number of word tokens.
        unique_tokens: Number of distinct lowercase tokens.
        sentences: Number of sentences (at least 1 for non-empty text).
        characters: Length of the text.
        letters: Number of alphabetic characters.
        uppercase: Number of uppercase alphabetic characters.
        punctuation: Number of punctuation marks.
        exclamations: Number of '!' characters.
        questions: Number of '?' characters.
        superlatives: Superlative words ("best", "fastest", "most ...").
        positive: Positive sentiment lexicon hits.
        negative: Negative sentiment lexicon hits.
        negations: Negation words ("not", "never", ...).
        technical: Technical lexicon hits.
        creative: Creative lexicon hits.
        avg_word_length: Mean characters per token.
        avg_sentence_length: Mean tokens per sentence.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    tokens: int = Field(default=0, ge=0)
    unique_tokens: int = Field(default=0, ge=0)
    sentences: int = Field(default=0, ge=0)
    characters: int = Field(default=0, ge=0)
    letters: int = Field(default=0, ge=0)
    uppercase: int = Field(default=0, ge=0)
    punctuation: int = Field(default=0, ge=0)
    exclamations: int = Field(default=0, ge=0)
    questions: int = Field(default=0, ge=0)
    superlatives: int = Field(default=0, ge=0)
    positive: int = Field(default=0, ge=0)
    negative: int = Field(default=0, ge=0)
    negations: int = Field(default=0, ge=0)
    technical: int = Field(default=0, ge=0)
    creative: int = Field(default=0, ge=0)
    avg_word_length: float = Field(default=0.0, ge=0.0)
    avg_sentence_length: float = Field(default=0.0, ge=0.0)

    @property
    def punctuation_density(self) -> float:
        """Punctuation marks per character, in [0, 1]."""
        return self.punctuation / self.characters if self.characters else 0.0

    @property
    def caps_ratio(self) -> float:
        """Share of letters that are uppercase, in [0, 1]."""
        return self.uppercase / self.letters if self.letters else 0.0

    @property
    def superlative_ratio(self) -> float:
        return self.superlatives / self.tokens if self.tokens else 0.0

    @property
    def type_token_ratio(self) -> float:
        return self.unique_tokens / self.tokens if self.tokens else 0.0

    @property
    def polarity(self) -> float:
        """(positive - negative) / (positive + negative), 0.0 when neither occurs."""
        total = self.positive + self.negative
        return (self.positive - self.negative) / total if total else 0.0

    @property
    def topic_direction(self) -> float:
        """(technical - creative) / (technical + creative), 0.0 when neither occurs."""
        total = self.technical + self.creative
        return (self.technical - self.creative) / total if total else 0.0

    def energy_summary(self) -> str:
        """Quantized intensity indicators hashed into the energy hash."""
        return (
            f"punct={self.punctuation_density:.2f}"
            f"|sup={self.superlative_ratio:.2f}"
            f"|caps={self.caps_ratio:.2f}"
            f"|excl={min(self.exclamations, 9)}"
        )

    def spin_summary(self) -> str:
        """Quantized sentiment and directionality indicators hashed into the spin hash."""
        question_ratio = self.questions / self.sentences if self.sentences else 0.0
        negation_ratio = self.negations / self.tokens if self.tokens else 0.0
        return (
            f"pol={self.polarity:.2f}"
            f"|topic={self.topic_direction:.2f}"
            f"|q={question_ratio:.2f}"
            f"|neg={negation_ratio:.2f}"
        )


class LexicalAnalyzer:
    """Extracts LexicalFeatures with fixed word lists.

    Word lists are matched against lowercase tokens. Superlatives also match
    "-est" words of at least six letters that are not in the exclusion list,
    and any word directly following "most" or "least".
    """

    POSITIVE: ClassVar[frozenset[str]] = frozenset(
        {
            "good", "great", "excellent", "amazing", "awesome", "love", "loved", "like",
            "happy", "glad", "nice", "wonderful", "fantastic", "brilliant", "best",
            "success", "successful", "win", "won", "enjoy", "enjoyed", "pleased",
            "perfect", "beautiful", "helpful", "thanks", "thank", "excited", "calm",
            "clean", "fast", "reliable", "works", "fixed", "solved",
        }
    )
    NEGATIVE: ClassVar[frozenset[str]] = frozenset(
        {
            "bad", "terrible", "awful", "horrible", "hate", "hated", "sad", "angry",
            "upset", "worst", "fail", "failed", "failure", "broken", "bug", "bugs",
            "crash", "crashed", "error", "errors", "slow", "wrong", "problem",
            "problems", "annoying", "frustrated", "frustrating", "ugly", "poor",
            "lost", "pain", "worried", "afraid", "stuck", "regret",
        }
    )
    NEGATIONS: ClassVar[frozenset[str]] = frozenset(
        {"not", "no", "never", "none", "nothing", "nobody", "neither", "nor",
         "don't", "doesn't", "didn't", "isn't", "wasn't", "can't", "won't", "cannot"}
    )
    SUPERLATIVES: ClassVar[frozenset[str]] = frozenset(
        {"best", "worst", "greatest", "biggest", "largest",
         "smallest", "fastest", "slowest", "highest", "lowest", "ultimate",
         "absolute", "extreme", "extremely", "incredibly", "totally"}
    )
    # "-est" words that are not superlatives.
    SUPERLATIVE_EXCLUDE: ClassVar[frozenset[str]] = frozenset(
        {"test", "latest", "request", "interest", "honest", "forest", "suggest",
         "contest", "manifest", "digest", "harvest", "protest", "invest", "guest",
         "nest", "rest", "west", "chest", "quest", "pest", "vest",
         "unittest", "pytest", "ingest", "earnest", "arrest", "modest", "attest"}
    )
    TECHNICAL: ClassVar[frozenset[str]] = frozenset(
        {
            "code", "function", "class", "method", "api", "database", "query", "index",
            "server", "client", "deploy", "build", "compile", "compiler", "algorithm",
            "vector", "matrix", "hash", "thread", "lock", "cache", "config", "python",
            "module", "import", "schema", "latency", "throughput", "memory", "cpu",
            "kernel", "protocol", "endpoint", "json", "sql", "debug", "test", "tests",
            "benchmark", "embedding", "model", "tensor", "gradient", "library",
        }
    )
    CREATIVE: ClassVar[frozenset[str]] = frozenset(
        {
            "story", "poem", "poetry", "dream", "dreams", "imagine", "art", "artist",
            "music", "song", "paint", "painting", "color", "colour", "novel", "character",
            "magic", "myth", "legend", "fantasy", "sky", "ocean", "heart", "soul",
            "feel", "feeling", "beauty", "light", "shadow", "wonder", "muse", "dance",
            "canvas", "melody", "verse", "sunset", "moon", "stars",
        }
    )

    def analyze(self, text: str) -> LexicalFeatures:
        """Extract features from text. Empty text yields all-zero features."""
        if not text or not text.strip():
            return LexicalFeatures()

        raw_tokens = _TOKEN_RE.findall(text)
        words = [t.lower() for t in raw_tokens]
        sentences = [s for s in _SENTENCE_SPLIT_RE.split(text.strip()) if s.strip()]
        n_sentences = max(1, len(sentences))

        letters = sum(1 for ch in text if ch.isalpha())
        uppercase = sum(1 for ch in text if ch.isalpha() and ch.isupper())

        superlatives = 0
        for i, w in enumerate(words):
            if w in self.SUPERLATIVES:
                superlatives += 1
            elif _SUPERLATIVE_SUFFIX_RE.match(w) and len(w) >= 6 and w not in self.SUPERLATIVE_EXCLUDE:
                superlatives += 1
            elif i > 0 and words[i - 1] in ("most", "least"):
                superlatives += 1

        n_tokens = len(words)
        return LexicalFeatures(
            tokens=n_tokens,
            unique_tokens=len(set(words)),
            sentences=n_sentences,
            characters=len(text),
            letters=letters,
            uppercase=uppercase,
            punctuation=len(_PUNCT_RE.findall(text)),
            exclamations=text.count("!"),
            questions=text.count("?"),
            superlatives=superlatives,
            positive=sum(1 for w in words if w in self.POSITIVE),
            negative=sum(1 for w in words if w in self.NEGATIVE),
            negations=sum(1 for w in words if w in self.NEGATIONS),
            technical=sum(1 for w in words if w in self.TECHNICAL),
            creative=sum(1 for w in words if w in self.CREATIVE),
            avg_word_length=(sum(len(w) for w in words) / n_tokens) if n_tokens else 0.0,
            avg_sentence_length=n_tokens / n_sentences,
        )


_default_analyzer = LexicalAnalyzer()


def extract_features(text: str) -> LexicalFeatures:
    """Extract lexical features using the default word lists."""
    return _default_analyzer.analyze(text)
