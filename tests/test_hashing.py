"""Tests for content hashing and universe_id derivation."""

import pytest
from pydantic import ValidationError

from hashsphere.hashing import (
    ENERGY_HASH_LENGTH,
    MEANING_HASH_LENGTH,
    SPIN_HASH_LENGTH,
    HashDeriver,
    HashSet,
    hash_similarity,
    normalize_content,
)

TENANT = b'["org_1","user_1"]'


class TestNormalizeContent:
    """Tests for content normalization."""

    def test_casefold_and_whitespace(self):
        assert normalize_content("  Hello \t\n  WORLD ") == "hello world"

    def test_nfkc(self):
        # Fullwidth letters normalize to ASCII
        assert normalize_content("ＡＢＣ") == "abc"


class TestHashDeriver:
    """Tests for HashDeriver."""

    def test_lengths(self):
        hashes = HashDeriver().derive("hello world", 1000, TENANT)
        assert len(hashes.meaning_hash) == MEANING_HASH_LENGTH == 20
        assert len(hashes.energy_hash) == ENERGY_HASH_LENGTH == 8
        assert len(hashes.spin_hash) == SPIN_HASH_LENGTH == 8
        assert len(hashes.universe_id) == 64
        int(hashes.universe_id, 16)

    def test_deterministic(self):
        """Same inputs, same hashes, across instances."""
        a = HashDeriver().derive("The deploy failed!", 5, TENANT)
        b = HashDeriver().derive("The deploy failed!", 5, TENANT)
        assert a == b

    def test_meaning_hash_ignores_case_and_spacing(self):
        deriver = HashDeriver()
        assert deriver.meaning_hash("Hello   World") == deriver.meaning_hash("hello world")

    def test_universe_id_varies_with_time(self):
        deriver = HashDeriver()
        assert deriver.universe_id("x", 1, TENANT) != deriver.universe_id("x", 2, TENANT)

    def test_universe_id_varies_with_tenant(self):
        deriver = HashDeriver()
        assert deriver.universe_id("x", 1, b"a") != deriver.universe_id("x", 1, b"b")

    def test_universe_id_field_boundaries(self):
        """Moving bytes between fields changes the id."""
        deriver = HashDeriver()
        assert deriver.universe_id("ab", 1, b"c") != deriver.universe_id("a", 1, b"bc")

    def test_content_hashes_match_derive(self):
        deriver = HashDeriver()
        hashes = deriver.derive("Such a great day!", 7, TENANT)
        assert deriver.content_hashes("Such a great day!") == (
            hashes.meaning_hash,
            hashes.energy_hash,
            hashes.spin_hash,
        )

    def test_energy_hash_tracks_intensity(self):
        deriver = HashDeriver()
        calm = deriver.content_hashes("the release shipped")
        loud = deriver.content_hashes("THE RELEASE SHIPPED!!!")
        assert calm[1] != loud[1]


class TestHashSimilarity:
    """Tests for bit-level Hamming similarity."""

    def test_identical(self):
        assert hash_similarity("deadbeef", "deadbeef") == 1.0

    def test_complement(self):
        assert hash_similarity("0000", "ffff") == 0.0

    def test_one_bit(self):
        assert hash_similarity("00", "01") == pytest.approx(7 / 8)

    def test_length_mismatch(self):
        assert hash_similarity("00", "000") == 0.0

    def test_non_hex(self):
        assert hash_similarity("zz", "00") == 0.0

    def test_empty(self):
        assert hash_similarity("", "") == 0.0


class TestHashSet:
    """Tests for HashSet."""

    def test_similarity_with_self(self):
        hashes = HashDeriver().derive("hello world", 1, TENANT)
        assert hashes.similarity(hashes.meaning_hash, hashes.energy_hash, hashes.spin_hash) == 1.0

    def test_rejects_wrong_lengths(self):
        with pytest.raises(ValidationError):
            HashSet(meaning_hash="ab", energy_hash="0" * 8, spin_hash="0" * 8, universe_id="0" * 64)
