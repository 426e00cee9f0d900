"""
Unit tests for review item identity and deduplication keys.
"""

import pytest

from frflow.core.identity import (
    canonical_surface,
    fnv1a_64,
    grammar_raw_key,
    stable_id,
    text_raw_key,
    vocab_dedup_key,
)
from frflow.core.models import GrammarEntry, ItemKind, PhoneticSegment, TextLine, VocabEntry


class TestFnv1a:
    """Tests for the 64-bit FNV-1a hash."""

    def test_known_vectors(self):
        assert fnv1a_64("") == "cbf29ce484222325"
        assert fnv1a_64("a") == "af63dc4c8601ec8c"

    def test_fixed_width_hex(self):
        for value in ("x", "le café", "un très long texte " * 20):
            digest = fnv1a_64(value)
            assert len(digest) == 16
            int(digest, 16)

    def test_utf8_bytes_matter(self):
        assert fnv1a_64("café") != fnv1a_64("cafe")


class TestCanonicalSurface:
    """Tests for flattening phonetic segments."""

    def test_segments_ignore_phonetics(self):
        segments = [PhoneticSegment(text="le ", phonetic="lə"), PhoneticSegment(text="café", phonetic="ka.fe")]
        assert canonical_surface(segments) == "le café"

    def test_dicts_and_strings(self):
        assert canonical_surface([{"text": "bon"}, "jour"]) == "bonjour"

    def test_plain_string_passthrough(self):
        assert canonical_surface("Bonjour") == "Bonjour"

    @pytest.mark.parametrize("value", [None, 42, {"text": "x"}])
    def test_non_sequences_are_empty(self, value):
        assert canonical_surface(value) == ""


class TestKeys:
    """Tests for dedup keys and stable ids."""

    def test_vocab_key_trims_and_lowercases(self):
        entry = VocabEntry(word=[{"text": "  Le Café "}])
        assert vocab_dedup_key(entry) == "le café"

    def test_vocab_key_ignores_phonetic_differences(self):
        a = VocabEntry(word=[{"text": "chat", "phonetic": "ʃa"}])
        b = VocabEntry(word=[{"text": "Chat", "phonetic": "sha"}])
        assert vocab_dedup_key(a) == vocab_dedup_key(b)

    def test_grammar_key(self):
        entry = GrammarEntry(point="Négation", example={"text": [{"text": "Je ne sais pas."}]})
        assert grammar_raw_key(entry) == "Négation__Je ne sais pas."

    def test_text_key(self):
        line = TextLine(text=[{"text": "Bonjour !"}], translation="Hello!")
        assert text_raw_key(line) == "Bonjour !__Hello!"

    def test_stable_id_is_deterministic(self):
        first = stable_id("au café__A1", ItemKind.VOCABULARY, "le café")
        second = stable_id("au café__A1", "vocab", "le café")
        assert first == second
        assert first.startswith("vocab-")
        assert first == "vocab-" + fnv1a_64("au café__A1::vocab::le café")

    def test_stable_id_depends_on_group(self):
        assert stable_id("a__A1", ItemKind.TEXT, "k") != stable_id("a__A2", ItemKind.TEXT, "k")
