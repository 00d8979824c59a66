"""Tests for receipt identifiers and bounded retries."""

import pytest

from pointman.exceptions import IdentifierExhausted
from pointman.identifiers import ALPHABET, generate, generate_unique
from pointman.utils import bounded_retry


class TestGenerate:
    def test_default_length(self):
        assert len(generate()) == 8

    def test_custom_length(self):
        assert len(generate(12)) == 12

    def test_only_alphabet_symbols(self):
        code = generate(200)
        assert set(code) <= set(ALPHABET)

    def test_alphabet_has_no_ambiguous_symbols(self):
        for symbol in "0O1lIio":
            assert symbol not in ALPHABET

    def test_alphabet_has_no_duplicates(self):
        assert len(set(ALPHABET)) == len(ALPHABET)

    def test_ten_thousand_codes_are_distinct(self):
        codes = {generate() for _ in range(10_000)}
        assert len(codes) == 10_000


class TestGenerateUnique:
    def test_returns_first_unused(self):
        taken = set()
        code = generate_unique(lambda c: c in taken)
        assert len(code) == 8

    def test_retries_past_collisions(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return len(calls) < 3

        code = generate_unique(exists)
        assert code == calls[-1]
        assert len(calls) == 3

    def test_exhausted_after_max_attempts(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(IdentifierExhausted) as exc_info:
            generate_unique(exists)

        assert len(calls) == 10
        assert exc_info.value.code == "IDENTIFIER_EXHAUSTED"
        assert exc_info.value.data["attempts"] == 10

    def test_max_attempts_override(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(IdentifierExhausted):
            generate_unique(exists, max_attempts=3)
        assert len(calls) == 3

    def test_max_attempts_from_settings(self, settings):
        settings.POINTMAN = {"RECEIPT_ID_MAX_ATTEMPTS": 2}
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return True

        with pytest.raises(IdentifierExhausted):
            generate_unique(exists)
        assert len(calls) == 2


class TestBoundedRetry:
    def test_accepts_first(self):
        assert bounded_retry(lambda: 7, lambda v: True, 5) == (7, 1)

    def test_gives_up(self):
        assert bounded_retry(lambda: 7, lambda v: False, 4) == (None, 4)
