"""Tests for tokenization, stop words and edit distance."""

from relive_search.application.services.text_analysis import (
    STOP_WORDS,
    find_occurrences,
    levenshtein_distance,
    tokenize,
    unique_terms,
    within_distance,
)


class TestTokenize:
    """Lowercasing, punctuation stripping and token filtering."""

    def test_drops_short_tokens_and_punctuation(self):
        assert tokenize("Dinner, at 7 PM!") == ["dinner"]

    def test_drops_stop_words(self):
        assert tokenize("The budget and the plans") == ["budget", "plans"]

    def test_keeps_duplicates_in_order(self):
        assert tokenize("book club book") == ["book", "club", "book"]

    def test_stop_word_only_text_yields_nothing(self):
        assert tokenize("the and of with") == []

    def test_empty_text(self):
        assert tokenize("") == []

    def test_stop_words_are_lowercase(self):
        assert all(word == word.lower() for word in STOP_WORDS)

    def test_unique_terms_keeps_first_seen_order(self):
        assert unique_terms("Book club, book list") == ["book", "club", "list"]


class TestEditDistance:
    def test_identical_strings(self):
        assert levenshtein_distance("reservation", "reservation") == 0

    def test_single_deletion(self):
        assert levenshtein_distance("reservation", "resevation") == 1

    def test_classic_example(self):
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_empty_side(self):
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_symmetric(self):
        assert levenshtein_distance("budget", "budgets") == levenshtein_distance("budgets", "budget")

    def test_within_distance_rejects_length_gap(self):
        assert not within_distance("cat", "category", 2)
        assert within_distance("resevation", "reservation", 2)


class TestFindOccurrences:
    def test_case_insensitive_spans(self):
        text = "Reservations and reservation"
        assert find_occurrences(text, "reservation") == [(0, 11), (17, 28)]

    def test_no_match(self):
        assert find_occurrences("dinner plans", "budget") == []

    def test_empty_term(self):
        assert find_occurrences("anything", "") == []
