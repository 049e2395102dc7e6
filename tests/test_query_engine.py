"""Tests for candidate selection, TF-IDF scoring and highlighting."""

from conftest import make_analysis, make_commitment, make_conversation
from relive_search.application.services.document_collector import build_document
from relive_search.application.services.inverted_index import IndexSnapshot, build_index_snapshot
from relive_search.application.services.query_engine import QueryEngine
from relive_search.application.services.text_analysis import tokenize, unique_terms


def _snapshot():
    return build_index_snapshot([
        build_document(make_conversation("c1")),
        build_document(make_conversation(
            "c2", contact_name="Mike Chen", transcript="Quarterly budget review and hiring plans.",
        )),
        build_document(make_commitment("m1", text="send book club list")),
        build_document(make_analysis("a1")),
    ])


class TestFindCandidates:
    def test_exact_terms_use_postings(self):
        candidates, expanded = QueryEngine().find_candidates(_snapshot(), ["budget"])
        assert candidates == {"conversation_c2"}
        assert expanded == ["budget"]

    def test_fuzzy_expands_through_vocabulary(self):
        candidates, expanded = QueryEngine().find_candidates(_snapshot(), ["resevation"], fuzzy=True)
        assert "insight_a1" in candidates
        assert "reservation" in expanded

    def test_fuzzy_disabled_finds_nothing_for_a_typo(self):
        candidates, _ = QueryEngine().find_candidates(_snapshot(), ["resevation"], fuzzy=False)
        assert candidates == set()

    def test_fuzzy_distance_is_configurable(self):
        candidates, _ = QueryEngine(fuzzy_max_distance=0).find_candidates(_snapshot(), ["resevation"], fuzzy=True)
        assert candidates == set()

    def test_stop_word_query_has_no_candidates(self):
        terms = unique_terms("the and of it")
        candidates, _ = QueryEngine().find_candidates(_snapshot(), terms, fuzzy=True)
        assert terms == []
        assert candidates == set()


class TestSearch:
    def test_exact_path_has_no_false_positives(self):
        snapshot = _snapshot()
        for query in ["budget", "book club", "reservation restaurant", "hiring"]:
            terms = tokenize(query)
            for result in QueryEngine().search(snapshot, terms):
                document = snapshot.get(result.id)
                assert any(t in document.composite_text.lower() for t in terms)

    def test_scores_are_bounded_and_sorted(self):
        results = QueryEngine().search(_snapshot(), ["book", "budget", "reservation"])
        scores = [r.relevance_score for r in results]
        assert results
        assert all(0.0 <= s <= 1.0 for s in scores)
        assert scores == sorted(scores, reverse=True)

    def test_rare_term_scores_above_zero(self):
        results = QueryEngine().search(_snapshot(), ["budget"])
        assert len(results) == 1
        assert results[0].relevance_score > 0

    def test_highlights_are_sorted_by_start(self):
        results = QueryEngine().search(_snapshot(), ["restaurant", "reservation"], include_highlights=True)
        insight = next(r for r in results if r.id == "insight_a1")
        starts = [h.start_index for h in insight.highlights]
        assert starts == sorted(starts)
        assert {h.text.lower() for h in insight.highlights} == {"restaurant", "reservation"}

    def test_highlights_omitted_by_default(self):
        results = QueryEngine().search(_snapshot(), ["budget"])
        assert results[0].highlights == []

    def test_fuzzy_match_reports_the_indexed_term(self):
        results = QueryEngine().search(_snapshot(), ["resevation"], fuzzy=True)
        insight = next(r for r in results if r.id == "insight_a1")
        assert "reservation" in insight.matched_terms

    def test_empty_snapshot_returns_nothing(self):
        assert QueryEngine().search(IndexSnapshot(), ["budget"]) == []
