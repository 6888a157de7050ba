"""Tests for keyword extraction."""

import math

from src.learning.keywords import MAX_KEYWORDS, extract_keywords, split_keywords, tokenize


class TestTokenize:
    def test_strips_punctuation_and_lowercases(self):
        assert tokenize("Deploy-Window: FRIDAY!") == ["deploy", "window", "friday"]

    def test_drops_stop_words_and_short_words(self):
        assert tokenize("This message is for you and the team") == ["team"]

    def test_drops_request_verbs_and_decision_vocabulary(self):
        assert tokenize("Direct question detected (fallback heuristic)") == []
        assert tokenize("could you please check the staging logs") == ["check", "staging", "logs"]

    def test_empty(self):
        assert tokenize("") == []


class TestExtractKeywords:
    def test_most_frequent_first(self):
        texts = ["database migration", "database backup", "database index"]
        assert extract_keywords(texts)[0] == "database"

    def test_domain_terms_boosted(self):
        assert extract_keywords(["lunch review"]) == ["review", "lunch"]

    def test_score_formula(self):
        # database: ln(3) * 2 = 2.197 beats review: ln(2) * 1 * 3 = 2.079
        keywords = extract_keywords(["database database review"])
        assert keywords == ["database", "review"]
        assert math.log(3) * 2 > math.log(2) * 3

    def test_repeated_bigrams_included(self):
        texts = ["staging cluster restarted", "staging cluster degraded"]
        assert "staging cluster" in extract_keywords(texts)

    def test_single_bigram_excluded(self):
        assert "staging cluster" not in extract_keywords(["staging cluster restarted"])

    def test_top_fifteen(self):
        texts = [" ".join(f"word{i:02d}x" for i in range(40))]
        assert len(extract_keywords(texts)) == MAX_KEYWORDS

    def test_ties_break_alphabetically(self):
        assert extract_keywords(["zebra apple mango"]) == ["apple", "mango", "zebra"]

    def test_empty_corpus(self):
        assert extract_keywords([]) == []
        assert extract_keywords(["", "a an the"]) == []


class TestSplitKeywords:
    def test_disjoint_corpora(self):
        learned, suppressed = split_keywords(["deploy window moved"], ["lunch plans"])
        assert learned == ["deploy", "moved", "window"]
        assert suppressed == ["lunch", "plans"]

    def test_helpful_weight_wins_equal_counts(self):
        learned, suppressed = split_keywords(["standup notes"], ["standup moved"])
        assert "standup" in learned
        assert "standup" not in suppressed

    def test_frequent_not_helpful_term_is_suppressed(self):
        # lunch: helpful ln(2) * 1 * 2 = 1.39, not helpful ln(4) * 3 = 4.16
        learned, suppressed = split_keywords(
            ["lunch review"], ["lunch plans", "lunch again", "lunch today"]
        )
        assert "lunch" in suppressed
        assert "lunch" not in learned
        assert "review" in learned

    def test_exact_tie_goes_nowhere(self):
        learned, suppressed = split_keywords(
            ["budget"], ["budget"], helpful_weight=1.0, not_helpful_weight=1.0
        )
        assert learned == []
        assert suppressed == []

    def test_weights_change_the_assignment(self):
        helpful, not_helpful = ["standup notes"], ["standup moved"]
        learned, _ = split_keywords(helpful, not_helpful)
        _, suppressed = split_keywords(helpful, not_helpful, helpful_weight=1.0, not_helpful_weight=2.0)
        assert "standup" in learned
        assert "standup" in suppressed

    def test_each_side_capped(self):
        texts = [" ".join(f"word{i:02d}x" for i in range(40))]
        learned, suppressed = split_keywords(texts, [])
        assert len(learned) == MAX_KEYWORDS
        assert suppressed == []
