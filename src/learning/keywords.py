"""Frequency-weighted keyword extraction from decision texts and reasons."""

import math
import re
from collections import Counter
from typing import Dict, Iterable, List, Tuple

MAX_KEYWORDS = 15
MIN_WORD_LENGTH = 4
MIN_BIGRAM_COUNT = 2
MIN_BIGRAM_LENGTH = 8

BIGRAM_WEIGHT = 1.5
DOMAIN_TERM_WEIGHT = 3.0

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "is", "are", "was", "were",
        "to", "from", "in", "on", "at", "for", "with", "of", "by", "this",
        "that", "it", "you", "your", "has", "have", "had", "be", "been",
        "about", "into", "just", "also", "then", "than", "there", "their",
        "they", "them", "what", "when", "where", "which", "here", "some",
        "could", "would", "should", "please", "will", "shall", "might",
        "message", "messages", "notification", "notifications", "notified", "notify",
    }
)

# Vocabulary of the engine's own decision reasons. Learning these would
# feed rule names back into the keyword rule.
REASON_WORDS = frozenset(
    {
        "detected", "direct", "question", "keyword", "keywords", "mentioned",
        "mention", "priority", "found", "fallback", "heuristic", "user",
        "users", "triggers", "suppressed", "acknowledgment", "reaction",
        "common", "automated", "reply", "emoji", "only", "short", "disabled",
        "task", "assignment", "name",
    }
)

# Terms that signal work-relevant traffic in team chat
DOMAIN_TERMS = frozenset(
    {
        "urgent", "production", "deploy", "deployment", "release", "deadline",
        "blocker", "outage", "incident", "critical", "review", "meeting",
        "bug", "security", "customer", "approval", "hotfix", "rollback",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> List[str]:
    """Lowercase, strip punctuation, drop stop words and short words."""
    cleaned = _NON_ALNUM.sub(" ", text.lower())
    return [
        word
        for word in cleaned.split()
        if len(word) >= MIN_WORD_LENGTH and word not in STOP_WORDS and word not in REASON_WORDS
    ]


def _score(count: int, weight: float) -> float:
    return math.log(count + 1) * count * weight


def score_terms(texts: Iterable[str], weight: float = 1.0) -> Dict[str, float]:
    """Score unigrams and repeated bigrams by ``ln(count+1) * count * weight``.

    Domain terms are boosted 3x. Bigrams count only when they occur at
    least twice and span at least 8 characters, and are boosted 1.5x.
    """
    unigrams: Counter = Counter()
    bigrams: Counter = Counter()
    for text in texts:
        if not text:
            continue
        words = tokenize(text)
        unigrams.update(words)
        bigrams.update(f"{a} {b}" for a, b in zip(words, words[1:]))

    scores: Dict[str, float] = {}
    for word, count in unigrams.items():
        term_weight = DOMAIN_TERM_WEIGHT if word in DOMAIN_TERMS else 1.0
        scores[word] = _score(count, weight * term_weight)

    for phrase, count in bigrams.items():
        if count < MIN_BIGRAM_COUNT or len(phrase) < MIN_BIGRAM_LENGTH:
            continue
        scores[phrase] = _score(count, weight * BIGRAM_WEIGHT)
    return scores


def _rank(scores: Dict[str, float], limit: int) -> List[str]:
    # Ties break alphabetically so the ranking is deterministic
    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [term for term, _ in ranked[:limit]]


def extract_keywords(texts: Iterable[str], limit: int = MAX_KEYWORDS) -> List[str]:
    """Top terms of a single corpus."""
    return _rank(score_terms(texts), limit)


def split_keywords(
    helpful_texts: Iterable[str],
    not_helpful_texts: Iterable[str],
    helpful_weight: float = 2.0,
    not_helpful_weight: float = 1.0,
    limit: int = MAX_KEYWORDS,
) -> Tuple[List[str], List[str]]:
    """Score both corpora and assign each term to the side where it scores higher.

    Returns ``(learned, suppressed)``. A term that appears in both corpora
    lands on the side with the larger weighted score and is dropped on an
    exact tie, so the two lists never share a term.
    """
    helpful = score_terms(helpful_texts, helpful_weight)
    not_helpful = score_terms(not_helpful_texts, not_helpful_weight)

    learned: Dict[str, float] = {}
    suppressed: Dict[str, float] = {}
    for term in helpful.keys() | not_helpful.keys():
        positive = helpful.get(term, 0.0)
        negative = not_helpful.get(term, 0.0)
        if positive > negative:
            learned[term] = positive
        elif negative > positive:
            suppressed[term] = negative
    return _rank(learned, limit), _rank(suppressed, limit)
