"""Keyword extraction for naming clusters."""

from collections import Counter

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
    "for", "of", "with", "by", "from", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "this", "that", "these", "those",
    "i", "you", "he", "she", "it", "we", "they", "what", "which", "who",
    "when", "where", "why", "how", "all", "each", "every", "both", "few",
    "more", "most", "other", "some", "such", "no", "not", "only", "own", "same",
    "so", "than", "too", "very", "just", "can", "about", "into", "through", "during",
    "before", "after", "above", "below", "up", "down", "out", "off", "over", "under",
    "again", "further", "then", "once",
})

_PUNCTUATION = ".,!?\"'()[]{}"


def extract_keywords(contents: list[str], limit: int = 5) -> list[str]:
    """Most frequent non-stopword words (3+ letters) across contents.

    Words with equal counts keep first-seen order.
    """
    freq: Counter[str] = Counter()
    for content in contents:
        for word in content.lower().split():
            word = word.strip(_PUNCTUATION)
            if len(word) < 3 or word in STOP_WORDS:
                continue
            freq[word] += 1
    return [word for word, _ in freq.most_common(limit)]


def cluster_name(contents: list[str]) -> str:
    words = extract_keywords(contents)
    if not words:
        return "Unnamed Cluster"
    return " & ".join(words[:3])
