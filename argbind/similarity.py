"""
Bigram cosine similarity, used to suggest corrections for unmatched tokens.
"""
import math
from collections import Counter


def _bigrams(text, /):
    return Counter(text[index:index + 2] for index in range(len(text) - 1))


def cosine_similarity(left, right, /):
    """
    Cosine similarity of the character-bigram frequency vectors of two
    strings, case-insensitive. 0.0 when either side has no bigram.
    """
    left, right = _bigrams(left.lower()), _bigrams(right.lower())
    dot = sum(count * right[bigram] for bigram, count in left.items())
    norm = sum(count * count for count in left.values()) * sum(count * count for count in right.values())
    if not dot or not norm:
        return 0.0
    return dot / math.sqrt(norm)


def most_similar(pattern, candidates, threshold=0.0, /):
    """
    Rank candidates by similarity to pattern, best first.

    Only candidates scoring strictly above threshold are returned; equal
    scores keep the order in which candidates were given.

    >>> most_similar("chekout", ["status", "commit", "checkout"])[0]
    'checkout'
    """
    scored = [(cosine_similarity(pattern, candidate), candidate) for candidate in candidates]
    scored = [entry for entry in scored if entry[0] > threshold]
    scored.sort(key=lambda entry: entry[0], reverse=True)
    return [candidate for _, candidate in scored]


__all__ = (
    "cosine_similarity",
    "most_similar",
)
