# relive_search/application/services/text_analysis.py
import re
from typing import List, Tuple

MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset({
    # articles and conjunctions
    'the', 'a', 'an', 'and', 'or', 'but', 'nor', 'yet', 'so',
    # prepositions
    'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by', 'from', 'into',
    # auxiliaries and modals
    'is', 'are', 'was', 'were', 'been', 'be', 'being', 'have', 'has', 'had',
    'do', 'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might',
    'must', 'can', 'shall',
    # pronouns and determiners
    'this', 'that', 'these', 'those', 'you', 'your', 'yours', 'she', 'her',
    'hers', 'him', 'his', 'they', 'them', 'their', 'theirs', 'our', 'ours',
    'its', 'who', 'whom', 'which', 'what',
})

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def tokenize(text: str) -> List[str]:
    """
    Lowercases, replaces punctuation with whitespace, splits, and drops short
    tokens and stop words. Order and duplicates are preserved.
    """
    if not text:
        return []
    words = _PUNCTUATION_RE.sub(" ", text.lower()).split()
    return [w for w in words if len(w) >= MIN_TOKEN_LENGTH and w not in STOP_WORDS]


def unique_terms(text: str) -> List[str]:
    """Tokens of `text` in first-seen order without repeats."""
    return list(dict.fromkeys(tokenize(text)))


def levenshtein_distance(first: str, second: str) -> int:
    if first == second:
        return 0
    if len(first) < len(second):
        first, second = second, first
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, start=1):
        current = [i]
        for j, char_b in enumerate(second, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                current[j - 1] + 1,       # insertion
                previous[j] + 1,          # deletion
                previous[j - 1] + cost,   # substitution
            ))
        previous = current
    return previous[-1]


def within_distance(first: str, second: str, max_distance: int) -> bool:
    # The length gap alone is a lower bound on the distance.
    if abs(len(first) - len(second)) > max_distance:
        return False
    return levenshtein_distance(first, second) <= max_distance


def find_occurrences(text: str, term: str) -> List[Tuple[int, int]]:
    """Non-overlapping, case-insensitive (start, end) spans of `term` in `text`."""
    if not term:
        return []
    lowered = text.lower()
    needle = term.lower()
    spans: List[Tuple[int, int]] = []
    start = lowered.find(needle)
    while start != -1:
        end = start + len(needle)
        spans.append((start, end))
        start = lowered.find(needle, end)
    return spans
