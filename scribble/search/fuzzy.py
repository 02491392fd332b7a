import re
from difflib import SequenceMatcher

from scribble.constants import FUZZY_MIN_PREFIX, FUZZY_MIN_RATIO

_TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def term_matches(term: str, token: str) -> bool:
    """Exact match, a shared prefix of FUZZY_MIN_PREFIX+ chars, or a near-spelling."""
    if term == token:
        return True
    shorter = min(len(term), len(token))
    if shorter >= FUZZY_MIN_PREFIX and (token.startswith(term) or term.startswith(token)):
        return True
    return SequenceMatcher(None, term, token).ratio() >= FUZZY_MIN_RATIO


def similar_length_bounds(term: str) -> tuple[int, int]:
    """Token lengths that can still reach FUZZY_MIN_RATIO against term.

    ratio = 2M / (a + b) with M <= min(a, b), so the longer side is at most
    shorter * (2 - r) / r characters.
    """
    n = len(term)
    stretch = round((2 - FUZZY_MIN_RATIO) / FUZZY_MIN_RATIO, 6)
    return max(1, int(n / stretch)), int(n * stretch)
