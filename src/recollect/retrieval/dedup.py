"""Token-overlap duplicate test between an instruction and active directives."""

from __future__ import annotations

import re
from collections.abc import Iterable

DUPLICATE_THRESHOLD = 0.75

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)


def tokenize(text: str) -> set[str]:
    """Lower-case, strip punctuation, split on whitespace."""
    return set(_NON_WORD.sub("", text.lower()).split())


def jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    common = len(a & b)
    return common / (len(a) + len(b) - common)


def is_duplicate(
    candidate: str,
    directives: Iterable[str],
    threshold: float = DUPLICATE_THRESHOLD,
) -> bool:
    """True if the candidate overlaps some directive by more than `threshold`.

    Directives with no tokens are skipped, and so is everything when the
    candidate itself has no tokens: an empty or symbol-only candidate is
    never a duplicate.
    """
    candidate_tokens = tokenize(candidate)
    if not candidate_tokens:
        return False
    for directive in directives:
        directive_tokens = tokenize(directive)
        if not directive_tokens:
            continue
        if jaccard(candidate_tokens, directive_tokens) > threshold:
            return True
    return False
