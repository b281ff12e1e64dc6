"""
Trigram similarity compatible with PostgreSQL's ``pg_trgm``.

Each word (run of alphanumeric characters, lower-cased) is padded with two
leading spaces and one trailing space before being cut into trigrams; the
similarity of two strings is the size of the intersection of their trigram
sets divided by the size of the union.
"""
import re

_WORD_RE = re.compile(r"[^\W_]+", re.UNICODE)


def trigrams(value: str | None) -> set[str]:
    if not value:
        return set()
    grams = set()
    for word in _WORD_RE.findall(value.lower()):
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            grams.add(padded[i:i + 3])
    return grams


def similarity(left: str | None, right: str | None) -> float:
    a = trigrams(left)
    b = trigrams(right)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def tokens(value: str | None) -> list[str]:
    if not value:
        return []
    return _WORD_RE.findall(value.lower())
