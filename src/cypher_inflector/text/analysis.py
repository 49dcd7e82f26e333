"""Per-field text analysis for vocabulary lookups.

Each field name selects a token stream producer from a table built once at
import. Fields without an entry are treated as keywords.
"""

import re
import unicodedata
from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol

# Lucene's default English stop words. Matched before lowercasing, so
# capitalized forms are kept.
STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "if",
        "in", "into", "is", "it", "no", "not", "of", "on", "or", "such",
        "that", "the", "their", "then", "there", "these", "they", "this",
        "to", "was", "will", "with",
    }
)  # fmt: skip

EDGE_PUNCTUATION = re.compile(r"^([.!?,:;\"'()]*)(.*?)([.!?,:;\"'()]*)$")
POSSESSIVE = re.compile(r"'s")


class TokenStreamProducer(Protocol):
    """Something that can split text into index/query terms."""

    def tokens(self, text: str) -> list[str]:
        """Analyze the text into its terms."""
        ...


def fold_to_ascii(text: str) -> str:
    """Strip diacritics, keeping the base characters."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


class KeywordProducer:
    """The whole input as a single term."""

    def tokens(self, text: str) -> list[str]:
        """Return the text unchanged, or nothing if it is empty."""
        return [text] if text else []


class TermProducer:
    """Whitespace terms with punctuation, possessives and stop words removed."""

    def tokens(self, text: str) -> list[str]:
        """Split on whitespace, then normalize each term."""
        terms: list[str] = []
        for raw in text.split():
            term = EDGE_PUNCTUATION.sub(r"\2", raw)
            term = POSSESSIVE.sub("s", term)
            if not term or term in STOP_WORDS:
                continue
            terms.append(fold_to_ascii(term.lower()))
        return terms


KEYWORD = KeywordProducer()
TERMS = TermProducer()

FIELD_PRODUCERS: Mapping[str, TokenStreamProducer] = MappingProxyType(
    {
        "label": TERMS,
        "synonym": TERMS,
        "definition": TERMS,
    }
)


def producer_for(field: str) -> TokenStreamProducer:
    """Get the producer configured for a field."""
    return FIELD_PRODUCERS.get(field, KEYWORD)


def analyze(field: str, text: str) -> list[str]:
    """Analyze text the way the given field is indexed."""
    return producer_for(field).tokens(text)
