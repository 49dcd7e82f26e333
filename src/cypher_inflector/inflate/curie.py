from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class CurieResolver(Protocol):
    """Maps a compact identifier to the full IRIs it denotes."""

    def get_full_uri(self, curie: str) -> set[str]:
        """Return every IRI the CURIE expands to, or an empty set if unknown."""
        ...


class PrefixCurieResolver:
    """A CurieResolver backed by a static prefix -> IRI base mapping."""

    def __init__(self, prefixes: Mapping[str, str]) -> None:
        """Initialize an instance from a prefix mapping."""
        self.prefixes: dict[str, str] = dict(prefixes)

    def get_full_uri(self, curie: str) -> set[str]:
        """Expand a CURIE using the configured prefixes."""
        prefix, sep, local = curie.partition(":")
        if not sep or prefix not in self.prefixes:
            return set()
        return {f"{self.prefixes[prefix]}{local}"}

