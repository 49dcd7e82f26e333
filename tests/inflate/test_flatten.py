import pytest

from cypher_inflector.inflate.curie import PrefixCurieResolver
from cypher_inflector.inflate.errors import UnresolvedCurieError
from cypher_inflector.inflate.flatten import (
    CURIE_PATTERN,
    flatten,
    fragment_of,
    resolve_value,
)
from utils.fakes import FakeResolver  # pyright:ignore[reportImplicitRelativeImport]


def test_curies_resolve_to_fragments(resolver: FakeResolver) -> None:
    assert flatten({"test": ["X:foo"]}, resolver) == {"test": "foo"}


def test_single_value_becomes_scalar(resolver: FakeResolver) -> None:
    flattened = flatten({"rel_id": ["fizz"]}, resolver)

    assert flattened == {"rel_id": "fizz"}
    assert resolver.calls == []


def test_multiple_values_keep_order(resolver: FakeResolver) -> None:
    flattened = flatten({"ids": ["b", "X:foo", "a"]}, resolver)

    assert flattened == {"ids": ["b", "foo", "a"]}


def test_empty_values_become_empty_list(resolver: FakeResolver) -> None:
    assert flatten({"ids": []}, resolver) == {"ids": []}


def test_unknown_curie_fails(resolver: FakeResolver) -> None:
    with pytest.raises(UnresolvedCurieError) as excinfo:
        flatten({"test": ["Y:bar"]}, resolver)

    assert excinfo.value.curie == "Y:bar"


def test_resolution_is_deterministic() -> None:
    resolver = FakeResolver(
        {"X:foo": {"http://x.org/b#two", "http://x.org/a#one", "http://x.org/c/three"}}
    )

    results = {resolve_value("X:foo", resolver) for _ in range(5)}

    assert results == {"one"}


@pytest.mark.parametrize(
    ("value", "is_curie"),
    [
        ("HP:0000118", True),
        ("go.ontology:GO-1", True),
        ("fizz", False),
        ("1X:foo", False),
        ("X:", False),
        ("X: foo", False),
        ("some text: with spaces", False),
    ],
)
def test_curie_pattern(value: str, is_curie: bool) -> None:
    assert bool(CURIE_PATTERN.match(value)) is is_curie


@pytest.mark.parametrize(
    ("iri", "fragment"),
    [
        ("http://x.org/#foo", "foo"),
        ("http://purl.obolibrary.org/obo/HP_0000118", "HP_0000118"),
        ("http://x.org/a#b/c", "c"),
        ("no_separator", "no_separator"),
    ],
)
def test_fragment_of(iri: str, fragment: str) -> None:
    assert fragment_of(iri) == fragment


def test_prefix_resolver_expands_known_prefixes() -> None:
    resolver = PrefixCurieResolver({"HP": "http://purl.obolibrary.org/obo/HP_"})

    assert resolver.get_full_uri("HP:0000118") == {
        "http://purl.obolibrary.org/obo/HP_0000118"
    }
    assert resolver.get_full_uri("MP:0000001") == set()
    assert resolver.get_full_uri("HP") == set()
    assert flatten({"id": ["HP:0000118"]}, resolver) == {"id": "HP_0000118"}
