import pytest

from cypher_inflector.inflate.entailment import EntailmentExpander
from cypher_inflector.inflate.errors import MissingParameterError
from cypher_inflector.inflate.template import (
    Placeholder,
    RelationshipTypes,
    Separator,
    Text,
    TypeName,
    entail_relationships,
    quote_type,
    scan,
    substitute,
    substitute_placeholders,
)
from utils.fakes import FakeSubsumptionStore  # pyright:ignore[reportImplicitRelativeImport]


def test_scan_splits_tokens() -> None:
    segments = scan("MATCH (n {id: ${id}})-[r:foo|${rel}!]->(m) RETURN n")

    assert segments == [
        Text("MATCH (n {id: "),
        Placeholder("id"),
        Text("})-[r:"),
        RelationshipTypes(
            (TypeName("foo", "foo"), Separator("|"), Placeholder("rel", True)),
            entailed=True,
        ),
        Text("]->(m) RETURN n"),
    ]


def test_scan_without_tokens_is_single_text() -> None:
    template = "MATCH (n:Class) WHERE n.label <> 'x' RETURN n"

    assert scan(template) == [Text(template)]


def test_substitute_relationship_keeps_marker() -> None:
    value_map = {"node_id": "HP_123", "rel_id": "RO_123"}

    actual = substitute_placeholders("({node_id}-[:${rel_id}!]-(end)", value_map)

    assert actual == "({node_id}-[:RO_123!]-(end)"


def test_relationship_lists_join_with_pipe() -> None:
    actual = substitute_placeholders(
        "MATCH (n)-[r:${rels}]-(m) RETURN r", {"rels": ["foo", "bar"]}
    )

    assert actual == "MATCH (n)-[r:foo|bar]-(m) RETURN r"


def test_value_lists_join_with_comma() -> None:
    actual = substitute_placeholders(
        "MATCH (n) WHERE n.fragment IN [${ids}] RETURN n", {"ids": ["'a'", "'b'"]}
    )

    assert actual == "MATCH (n) WHERE n.fragment IN ['a','b'] RETURN n"


def test_placeholders_inside_strings() -> None:
    actual = substitute_placeholders(
        "MATCH (n {fragment: '${id}'})-[:${rel}]-(m) RETURN m",
        {"id": "HP_123", "rel": "subClassOf"},
    )

    assert actual == "MATCH (n {fragment: 'HP_123'})-[:subClassOf]-(m) RETURN m"


def test_missing_placeholder_fails() -> None:
    with pytest.raises(MissingParameterError) as excinfo:
        substitute_placeholders("MATCH (n {id: ${undefined_name}}) RETURN n", {})

    assert excinfo.value.name == "undefined_name"


def test_malformed_placeholders_are_text() -> None:
    template = "RETURN '${not a name}', $param, ${"

    assert substitute_placeholders(template, {}) == template


@pytest.mark.asyncio
async def test_entailment_single_type(expander: EntailmentExpander) -> None:
    result = await entail_relationships("MATCH (n)-[:foo!]-(n2) RETURN n", expander)

    assert result == "MATCH (n)-[:foo|fizz]-(n2) RETURN n"


@pytest.mark.asyncio
async def test_entailment_alternation(expander: EntailmentExpander) -> None:
    result = await entail_relationships("MATCH (n)-[r:foo|bar!]-(m) RETURN r", expander)

    assert result == "MATCH (n)-[r:foo|bar|baz|fizz]-(m) RETURN r"


@pytest.mark.asyncio
async def test_entailment_only_touches_marked_types(
    expander: EntailmentExpander, subsumption_store: FakeSubsumptionStore
) -> None:
    template = (
        "MATCH (n)-[:foo]-(m)-[:bar!]-(o) "
        "WHERE n.note = 'foo!' AND NOT m.flag RETURN [x IN nodes(p) | x.foo]"
    )

    result = await entail_relationships(template, expander)

    assert result == (
        "MATCH (n)-[:foo]-(m)-[:bar|baz]-(o) "
        "WHERE n.note = 'foo!' AND NOT m.flag RETURN [x IN nodes(p) | x.foo]"
    )
    assert subsumption_store.lookups == ["bar"]


@pytest.mark.asyncio
async def test_entailment_keeps_unsubstituted_placeholders(
    expander: EntailmentExpander, subsumption_store: FakeSubsumptionStore
) -> None:
    template = "MATCH (n)-[:${rel_id}!]-(m) RETURN n"

    assert await entail_relationships(template, expander) == template
    assert subsumption_store.lookups == []


@pytest.mark.asyncio
async def test_entailment_quotes_unusual_type_names() -> None:
    expander = EntailmentExpander(FakeSubsumptionStore([("part of", "related to")]))

    result = await entail_relationships("MATCH ()-[:`related to`!]-() RETURN 1", expander)

    assert result == "MATCH ()-[:`related to`|`part of`]-() RETURN 1"


@pytest.mark.asyncio
async def test_node_labels_are_not_relationships(expander: EntailmentExpander) -> None:
    template = "MATCH (n:foo)-[:foo!]-(m:bar) RETURN n"

    result = await entail_relationships(template, expander)

    assert result == "MATCH (n:foo)-[:foo|fizz]-(m:bar) RETURN n"


@pytest.mark.asyncio
async def test_placeholders_substituted_before_entailment(
    expander: EntailmentExpander,
) -> None:
    assert await substitute("[:${rel_id}!]", {"rel_id": "RO_123"}, expander) == "[:RO_123]"
    assert await substitute("[:${rel_id}!]", {"rel_id": "foo"}, expander) == "[:foo|fizz]"


@pytest.mark.asyncio
async def test_list_parameter_entails_every_type(expander: EntailmentExpander) -> None:
    result = await substitute(
        "MATCH (n)-[r:${rels}!]-(m) RETURN r", {"rels": ["bar", "foo"]}, expander
    )

    assert result == "MATCH (n)-[r:bar|foo|baz|fizz]-(m) RETURN r"


def test_quote_type() -> None:
    assert quote_type("subPropertyOf") == "subPropertyOf"
    assert quote_type("part of") == "`part of`"
    assert quote_type("odd`name") == "`odd``name`"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("MATCH (n)-[r: foo!]-(m) RETURN n", "MATCH (n)-[r: foo|fizz]-(m) RETURN n"),
        (
            "MATCH (n)-[r:foo | bar!]-(m) RETURN n",
            "MATCH (n)-[r:foo|bar|baz|fizz]-(m) RETURN n",
        ),
        (
            "MATCH (n)-[r:\n  foo |: bar!]-(m) RETURN n",
            "MATCH (n)-[r:\n  foo|bar|baz|fizz]-(m) RETURN n",
        ),
        (
            "MATCH (n)-[r:foo! WHERE r.weight > 1]-(m) RETURN n",
            "MATCH (n)-[r:foo|fizz WHERE r.weight > 1]-(m) RETURN n",
        ),
    ],
)
async def test_entailment_allows_whitespace(
    expander: EntailmentExpander, template: str, expected: str
) -> None:
    assert await entail_relationships(template, expander) == expected


def test_unmarked_type_lists_keep_their_spacing() -> None:
    actual = substitute_placeholders(
        "MATCH (n)-[r:foo |: ${rel}]-(m) RETURN r", {"rel": "bar"}
    )

    assert actual == "MATCH (n)-[r:foo |: bar]-(m) RETURN r"


@pytest.mark.asyncio
async def test_comments_are_passed_through(
    expander: EntailmentExpander, subsumption_store: FakeSubsumptionStore
) -> None:
    template = (
        "// the user's neighbors, [:bar!]\n"
        "MATCH (n)-[:foo!]-(m) /* isn't ${id} */ RETURN n"
    )

    result = await substitute(template, {}, expander)

    assert result == (
        "// the user's neighbors, [:bar!]\n"
        "MATCH (n)-[:foo|fizz]-(m) /* isn't ${id} */ RETURN n"
    )
    assert subsumption_store.lookups == ["foo"]


def test_urls_in_strings_are_not_comments() -> None:
    actual = substitute_placeholders(
        "MATCH (n {iri: 'http://x.org/${id}'}) RETURN n", {"id": "1"}
    )

    assert actual == "MATCH (n {iri: 'http://x.org/1'}) RETURN n"


@pytest.mark.asyncio
async def test_escaped_backticks_are_one_type_name() -> None:
    store = FakeSubsumptionStore([("sub", "odd`name")])
    expander = EntailmentExpander(store)

    result = await entail_relationships("MATCH ()-[:`odd``name`!]-() RETURN 1", expander)

    assert result == "MATCH ()-[:`odd``name`|sub]-() RETURN 1"
    assert store.lookups == ["odd`name"]
    (types,) = [s for s in scan("[:`odd``name`]") if isinstance(s, RelationshipTypes)]
    assert types.names == ["odd`name"]
