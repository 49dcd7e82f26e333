"""
Shared fixtures: a tiny relationship hierarchy (fizz under foo, baz under bar)
and a resolver which knows a single CURIE.
"""

import pytest

from cypher_inflector.inflate.entailment import EntailmentExpander
from utils.fakes import FakeResolver, FakeSubsumptionStore  # pyright:ignore[reportImplicitRelativeImport]


@pytest.fixture
def subsumption_store() -> FakeSubsumptionStore:
    return FakeSubsumptionStore([("fizz", "foo"), ("baz", "bar")])


@pytest.fixture
def expander(subsumption_store: FakeSubsumptionStore) -> EntailmentExpander:
    return EntailmentExpander(subsumption_store)


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({"X:foo": {"http://x.org/#foo"}})
