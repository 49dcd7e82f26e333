import re

from cypher_inflector.inflate.curie import CurieResolver
from cypher_inflector.inflate.errors import UnresolvedCurieError
from cypher_inflector.types.general import (
    FlattenedParameters,
    FlattenedValue,
    ParameterMap,
)

CURIE_PATTERN = re.compile(r"^[A-Za-z][\w.-]*:[^\s]+$")


def fragment_of(iri: str) -> str:
    """Return the part of an IRI after its last `#` or `/`.

    Returns the IRI unchanged if it has neither.
    """
    cut = max(iri.rfind("#"), iri.rfind("/"))
    return iri[cut + 1 :]


def resolve_value(value: str, resolver: CurieResolver) -> str:
    """Resolve a raw parameter value to the fragment of the IRI it abbreviates.

    Values which don't look like a CURIE are returned as-is.
    """
    if not CURIE_PATTERN.match(value):
        return value
    iris = resolver.get_full_uri(value)
    if not iris:
        raise UnresolvedCurieError(value)
    # Smallest IRI so repeated calls always agree
    return fragment_of(min(iris))


def flatten(parameters: ParameterMap, resolver: CurieResolver) -> FlattenedParameters:
    """Collapse a multi-valued parameter map into substitution values.

    Single-valued parameters become scalars, everything else keeps its
    ordered list of values.
    """
    flattened = FlattenedParameters()
    for name, values in parameters.items():
        resolved: FlattenedValue
        if len(values) == 1:
            resolved = resolve_value(values[0], resolver)
        else:
            resolved = [resolve_value(value, resolver) for value in values]
        flattened[name] = resolved
    return flattened
