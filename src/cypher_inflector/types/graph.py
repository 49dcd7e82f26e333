from __future__ import annotations

from collections.abc import Iterable, ItemsView, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Self, runtime_checkable

# -----------------
# Result cells
# -----------------
# Structural views of the values a graph engine hands back. These match
# neo4j.graph.Node / Relationship / Path without depending on the driver.


@runtime_checkable
class NodeCell(Protocol):
    """A node value in a result row."""

    @property
    def element_id(self) -> str: ...

    @property
    def labels(self) -> frozenset[str]: ...

    def items(self) -> ItemsView[str, Any]: ...


@runtime_checkable
class RelationshipCell(Protocol):
    """A relationship value in a result row."""

    @property
    def element_id(self) -> str: ...

    @property
    def type(self) -> str: ...

    @property
    def start_node(self) -> NodeCell | None: ...

    @property
    def end_node(self) -> NodeCell | None: ...

    def items(self) -> ItemsView[str, Any]: ...


@runtime_checkable
class PathCell(Protocol):
    """A path value in a result row."""

    @property
    def nodes(self) -> Sequence[NodeCell]: ...

    @property
    def relationships(self) -> Sequence[RelationshipCell]: ...


# -----------------
# Result graph
# -----------------


@dataclass(slots=True, kw_only=True)
class Vertex:
    """A node of the result graph."""

    id: str
    labels: set[str] = field(default_factory=set)
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_cell(cls, cell: NodeCell) -> Self:
        """Build a vertex from a node cell."""
        return cls(
            id=cell.element_id, labels=set(cell.labels), properties=dict(cell.items())
        )

    def merge(self, other: Vertex) -> None:
        """Fold another sighting of the same node into this one."""
        self.labels.update(other.labels)
        self.properties.update(other.properties)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a response body."""
        return {
            "id": self.id,
            "labels": sorted(self.labels),
            "properties": self.properties,
        }


@dataclass(slots=True, kw_only=True)
class Edge:
    """A relationship of the result graph."""

    id: str
    label: str
    source: str
    target: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for a response body."""
        return {
            "id": self.id,
            "label": self.label,
            "source": self.source,
            "target": self.target,
            "properties": self.properties,
        }


@dataclass(slots=True)
class ResultGraph:
    """A property graph materialized from query result rows.

    Nodes and relationships are merged by their element id, no matter how many
    rows or paths they show up in. Paths additionally keep the ordered element
    ids they were made of.
    """

    vertices: dict[str, Vertex] = field(default_factory=dict)
    edges: dict[str, Edge] = field(default_factory=dict)
    paths: list[list[str]] = field(default_factory=list)

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[Any]]) -> Self:
        """Materialize every graph-typed cell of the given rows."""
        graph = cls()
        for row in rows:
            graph.add_row(row)
        return graph

    def add_row(self, row: Iterable[Any]) -> None:
        """Add every graph-typed cell of one row."""
        for cell in row:
            self.add_cell(cell)

    def add_cell(self, cell: Any) -> None:
        """Add one cell, walking collections and ignoring scalars."""
        # Paths first, they share start_node/end_node with relationships
        if isinstance(cell, PathCell):
            self.add_path(cell)
        elif isinstance(cell, RelationshipCell):
            self.add_relationship(cell)
        elif isinstance(cell, NodeCell):
            self.add_node(cell)
        elif isinstance(cell, Mapping):
            for value in cell.values():  # pyright:ignore[reportUnknownVariableType]
                self.add_cell(value)
        elif isinstance(cell, list | tuple):
            for value in cell:  # pyright:ignore[reportUnknownVariableType]
                self.add_cell(value)

    def add_node(self, node: NodeCell) -> Vertex:
        """Upsert a vertex for the given node."""
        vertex = Vertex.from_cell(node)
        if existing := self.vertices.get(vertex.id):
            existing.merge(vertex)
            return existing
        self.vertices[vertex.id] = vertex
        return vertex

    def add_relationship(self, relationship: RelationshipCell) -> Edge:
        """Upsert an edge for the given relationship, along with its endpoints."""
        start, end = relationship.start_node, relationship.end_node
        if start is None or end is None:
            raise ValueError(
                f"Relationship {relationship.element_id} is missing an endpoint."
            )
        self.add_node(start)
        self.add_node(end)

        if existing := self.edges.get(relationship.element_id):
            existing.properties.update(relationship.items())
            return existing
        edge = Edge(
            id=relationship.element_id,
            label=relationship.type,
            source=start.element_id,
            target=end.element_id,
            properties=dict(relationship.items()),
        )
        self.edges[edge.id] = edge
        return edge

    def add_path(self, path: PathCell) -> list[str]:
        """Upsert every element of a path and record its element order."""
        nodes, relationships = list(path.nodes), list(path.relationships)
        ordered: list[str] = []
        for index, node in enumerate(nodes):
            ordered.append(self.add_node(node).id)
            if index < len(relationships):
                ordered.append(self.add_relationship(relationships[index]).id)
        self.paths.append(ordered)
        return ordered

    def to_dict(self) -> dict[str, Any]:
        """Serialize the whole graph for a response body."""
        return {
            "nodes": [vertex.to_dict() for vertex in self.vertices.values()],
            "edges": [edge.to_dict() for edge in self.edges.values()],
            "paths": self.paths,
        }
