from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from cypher_inflector.utils.general import Singleton

# One result row: positional cells, each a node, relationship, path, list or scalar
Row = Sequence[Any]


@runtime_checkable
class SubsumptionStore(Protocol):
    """Read access to the relationship-type hierarchy stored in the graph."""

    async def find_subsumption_sources(self, type_name: str) -> set[str]:
        """Return the types declared as direct sub-types of the given type."""
        ...


@runtime_checkable
class QueryEngine(Protocol):
    """Something which can run a finished query and hand back its rows."""

    async def execute(self, query: str) -> list[Row]:
        """Run a query in a read transaction and return every row."""
        ...


class DatabaseDriver(ABC, metaclass=Singleton):
    """A driver which handles interfacing with the graph database.

    Drivers implement both consumed interfaces of the inflation pipeline,
    SubsumptionStore and QueryEngine, on top of one connection.
    """

    _failed: bool = False

    @property
    def is_failed(self) -> bool:
        """Returns True if the backend connection has failed unrecoverably."""
        return self._failed

    @abstractmethod
    async def connect(self) -> None:
        """Initialize a persistent connection to the database backend.

        This method should be called in server.py lifespan.
        """

    @abstractmethod
    async def execute(self, query: str) -> list[Row]:
        """Run a query against the database backend and return its rows."""

    @abstractmethod
    async def find_subsumption_sources(self, type_name: str) -> set[str]:
        """Return the direct sub-types of a relationship type."""

    @abstractmethod
    async def close(self) -> None:
        """Close the database connection so the server can wrap up.

        This method should be called in server.py lifespan.
        """

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Check whether the backend can currently answer queries."""
