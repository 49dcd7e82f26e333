from http import HTTPStatus
from typing import ClassVar


class InflationError(Exception):
    """A request could not be turned into a result graph."""

    status_code: ClassVar[int] = HTTPStatus.BAD_REQUEST


class UnresolvedCurieError(InflationError):
    """A parameter value looked like a CURIE, but no IRI is known for it."""

    def __init__(self, curie: str) -> None:
        """Instantiate an UnresolvedCurieError."""
        super().__init__(f"Unable to resolve CURIE '{curie}'.")
        self.curie: str = curie


class MissingParameterError(InflationError):
    """A template placeholder has no matching request parameter."""

    def __init__(self, name: str) -> None:
        """Instantiate a MissingParameterError."""
        super().__init__(f"Missing required parameter '{name}'.")
        self.name: str = name


class QueryExecutionFailedError(InflationError):
    """The graph engine rejected or failed the final query."""

    status_code: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, query: str | None = None) -> None:
        """Instantiate a QueryExecutionFailedError with the engine's diagnostic."""
        super().__init__(f"Query execution failed: {message}")
        self.engine_message: str = message
        self.query: str | None = query
