import asyncio
from typing import Any, LiteralString, cast

from typing_extensions import override

import neo4j
import neo4j.exceptions
from loguru import logger as log
from opentelemetry import trace

from cypher_inflector.backends.base_driver import DatabaseDriver, Row
from cypher_inflector.config.general import CONFIG
from cypher_inflector.inflate.errors import QueryExecutionFailedError

tracer = trace.get_tracer("inflector.execution.tracer")


class Neo4jDriver(DatabaseDriver):
    """A Neo4j driver."""

    neo4j_driver: neo4j.AsyncDriver | None = None
    _failed: bool = False

    def __init__(self) -> None:
        """Initialize the driver with connection settings."""
        self.settings = CONFIG.neo4j
        self.entailment = CONFIG.entailment

    @override
    async def connect(self, retries: int = 0) -> None:
        """Attempt to connect to neo4j."""
        log.info("Checking Neo4j connection...")
        if not self.neo4j_driver:
            self.neo4j_driver = neo4j.AsyncGraphDatabase.driver(
                self.settings.uri,
                auth=(
                    self.settings.username,
                    self.settings.password.get_secret_value(),
                ),
                telemetry_disabled=True,
                max_connection_pool_size=self.settings.max_connection_pool_size,
            )
        try:
            await self.neo4j_driver.verify_connectivity()
            self._failed = False
            log.success("Neo4j connection successful!")
        except Exception as e:  # currently the driver says it raises Exception, not something more specific
            await self.neo4j_driver.close()
            self.neo4j_driver = None
            if retries < self.settings.connect_retries:
                await asyncio.sleep(1)
                log.error(
                    f"Could not establish connection to neo4j, trying again... retry {retries + 1}"
                )
                await self.connect(retries + 1)
            else:
                log.error(f"Could not establish connection to neo4j, error: {e}")
                self._failed = True
                raise e

    @override
    @tracer.start_as_current_span("neo4j_query")
    async def execute(self, query: str) -> list[Row]:
        """Run a finished query in a read transaction."""
        # get a reference to the current opentelemetry span
        otel_span = trace.get_current_span()
        if not otel_span.is_recording():
            otel_span = None
        else:
            otel_span.add_event("neo4j_query_start", attributes={"cypher_query": query})

        rows = await self.run(query)

        if otel_span is not None:
            otel_span.add_event("neo4j_query_end", attributes={"rows": len(rows)})
        return rows

    @property
    def subsumption_query(self) -> str:
        """One-hop lookup of the types declared as sub-types of `$type_name`."""
        relationship = self.entailment.subsumption_relationship
        prop = self.entailment.type_property
        return (
            f"MATCH (child)-[:`{relationship}`]->(parent) "
            f"WHERE parent.`{prop}` = $type_name "
            f"RETURN DISTINCT child.`{prop}`"
        )

    @override
    async def find_subsumption_sources(self, type_name: str) -> set[str]:
        """Get the direct sub-types of a relationship type."""
        rows = await self.run(self.subsumption_query, {"type_name": type_name})
        return {str(row[0]) for row in rows if row[0] is not None}

    @override
    async def close(self) -> None:
        """Close the neo4j connection."""
        if self.neo4j_driver is None:
            return
        await self.neo4j_driver.close()
        self.neo4j_driver = None

    @override
    async def is_healthy(self) -> bool:
        """Check connectivity without reconnecting."""
        if self.neo4j_driver is None:
            return False
        try:
            await self.neo4j_driver.verify_connectivity()
        except Exception:  # same as connect(), the driver doesn't narrow this down
            log.exception("Neo4j health check failed.")
            return False
        return True

    async def run(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Run a query in a single read transaction, returning all row values.

        Failures are never retried, including lost connections.
        """
        if self.neo4j_driver is None:
            raise RuntimeError("Must use Neo4jDriver.connect() before running queries.")
        try:
            async with self.neo4j_driver.session(
                database=self.settings.database_name,
                default_access_mode=neo4j.READ_ACCESS,
            ) as session:
                # Explicit transaction, managed ones are retried by the driver
                tx = await session.begin_transaction(timeout=self.settings.query_timeout)
                async with tx:
                    return await self._read_rows(
                        tx, cast(LiteralString, query), parameters
                    )
        except neo4j.exceptions.Neo4jError as e:
            log.exception("Neo4jError encountered.")
            raise QueryExecutionFailedError(e.message or str(e), query) from e
        except neo4j.exceptions.DriverError as e:
            log.exception("DriverError encountered.")
            raise QueryExecutionFailedError(str(e), query) from e

    @staticmethod
    async def _read_rows(
        tx: neo4j.AsyncTransaction,
        cypher: LiteralString,
        query_parameters: dict[str, Any] | None = None,
    ) -> list[Row]:
        """Collect every row of a query run in the given transaction."""
        if not query_parameters:
            query_parameters = dict[str, Any]()

        neo4j_result: neo4j.AsyncResult = await tx.run(
            cypher, parameters=query_parameters
        )
        return cast(list[Row], await neo4j_result.values())
