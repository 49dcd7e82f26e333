import math
import time
import uuid

from loguru import logger
from opentelemetry import trace

from cypher_inflector.backends.base_driver import QueryEngine
from cypher_inflector.inflate import template
from cypher_inflector.inflate.curie import CurieResolver
from cypher_inflector.inflate.entailment import EntailmentExpander
from cypher_inflector.inflate.flatten import flatten
from cypher_inflector.types.general import ParameterMap
from cypher_inflector.types.graph import ResultGraph

tracer = trace.get_tracer("inflector.execution.tracer")


class CypherInflector:
    """Turns a query template and request parameters into a result graph."""

    def __init__(
        self,
        resolver: CurieResolver,
        expander: EntailmentExpander,
        engine: QueryEngine,
    ) -> None:
        """Initialize an instance."""
        self.resolver: CurieResolver = resolver
        self.expander: EntailmentExpander = expander
        self.engine: QueryEngine = engine

    async def build_query(self, query_template: str, parameters: ParameterMap) -> str:
        """Produce the literal query for a template, without running it."""
        flattened = flatten(parameters, self.resolver)
        return await template.substitute(query_template, flattened, self.expander)

    async def inflate(
        self, query_template: str, parameters: ParameterMap
    ) -> ResultGraph:
        """Build the query for a template, run it, and materialize the results.

        Fails with the first InflationError encountered. Nothing is executed
        if the query can't be built.
        """
        job_log = logger.bind(request_id=uuid.uuid4().hex)
        start_time = time.time()

        query = await self.build_query(query_template, parameters)
        job_log.debug(f"Inflated query: {query}")

        rows = await self.engine.execute(query)
        with tracer.start_as_current_span("materialize_results"):
            graph = ResultGraph.from_rows(rows)

        duration_ms = math.ceil((time.time() - start_time) * 1000)
        job_log.info(
            f"Retrieved {len(rows)} rows / {len(graph.vertices)} nodes / {len(graph.edges)} edges in {duration_ms}ms."
        )
        return graph
