import functools
import io
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Annotated

import orjson
import yaml
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from cypher_inflector.backends.base_driver import DatabaseDriver
from cypher_inflector.backends.neo4j.driver import Neo4jDriver
from cypher_inflector.config.general import CONFIG, EndpointSettings
from cypher_inflector.config.logger import cleanup, configure_logging
from cypher_inflector.inflate.curie import PrefixCurieResolver
from cypher_inflector.inflate.entailment import EntailmentExpander
from cypher_inflector.inflate.errors import InflationError
from cypher_inflector.inflate.inflector import CypherInflector
from cypher_inflector.text.analysis import analyze
from cypher_inflector.utils.exception_handlers import ensure_cors, inflation_error
from cypher_inflector.utils.telemetry import configure_telemetry


def get_driver() -> DatabaseDriver:
    """Get the process-wide graph database driver."""
    return Neo4jDriver()


def get_inflector(
    driver: Annotated[DatabaseDriver, Depends(get_driver)],
) -> CypherInflector:
    """Assemble an inflector over the configured backend."""
    return CypherInflector(
        resolver=PrefixCurieResolver(CONFIG.curies),
        expander=EntailmentExpander(driver, transitive=CONFIG.entailment.transitive),
        engine=driver,
    )


# Lifespan handling for each uvicorn worker
@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None]:
    """Lifespan hook for any setup/shutdown behavior."""
    # Startup
    configure_logging()
    driver = get_driver()
    try:
        await driver.connect()
    except Exception:
        logger.exception(
            "Graph backend connection has failed. Endpoints won't be able to answer queries."
        )

    yield  # Separates startup/shutdown phase

    # Shutdown
    await driver.close()
    await cleanup()


def make_endpoint(
    endpoint: EndpointSettings,
) -> Callable[..., Awaitable[Response]]:
    """Create the handler for one templated query endpoint."""

    async def dynamic_query(
        request: Request,
        inflector: Annotated[CypherInflector, Depends(get_inflector)],
    ) -> Response:
        parameters = dict[str, list[str]]()
        for name, value in request.query_params.multi_items():
            parameters.setdefault(name, []).append(value)

        graph = await inflector.inflate(endpoint.query, parameters)
        return Response(
            orjson.dumps(graph.to_dict(), default=str), media_type="application/json"
        )

    dynamic_query.__doc__ = endpoint.description or endpoint.summary or None
    return dynamic_query


def register_endpoints(app: FastAPI, endpoints: Sequence[EndpointSettings]) -> None:
    """Add a GET route for every configured query template."""
    for endpoint in endpoints:
        logger.debug(f"Registering templated endpoint {endpoint.path}")
        app.add_api_route(
            endpoint.path,
            make_endpoint(endpoint),
            methods=["GET"],
            summary=endpoint.summary or None,
            description=endpoint.description or None,
            tags=list(endpoint.tags),
            response_class=Response,
        )


def create_app(endpoints: Sequence[EndpointSettings]) -> FastAPI:
    """Build the application serving the given templated endpoints."""
    app = FastAPI(
        title="cypher-inflector",
        description="Templated Cypher queries over a Neo4j graph.",
        lifespan=lifespan,
    )

    # Set up CORS / exception handling
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CONFIG.cors.allow_origins,
        allow_credentials=CONFIG.cors.allow_credentials,
        allow_methods=CONFIG.cors.allow_methods,
        allow_headers=CONFIG.cors.allow_headers,
    )
    app.add_exception_handler(InflationError, inflation_error)

    @app.exception_handler(500)
    async def exception_ensure_cors(request: Request, exc: Exception) -> Response:  # pyright:ignore[reportUnusedFunction]
        """Ensure CORS is not lost on exception."""
        return await ensure_cors(app, request, exc)

    # Add a yaml endpoint, for completeness' sake
    @app.get("/openapi.yaml", include_in_schema=False)
    @functools.lru_cache
    def openapi_yaml() -> Response:  # pyright:ignore[reportUnusedFunction]
        """Retreive the OpenAPI specs in yaml format."""
        openapi_json = app.openapi()
        yaml_str = io.StringIO()
        yaml.dump(openapi_json, yaml_str)
        return Response(yaml_str.getvalue(), media_type="text/yaml")

    @app.get("/health", tags=["health"])
    async def health(  # pyright:ignore[reportUnusedFunction]
        driver: Annotated[DatabaseDriver, Depends(get_driver)],
    ) -> JSONResponse:
        """Report whether the graph backend is reachable."""
        healthy = not driver.is_failed and await driver.is_healthy()
        return JSONResponse(
            {"backend": "ok" if healthy else "unavailable"},
            status_code=200 if healthy else 503,
        )

    @app.get("/analyze/{field}", tags=["vocabulary"])
    async def analyze_text(field: str, text: str) -> JSONResponse:  # pyright:ignore[reportUnusedFunction]
        """Show the terms a vocabulary field's analyzer produces for some text."""
        return JSONResponse({"field": field, "tokens": analyze(field, text)})

    register_endpoints(app, endpoints)
    return app


app = create_app(CONFIG.endpoints)

# Set up Sentry and Otel
configure_telemetry(app)
