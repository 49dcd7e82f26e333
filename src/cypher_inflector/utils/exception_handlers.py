from typing import cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from cypher_inflector.config.general import CONFIG
from cypher_inflector.inflate.errors import InflationError
from cypher_inflector.types.general import ErrorDetail


async def inflation_error(_: Request, exc: Exception) -> Response:
    """Turn an InflationError into an error response with its status code."""
    error = cast(InflationError, exc)
    if error.status_code >= 500:  # noqa: PLR2004
        logger.error(f"Request failed: {error}")
    else:
        logger.info(f"Rejected request: {error}")
    return JSONResponse(
        ErrorDetail(detail=str(error)).model_dump(), status_code=error.status_code
    )


async def ensure_cors(app: FastAPI, request: Request, exc: Exception) -> Response:
    """Exception handler that ensures CORS information is kept in response.

    Based on https://github.com/tiangolo/fastapi/issues/775
    """
    response = JSONResponse(
        ErrorDetail(detail=f"Unhandled exception: {exc!r}").model_dump(),
        status_code=500,
    )

    # The CORSMiddleware doesn't run for unhandled server exceptions, so the
    # headers have to be set here for clients to see a JSON 500 instead of a
    # CORS error.
    origin = request.headers.get("origin")

    if origin:
        # Have the middleware parse the config, then copy its headers
        cors = CORSMiddleware(
            app,
            allow_origins=CONFIG.cors.allow_origins,
            allow_credentials=CONFIG.cors.allow_credentials,
            allow_methods=CONFIG.cors.allow_methods,
            allow_headers=CONFIG.cors.allow_headers,
        )

        # Logic directly from Starlette's CORSMiddleware:
        # https://github.com/encode/starlette/blob/master/starlette/middleware/cors.py#L152

        response.headers.update(cast(dict[str, str], cors.simple_headers))
        has_cookie = "cookie" in request.headers

        # If request includes any cookie headers, then we must respond
        # with the specific origin instead of '*'.
        if cors.allow_all_origins and has_cookie:
            response.headers["Access-Control-Allow-Origin"] = origin

        # If we only allow specific origins, then we have to mirror back
        # the Origin header in the response.
        elif not cors.allow_all_origins and cors.is_allowed_origin(origin=origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers.add_vary_header("Origin")

    return response
