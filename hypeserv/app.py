# hypeserv - A game server status query API
# Copyright (C) 2016-2023 Lloyd Dilley, Felix Ern (MindSolve)
# http://www.dilley.me/
#
# Secondary optimization and customization are carried out by @molanp.
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along
# with this program; if not, write to the Free Software Foundation, Inc.,
# 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
import logging
from typing import Any, Awaitable, Callable, Mapping

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import backend
from .endpoint import EndpointResolver, parse_host_and_port
from .errors import ErrorKind, HostUnreachable
from .options import build_query_options, first_values, user_port, wants_raw

logger = logging.getLogger(__name__)

QueryFunc = Callable[[Mapping[str, Any]], Awaitable[Any]]


def error_response(kind: ErrorKind, **extra: Any) -> JSONResponse:
    return JSONResponse(
        {"error": str(kind), "message": kind.message, **extra},
        status_code=kind.status_code,
    )


def create_app(
    resolver: EndpointResolver | None = None,
    query: QueryFunc | None = None,
) -> FastAPI:
    """
    Build the API application.

    :param resolver: Endpoint resolver, defaults to one backed by the system DNS.
    :param query: Coroutine function querying the game server, defaults to `backend.query`.
    """
    if resolver is None:
        resolver = EndpointResolver()
    if query is None:
        query = backend.query

    app = FastAPI(
        title="HypeServ Query API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    @app.get("/query/{query_type}")
    @app.get("/query/{query_type}/", include_in_schema=False)
    async def query_server(query_type: str, request: Request) -> JSONResponse:
        """Query a game server of type `query_type`."""
        params = first_values(request.query_params.multi_items())

        host, host_port = parse_host_and_port(params.get("host", ""))
        if not query_type or not host:
            return error_response(ErrorKind.HOST_TYPE_MISSING)

        try:
            endpoint = await resolver.resolve(
                query_type, host, user_port(params, host_port)
            )
        except HostUnreachable as e:
            logger.warning("%s", e)
            return error_response(ErrorKind.HOST_UNREACHABLE)

        options = build_query_options(query_type, endpoint, params)
        logger.info(
            "Query %s %s:%s (srv port: %s)",
            query_type,
            endpoint.host,
            options.get("port", "default"),
            endpoint.port_from_srv,
        )

        try:
            result = await query(options)
        except Exception as e:
            logger.warning("Query %s %s failed: %s", query_type, endpoint.host, e)
            return error_response(ErrorKind.QUERY_FAILED, details=str(e) or type(e).__name__)

        if not wants_raw(params) and isinstance(result, dict):
            result.pop("raw", None)

        return JSONResponse(jsonable_encoder(result))

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # unknown paths and unsupported methods alike
        if exc.status_code in (404, 405):
            return JSONResponse(
                {"error": str(ErrorKind.NOT_FOUND), "path": request.url.path},
                status_code=ErrorKind.NOT_FOUND.status_code,
            )
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    return app
