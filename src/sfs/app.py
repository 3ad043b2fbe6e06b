# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import Response

from sfs import __version__
from sfs.context import RequestContext
from sfs.pipeline import Pipeline

ALL_METHODS = ("GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")


def create_app(pipeline: Pipeline) -> FastAPI:
    """One catch-all route; every path and method goes through ``pipeline``.

    The handler is synchronous so Starlette runs each request in its thread
    pool (argon2 checks and file system calls block).
    """
    app = FastAPI(
        title="static-file-server",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.pipeline = pipeline

    @app.api_route("/{path:path}", methods=list(ALL_METHODS), include_in_schema=False)
    def serve(request: Request) -> Response:
        return pipeline.handle(RequestContext.from_request(request))

    return app
