# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Terminal stage: serve a resolved file system path.

Behaves like a plain static file server: regular files are streamed with
content type, validators and byte ranges; directories redirect to their
slash form, then serve ``index.html`` or an HTML listing.
"""

from __future__ import annotations

import errno
import os
import posixpath
import stat
from pathlib import Path
from typing import Dict, List
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.responses import FileResponse, HTMLResponse, PlainTextResponse, RedirectResponse, Response
from starlette.staticfiles import NotModifiedResponse, StaticFiles

from sfs.context import RequestContext
from sfs.guards import NOT_FOUND, Deny

BASE_DIR = Path(__file__).resolve().parent
INDEX_NAME = "index.html"
ALLOWED_METHODS = "GET, HEAD, OPTIONS"

_env = Environment(
    loader=FileSystemLoader(str(BASE_DIR / "templates")),
    autoescape=select_autoescape(["html", "j2"]),
)

# Only used for its conditional request check.
_static = StaticFiles()


def _error_response(exc: OSError) -> Response:
    if isinstance(exc, FileNotFoundError) or exc.errno in (errno.ENOENT, errno.ENOTDIR):
        return NOT_FOUND.response()
    if isinstance(exc, PermissionError):
        return Deny(403, "403 Forbidden").response()
    return Deny(500, "500 Internal Server Error").response()


def _has_dotdot(url_path: str) -> bool:
    return ".." in url_path.split("/")


def _redirect(ctx: RequestContext, location: str) -> Response:
    if ctx.query:
        location += "?" + str(ctx.query)
    return RedirectResponse(location, status_code=301)


def _file_response(ctx: RequestContext, path: Path, st: os.stat_result) -> Response:
    response = FileResponse(path, stat_result=st)
    if _static.is_not_modified(response.headers, ctx.headers):
        return NotModifiedResponse(response.headers)
    return response


def _listing(ctx: RequestContext, directory: Path) -> Response:
    entries: List[Dict[str, str]] = []
    with os.scandir(directory) as it:
        for entry in sorted(it, key=lambda e: e.name):
            name = entry.name + ("/" if entry.is_dir() else "")
            entries.append({"name": name, "href": quote(name)})
    html = _env.get_template("listing.html.j2").render(path=ctx.path, entries=entries)
    return HTMLResponse(html)


def serve_file(ctx: RequestContext, name: str) -> Response:
    """Serve ``name`` (an already resolved path) for the request ``ctx``."""
    method = ctx.method.upper()
    if method == "OPTIONS":
        return Response(status_code=200, headers={"Allow": ALLOWED_METHODS})
    if method not in ("GET", "HEAD"):
        return PlainTextResponse(
            "405 method not allowed\n", status_code=405, headers={"Allow": ALLOWED_METHODS}
        )

    if _has_dotdot(ctx.path):
        return Deny(400, "invalid URL path").response()

    if ctx.path.endswith("/" + INDEX_NAME):
        return _redirect(ctx, "./")

    path = Path(name)
    try:
        st = path.stat()
    except OSError as exc:
        return _error_response(exc)

    if not stat.S_ISDIR(st.st_mode):
        return _file_response(ctx, path, st)

    if not ctx.path.endswith("/"):
        return _redirect(ctx, posixpath.basename(ctx.path) + "/")

    index = path / INDEX_NAME
    try:
        ist = index.stat()
    except OSError:
        ist = None
    if ist is not None and stat.S_ISREG(ist.st_mode):
        return _file_response(ctx, index, ist)

    try:
        return _listing(ctx, path)
    except OSError as exc:
        return _error_response(exc)
