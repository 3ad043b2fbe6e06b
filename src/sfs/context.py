# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Mapping, Union

from starlette.datastructures import Headers, QueryParams
from starlette.requests import Request


@dataclass(frozen=True)
class RequestContext:
    """What the guards are allowed to see of one inbound request.

    ``resolved`` stays empty until the path rewrite stage has mapped the URL
    path onto the served folder.
    """

    path: str
    method: str = "GET"
    query: Union[QueryParams, Mapping[str, str], str] = ""
    headers: Union[Headers, Mapping[str, str]] = field(default_factory=dict)
    client: str = ""
    host: str = ""
    http_version: str = "1.1"
    resolved: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.query, QueryParams):
            object.__setattr__(self, "query", QueryParams(self.query))
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(headers=dict(self.headers)))

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        client = ""
        if request.client is not None:
            client = f"{request.client.host}:{request.client.port}"
        return cls(
            path=request.scope["path"],
            method=request.method,
            query=request.query_params,
            headers=request.headers,
            client=client,
            host=request.headers.get("host", ""),
            http_version=request.scope.get("http_version", "1.1"),
        )

    @property
    def referer(self) -> str:
        return self.headers.get("referer", "")

    @property
    def authorization(self) -> str:
        return self.headers.get("authorization", "")

    def query_param(self, name: str) -> str:
        """First value of a query parameter, or '' when absent."""
        values = self.query.getlist(name)
        return values[0] if values else ""

    def with_resolved(self, name: str) -> "RequestContext":
        return dataclasses.replace(self, resolved=name)
