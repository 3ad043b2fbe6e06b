# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Assemble the guard chain around the file transfer stage.

Execution order for one request:

    basic auth -> access key -> CORS -> listing policy
        -> path rewrite -> referrer -> request log -> transfer

Guards before the rewrite see the raw URL path; the referrer guard and the
request log run after it and see the resolved file system path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from starlette.responses import Response

from sfs.auth.credentials import CredentialStore
from sfs.context import RequestContext
from sfs.guards import (
    AccessKeyGuard,
    BasicAuthGuard,
    CorsHeaders,
    Deny,
    DirectPath,
    Guard,
    HiddenListingGuard,
    IndexOnlyListingGuard,
    PathRewrite,
    PrefixPath,
    ReferrerGuard,
)
from sfs.policy import AccessPolicy, ListingMode
from sfs.transfer import serve_file

access_logger = logging.getLogger("sfs.access")

Transfer = Callable[[RequestContext, str], Response]


def log_request(ctx: RequestContext) -> None:
    referer = ctx.referer
    if not referer:
        access_logger.info(
            "REQ from '%s': %s HTTP/%s %s%s -> %s",
            ctx.client, ctx.method, ctx.http_version, ctx.host, ctx.path, ctx.resolved,
        )
    else:
        access_logger.info(
            "REQ from '%s' (REFERER: '%s'): %s HTTP/%s %s%s -> %s",
            ctx.client, referer, ctx.method, ctx.http_version, ctx.host, ctx.path, ctx.resolved,
        )


@dataclass(frozen=True)
class Pipeline:
    guards: Tuple[Guard, ...]
    rewrite: PathRewrite
    resolved_guards: Tuple[Guard, ...] = ()
    log_requests: bool = False
    transfer: Transfer = serve_file

    def handle(self, ctx: RequestContext) -> Response:
        headers: Dict[str, str] = {}

        for guard in self.guards:
            decision = guard.evaluate(ctx)
            if isinstance(decision, Deny):
                return decision.response(headers)
            headers.update(decision.headers)

        resolved = self.rewrite.resolve(ctx)
        if isinstance(resolved, Deny):
            return resolved.response(headers)
        ctx = ctx.with_resolved(resolved)

        for guard in self.resolved_guards:
            decision = guard.evaluate(ctx)
            if isinstance(decision, Deny):
                return decision.response(headers)
            headers.update(decision.headers)

        if self.log_requests:
            log_request(ctx)

        response = self.transfer(ctx, resolved)
        response.headers.update(headers)
        return response


def build_pipeline(
    policy: AccessPolicy,
    folder: str,
    store: Optional[CredentialStore] = None,
    transfer: Transfer = serve_file,
) -> Pipeline:
    """Build the request pipeline once, before the listener starts.

    ``store`` enables basic auth; it must not be mutated while serving.
    """
    guards: List[Guard] = []
    if store is not None:
        guards.append(BasicAuthGuard(store))
    if policy.access_key:
        guards.append(AccessKeyGuard(policy.access_key))
    if policy.cors:
        guards.append(CorsHeaders())
    if policy.listing == ListingMode.HIDDEN:
        guards.append(HiddenListingGuard())
    elif policy.listing == ListingMode.INDEX_ONLY:
        guards.append(IndexOnlyListingGuard(folder, policy.url_prefix))

    rewrite: PathRewrite
    if policy.url_prefix:
        rewrite = PrefixPath(folder, policy.url_prefix)
    else:
        rewrite = DirectPath(folder)

    resolved_guards: List[Guard] = []
    if policy.referrers:
        resolved_guards.append(ReferrerGuard(tuple(policy.referrers)))

    return Pipeline(
        guards=tuple(guards),
        rewrite=rewrite,
        resolved_guards=tuple(resolved_guards),
        log_requests=policy.log_requests,
        transfer=transfer,
    )
