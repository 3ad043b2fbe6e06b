# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request guards.

A guard inspects a :class:`RequestContext` and either lets it through
(:class:`Allow`, optionally carrying response headers) or ends it with a
fixed status and body (:class:`Deny`). Guards never raise.

Status codes are part of the contract: referrer and basic-auth failures are
403, access-key failures and listing/prefix rejections are 404.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple, Union

from argon2.exceptions import HashingError
from starlette.responses import PlainTextResponse, Response

from sfs.auth.credentials import CredentialStore
from sfs.auth.errors import CredentialError
from sfs.context import RequestContext

logger = logging.getLogger(__name__)


# --- Decisions ---


@dataclass(frozen=True)
class Allow:
    headers: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Deny:
    status: int
    body: str

    def response(self, headers: Optional[dict] = None) -> Response:
        return PlainTextResponse(self.body + "\n", status_code=self.status, headers=headers)


Decision = Union[Allow, Deny]

ALLOW = Allow()
NOT_FOUND = Deny(404, "404 page not found")
FORBIDDEN = Deny(403, "Forbidden")


class Guard(Protocol):
    def evaluate(self, ctx: RequestContext) -> Decision:
        ...


# --- Referrer ---


def valid_referrer(referrers: Sequence[str], referer: str) -> bool:
    """Literal prefix match; an empty entry only admits a missing Referer."""
    if not referrers:
        return True
    for allowed in referrers:
        if allowed == "":
            if referer == "":
                return True
            # every string starts with "", keep looking
            continue
        if referer.startswith(allowed):
            return True
    return False


@dataclass(frozen=True)
class ReferrerGuard:
    referrers: Tuple[str, ...]

    def evaluate(self, ctx: RequestContext) -> Decision:
        referer = ctx.referer
        if valid_referrer(self.referrers, referer):
            return ALLOW
        logger.debug("Rejected referer %r for %s", referer, ctx.path)
        return Deny(403, f"Invalid source '{referer}'")


# --- Access key ---


@dataclass(frozen=True)
class RawKey:
    value: str


@dataclass(frozen=True)
class PrecomputedDigest:
    value: str


AccessToken = Union[RawKey, PrecomputedDigest]


def access_digest(path: str, value: str) -> str:
    """Upper-case hex MD5 of ``path + value``."""
    data = (path + value).encode("utf-8")
    return hashlib.md5(data, usedforsecurity=False).hexdigest().upper()


def access_token(ctx: RequestContext) -> Optional[AccessToken]:
    code = ctx.query_param("code")
    if code:
        return PrecomputedDigest(code)
    key = ctx.query_param("key")
    if key:
        return RawKey(key)
    return None


def token_matches(token: AccessToken, path: str, secret: str) -> bool:
    expected = access_digest(path, secret)
    if isinstance(token, PrecomputedDigest):
        return token.value.upper() == expected
    return access_digest(path, token.value) == expected


@dataclass(frozen=True)
class AccessKeyGuard:
    secret: str

    def evaluate(self, ctx: RequestContext) -> Decision:
        token = access_token(ctx)
        if token is not None and token_matches(token, ctx.path, self.secret):
            return ALLOW
        logger.debug("Missing or invalid access key for %s", ctx.path)
        return NOT_FOUND


# --- Basic auth ---


def parse_basic_auth(header: str) -> Optional[Tuple[str, str]]:
    """Return ``(username, password)`` or None when the header is unusable."""
    prefix = "basic "
    if len(header) < len(prefix) or header[: len(prefix)].lower() != prefix:
        return None
    try:
        decoded = base64.b64decode(header[len(prefix):], validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


@dataclass(frozen=True)
class BasicAuthGuard:
    store: CredentialStore

    def evaluate(self, ctx: RequestContext) -> Decision:
        creds = parse_basic_auth(ctx.authorization)
        if creds is None:
            return FORBIDDEN
        username, password = creds
        if not username or not password or username not in self.store:
            return FORBIDDEN
        try:
            ok = self.store.matches(username, password)
        except (CredentialError, HashingError, ValueError) as exc:
            logger.warning("Password check failed for '%s': %s", username, exc)
            return FORBIDDEN
        if not ok:
            logger.debug("Wrong password for '%s'", username)
            return FORBIDDEN
        return ALLOW


# --- CORS ---


@dataclass(frozen=True)
class CorsHeaders:
    def evaluate(self, ctx: RequestContext) -> Decision:
        return Allow(
            headers=(
                ("Access-Control-Allow-Origin", "*"),
                ("Access-Control-Allow-Headers", "*"),
            )
        )


# --- Listing policy ---


@dataclass(frozen=True)
class HiddenListingGuard:
    """Directory requests are never answered, even when an index exists."""

    def evaluate(self, ctx: RequestContext) -> Decision:
        if ctx.path.endswith("/"):
            return NOT_FOUND
        return ALLOW


@dataclass(frozen=True)
class IndexOnlyListingGuard:
    """Directory requests pass only when the directory has an index.html."""

    folder: str
    url_prefix: str = ""

    def evaluate(self, ctx: RequestContext) -> Decision:
        if not ctx.path.endswith("/"):
            return ALLOW
        rel = ctx.path
        if self.url_prefix and rel.startswith(self.url_prefix):
            rel = rel[len(self.url_prefix):]
        index = Path(self.folder + "/" + rel.lstrip("/")) / "index.html"
        if not index.is_file():
            return NOT_FOUND
        return ALLOW


# --- Path rewrite ---


@dataclass(frozen=True)
class DirectPath:
    folder: str

    def resolve(self, ctx: RequestContext) -> Union[str, Deny]:
        return self.folder + ctx.path


@dataclass(frozen=True)
class PrefixPath:
    folder: str
    prefix: str

    def resolve(self, ctx: RequestContext) -> Union[str, Deny]:
        if not ctx.path.startswith(self.prefix):
            return NOT_FOUND
        return self.folder + ctx.path[len(self.prefix):]


PathRewrite = Union[DirectPath, PrefixPath]
