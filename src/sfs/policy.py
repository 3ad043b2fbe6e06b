# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Immutable access policy consumed by the pipeline builder."""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class ListingMode(str, Enum):
    HIDDEN = "hidden"
    INDEX_ONLY = "allow-index-only"
    SHOWN = "shown"

    @classmethod
    def from_flags(cls, *, show_listing: bool, allow_index: bool) -> "ListingMode":
        if show_listing:
            return cls.SHOWN
        if allow_index:
            return cls.INDEX_ONLY
        return cls.HIDDEN


@dataclass(frozen=True)
class AccessPolicy:
    # An empty entry allows requests without a Referer header.
    referrers: Tuple[str, ...] = ()
    access_key: str = ""
    cors: bool = False
    listing: ListingMode = ListingMode.SHOWN
    url_prefix: str = ""
    min_tls_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1
    log_requests: bool = False
