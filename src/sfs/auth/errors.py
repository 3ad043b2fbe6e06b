# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations


class CredentialError(Exception):
    """Base class for credential store failures."""


class UserExistsError(CredentialError):
    pass


class UserNotFoundError(CredentialError):
    pass


class EmptyPasswordError(CredentialError):
    pass


class EntropyError(CredentialError):
    pass


class StoreNotFoundError(CredentialError, FileNotFoundError):
    """The credentials file does not exist (callers may start a new store)."""


class StoreParseError(CredentialError):
    pass


class StoreIOError(CredentialError):
    pass
