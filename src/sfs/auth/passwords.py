# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import base64
import secrets

from argon2.low_level import Type, hash_secret_raw

from sfs.auth.errors import EmptyPasswordError, EntropyError

SALT_BYTES = 24
HASH_BYTES = 32

# Argon2id, RFC 9106 low-memory profile (64 MiB).
TIME_COST = 3
MEMORY_COST_KIB = 64 * 1024
PARALLELISM = 4


def new_salt() -> bytes:
    try:
        return secrets.token_bytes(SALT_BYTES)
    except (NotImplementedError, OSError) as exc:
        raise EntropyError(f"No se pudo generar la sal: {exc}") from exc


def derive_hash(plain: str, salt: bytes) -> bytes:
    if not plain:
        raise EmptyPasswordError("Password vacío")
    return hash_secret_raw(
        secret=plain.encode("utf-8"),
        salt=salt,
        time_cost=TIME_COST,
        memory_cost=MEMORY_COST_KIB,
        parallelism=PARALLELISM,
        hash_len=HASH_BYTES,
        type=Type.ID,
    )


def encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)
