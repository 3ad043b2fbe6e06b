# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import binascii
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union

from sfs.auth.errors import (
    EmptyPasswordError,
    StoreIOError,
    StoreNotFoundError,
    StoreParseError,
    UserExistsError,
    UserNotFoundError,
)
from sfs.auth.passwords import decode, derive_hash, encode, new_salt

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[], str]

FILE_MODE = 0o600


@dataclass(frozen=True)
class Credential:
    username: str
    salt: str
    password_hash: str

    @classmethod
    def create(cls, username: str, password: str) -> "Credential":
        """Draw a fresh salt and derive the hash for ``password``."""
        salt = new_salt()
        return cls(
            username=username,
            salt=encode(salt),
            password_hash=encode(derive_hash(password, salt)),
        )

    def matches(self, password: str) -> bool:
        # Plain equality, not constant time.
        return encode(derive_hash(password, decode(self.salt))) == self.password_hash

    def to_json(self) -> Dict[str, str]:
        return {"salt": self.salt, "pass": self.password_hash}


def _parse_credential(username: object, raw: object) -> Credential:
    if not isinstance(username, str) or not username:
        raise StoreParseError(f"Usuario inválido en el fichero: {username!r}")
    if not isinstance(raw, dict):
        raise StoreParseError(f"Entrada inválida para '{username}'")
    salt = raw.get("salt")
    ph = raw.get("pass")
    if not isinstance(salt, str) or not isinstance(ph, str):
        raise StoreParseError(f"Faltan 'salt' o 'pass' para '{username}'")
    try:
        decode(salt)
        decode(ph)
    except (binascii.Error, ValueError) as exc:
        raise StoreParseError(f"Codificación base64 inválida para '{username}': {exc}") from exc
    return Credential(username=username, salt=salt, password_hash=ph)


class CredentialStore:
    """Mapping of username -> salted password hash.

    Mutations (add/update/remove) persist the whole store back to ``path``
    when one is set. While serving the store is only read, so it is shared
    across request threads without locking.
    """

    def __init__(
        self,
        credentials: Optional[Dict[str, Credential]] = None,
        *,
        path: Union[str, Path, None] = None,
    ) -> None:
        self._users: Dict[str, Credential] = dict(credentials or {})
        self.path = Path(path) if path else None

    # --- Construction ---

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CredentialStore":
        p = Path(path)
        try:
            data = p.read_bytes()
        except FileNotFoundError as exc:
            raise StoreNotFoundError(f"No existe el fichero de credenciales: {p}") from exc
        except OSError as exc:
            raise StoreIOError(f"No se pudo leer {p}: {exc}") from exc

        try:
            raw = json.loads(data.decode("utf-8"))
        except ValueError as exc:
            raise StoreParseError(f"JSON inválido en {p}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreParseError(f"{p} debe contener un objeto JSON")

        users = {u: _parse_credential(u, data) for u, data in raw.items()}
        logger.debug("Loaded %d credential(s) from %s", len(users), p)
        return cls(users, path=p)

    @classmethod
    def load_or_create(cls, path: Union[str, Path]) -> "CredentialStore":
        try:
            return cls.load(path)
        except StoreNotFoundError:
            return cls(path=path)

    @classmethod
    def from_shared_secret(cls, value: str) -> "CredentialStore":
        """Build an in-memory store from a ``username:password`` value."""
        parts = (value or "").split(":")
        if len(parts) != 2 or not parts[0]:
            raise ValueError("El secreto compartido debe tener el formato 'usuario:password'")
        username, password = parts
        if not password:
            raise EmptyPasswordError("Password vacío")
        return cls({username: Credential.create(username, password)})

    def save(self, path: Union[str, Path, None] = None) -> None:
        p = Path(path) if path else self.path
        if p is None:
            raise StoreIOError("No hay ruta para guardar las credenciales")
        payload = {u: c.to_json() for u, c in self._users.items()}
        text = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        try:
            # Owner-only: the file holds salts and hashes.
            fd = os.open(p, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.chmod(p, FILE_MODE)
        except OSError as exc:
            raise StoreIOError(f"No se pudo escribir {p}: {exc}") from exc

    def _persist(self) -> None:
        if self.path is not None:
            self.save()

    # --- Mutations (CLI only, never while serving) ---

    def add(self, username: str, password: str = "", *, prompt: Optional[PasswordPrompt] = None) -> None:
        if not username:
            raise ValueError("El usuario no puede estar vacío.")
        if username in self._users:
            raise UserExistsError(f"El usuario '{username}' ya existe.")
        if not password and prompt is not None:
            password = prompt()
        self._users[username] = Credential.create(username, password)
        self._persist()

    def update(self, username: str, password: str = "", *, prompt: Optional[PasswordPrompt] = None) -> None:
        if username not in self._users:
            raise UserNotFoundError(f"No existe el usuario '{username}'.")
        if not password and prompt is not None:
            password = prompt()
        self._users[username] = Credential.create(username, password)
        self._persist()

    def remove(self, username: str) -> None:
        if username not in self._users:
            raise UserNotFoundError(f"No existe el usuario '{username}'.")
        del self._users[username]
        self._persist()

    # --- Reads ---

    def list_users(self) -> Iterator[str]:
        yield from list(self._users)

    def get(self, username: str) -> Optional[Credential]:
        return self._users.get(username)

    def matches(self, username: str, password: str) -> bool:
        cred = self._users.get(username)
        if cred is None or not password:
            return False
        return cred.matches(password)

    def __contains__(self, username: object) -> bool:
        return username in self._users

    def __len__(self) -> int:
        return len(self._users)
