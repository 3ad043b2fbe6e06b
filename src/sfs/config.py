# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Settings: defaults, then an optional YAML file, then environment variables."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from sfs.listener import parse_tls_version
from sfs.policy import AccessPolicy, ListingMode

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "t", "yes", "y"}
FALSE_VALUES = {"0", "false", "f", "no", "n"}


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    cors: bool = False
    debug: bool = False
    folder: str = "/web"
    host: str = ""
    port: int = 8080
    allow_index: bool = True
    show_listing: bool = True
    tls_cert: str = ""
    tls_key: str = ""
    tls_min_vers: str = ""
    url_prefix: str = ""
    referrers: Tuple[str, ...] = ()
    access_key: str = ""
    credentials_file: str = ""
    basic_auth: str = ""

    @property
    def use_tls(self) -> bool:
        return bool(self.tls_cert)

    @property
    def listing(self) -> ListingMode:
        return ListingMode.from_flags(show_listing=self.show_listing, allow_index=self.allow_index)

    def policy(self) -> AccessPolicy:
        return AccessPolicy(
            referrers=self.referrers,
            access_key=self.access_key,
            cors=self.cors,
            listing=self.listing,
            url_prefix=self.url_prefix,
            min_tls_version=parse_tls_version(self.tls_min_vers),
            log_requests=self.debug,
        )

    def summary(self) -> str:
        """YAML view of the settings for the debug log, secrets masked."""
        data: Dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.name in ("access_key", "basic_auth") and value:
                value = "********"
            if isinstance(value, tuple):
                value = list(value)
            data[f.name.replace("_", "-")] = value
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


# env var -> field name; later entries win, so the legacy aliases come first
ENV_KEYS = {
    "CREDENTIALS": "credentials_file",
    "FAST_AUTH": "basic_auth",
    "CORS": "cors",
    "DEBUG": "debug",
    "FOLDER": "folder",
    "HOST": "host",
    "PORT": "port",
    "ALLOW_INDEX": "allow_index",
    "SHOW_LISTING": "show_listing",
    "TLS_CERT": "tls_cert",
    "TLS_KEY": "tls_key",
    "TLS_MIN_VERS": "tls_min_vers",
    "URL_PREFIX": "url_prefix",
    "REFERRERS": "referrers",
    "ACCESS_KEY": "access_key",
    "CREDENTIALS_FILE": "credentials_file",
    "BASIC_AUTH": "basic_auth",
}

_FIELDS = {f.name: f for f in dataclasses.fields(Settings)}


def str_as_bool(value: str) -> bool:
    lv = value.strip().lower()
    if lv in TRUE_VALUES:
        return True
    if lv in FALSE_VALUES:
        return False
    raise ValueError(f"unknown conversion from string to bool for value '{value}'")


def _coerce(name: str, value: Any) -> Any:
    """Coerce a YAML value to the field type; raises ConfigError."""
    default = _FIELDS[name].default
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        try:
            return str_as_bool(str(value))
        except ValueError as exc:
            raise ConfigError(f"'{name}': {exc}") from exc
    if isinstance(default, int):
        try:
            port = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"'{name}' debe ser un entero: {value!r}") from exc
        if not 0 <= port <= 65535:
            raise ConfigError(f"'{name}' fuera de rango: {port}")
        return port
    if isinstance(default, tuple):
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple("" if v is None else str(v) for v in value)
    return "" if value is None else str(value)


def _read_yaml(filename: str) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(Path(filename).read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"No se pudo leer {filename}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"YAML inválido en {filename}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{filename} debe contener un mapa YAML")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        name = str(key).strip().replace("-", "_")
        if name not in _FIELDS:
            logger.warning("Ignoring unknown configuration key '%s'", key)
            continue
        values[name] = _coerce(name, value)
    return values


def _env_overrides(current: Dict[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    values = dict(current)
    for env, name in ENV_KEYS.items():
        raw = environ.get(env, "")
        if raw == "":
            continue
        default = _FIELDS[name].default
        if isinstance(default, tuple):
            values[name] = tuple(raw.split(","))
            continue
        try:
            values[name] = _coerce(name, raw)
        except ConfigError as exc:
            fallback = values.get(name, default)
            logger.warning("Invalid value for '%s': %s. Using fallback: %s", env, exc, fallback)
    return values


def validate(settings: Settings) -> None:
    if settings.tls_cert or settings.tls_key:
        if not settings.tls_cert or not settings.tls_key:
            raise ConfigError(
                "if value for either 'TLS_CERT' or 'TLS_KEY' is set then the value for "
                f"the other must also be set (values are currently '{settings.tls_cert}' "
                f"and '{settings.tls_key}', respectively)"
            )
        for env, filename in (("TLS_CERT", settings.tls_cert), ("TLS_KEY", settings.tls_key)):
            if not Path(filename).exists():
                raise ConfigError(f"value of {env} is set with filename '{filename}' that does not exist")
        if settings.tls_min_vers:
            try:
                parse_tls_version(settings.tls_min_vers)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
    elif settings.tls_min_vers:
        raise ConfigError("value for 'TLS_MIN_VERS' is set but 'TLS_CERT' and 'TLS_KEY' are not")

    prefix = settings.url_prefix
    if prefix and (not prefix.startswith("/") or prefix.endswith("/")):
        raise ConfigError(
            "if value for 'URL_PREFIX' is set then the value must start with '/' and not "
            f"end with '/' (current value of '{prefix}' vs valid example of '/my/prefix')"
        )

    if not Path(settings.folder).is_dir():
        raise ConfigError(f"folder '{settings.folder}' does not exist or is not a directory")

    if settings.credentials_file and settings.basic_auth:
        raise ConfigError("'credentials-file' and 'basic-auth' cannot be used together")
    if settings.basic_auth:
        parts = settings.basic_auth.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ConfigError("'basic-auth' must use the form 'username:password'")


def load_settings(
    filename: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    check: bool = True,
) -> Settings:
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = _read_yaml(filename) if filename else {}
    values = _env_overrides(values, environ)
    settings = Settings(**values)
    if check:
        validate(settings)
    return settings
