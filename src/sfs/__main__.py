"""static-file-server entrypoint.

Run with:
  python -m sfs [-c config.yml] [serve]
  python -m sfs add|update <username> [password]
  python -m sfs remove <username>
  python -m sfs list
"""

from __future__ import annotations

import argparse
import logging
import sys
from getpass import getpass
from typing import List, Optional

from sfs import __version__
from sfs.app import create_app
from sfs.auth.credentials import CredentialStore
from sfs.auth.errors import CredentialError, EmptyPasswordError
from sfs.config import ConfigError, Settings, load_settings
from sfs.listener import ListenerError, select_listener
from sfs.pipeline import build_pipeline

logger = logging.getLogger("sfs")


def confirm_password() -> str:
    pw1 = getpass("Password: ")
    if not pw1:
        raise EmptyPasswordError("Password vacío")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise EmptyPasswordError("Passwords no coinciden")
    return pw1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="static-file-server",
        description="Serve a folder over HTTP(S) behind referrer, access-key and basic-auth guards.",
    )
    parser.add_argument("-c", "--config", default="", help="YAML configuration file")
    parser.add_argument("-v", "--version", action="store_true", help="print the version and exit")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="serve files (default)")
    sub.add_parser("help", help="show this help")
    sub.add_parser("version", help="print the version")

    for name in ("add", "update"):
        p = sub.add_parser(name, help=f"{name} a user in the credentials file")
        p.add_argument("username")
        p.add_argument("password", nargs="?", default="")
        p.add_argument("--file", default="", help="credentials file (default: credentials-file setting)")

    p = sub.add_parser("remove", help="remove a user from the credentials file")
    p.add_argument("username")
    p.add_argument("--file", default="")

    p = sub.add_parser("list", help="list users in the credentials file")
    p.add_argument("--file", default="")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_store(settings: Settings) -> Optional[CredentialStore]:
    if settings.credentials_file:
        return CredentialStore.load(settings.credentials_file)
    if settings.basic_auth:
        return CredentialStore.from_shared_secret(settings.basic_auth)
    return None


def run_server(settings: Settings) -> None:
    if settings.debug:
        logger.debug("Using the following configuration:\n%s", settings.summary())

    policy = settings.policy()
    store = load_store(settings)
    app = create_app(build_pipeline(policy, settings.folder, store))
    listener = select_listener(settings.tls_cert, settings.tls_key, policy.min_tls_version)
    listener.serve(app, settings.host, settings.port, log_level="debug" if settings.debug else "info")


def _credentials_path(args: argparse.Namespace) -> str:
    if args.file:
        return args.file
    path = load_settings(args.config or None, check=False).credentials_file
    if not path:
        raise ConfigError("No credentials file: use --file or set 'credentials-file' / CREDENTIALS_FILE")
    return path


def run_credentials(args: argparse.Namespace) -> None:
    path = _credentials_path(args)
    if args.command == "add":
        store = CredentialStore.load_or_create(path)
        store.add(args.username, args.password, prompt=confirm_password)
        print(f"OK -> {path}")
    elif args.command == "update":
        store = CredentialStore.load(path)
        store.update(args.username, args.password, prompt=confirm_password)
        print(f"OK -> {path}")
    elif args.command == "remove":
        store = CredentialStore.load(path)
        store.remove(args.username)
        print(f"OK -> {path}")
    else:
        store = CredentialStore.load(path)
        for username in store.list_users():
            print(username)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "help":
        parser.print_help()
        return 0
    if args.version or args.command == "version":
        print(f"static-file-server v{__version__}")
        return 0

    try:
        if args.command in ("add", "update", "remove", "list"):
            configure_logging(False)
            run_credentials(args)
        else:
            settings = load_settings(args.config or None)
            configure_logging(settings.debug)
            run_server(settings)
    except (ConfigError, CredentialError, ListenerError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
