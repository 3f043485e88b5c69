"""Utility for verifying that the bridge's environment configuration is intact.

The tool performs three checks:

1. It instantiates ``AppSettings`` from the given ``.env`` file, surfacing a
   missing ``SKYBRIDGE_TOKEN_SECRET`` or malformed provider settings before
   the service starts rejecting every bearer token.
2. It can record and verify a checksum for the ``.env`` file. Rotating the
   token secret invalidates every issued bearer token, so unexpected edits
   must be caught.
3. ``check`` also seals and reopens a probe token with the configured secret
   and opens the SQLite database, creating its tables if needed.

Example usages::

    python -m scripts.check_env record --env-file /opt/skybridge/.env \
        --hash-file /opt/skybridge/.env.sha256

    python -m scripts.check_env verify --env-file /opt/skybridge/.env \
        --hash-file /opt/skybridge/.env.sha256

    python -m scripts.check_env check --env-file /opt/skybridge/.env
"""

from __future__ import annotations

import argparse
import hashlib
import sqlite3
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from skybridge.clients import SQLiteRateLimitStore, SQLiteSessionStore
from skybridge.core.config import AppSettings, _load_env_file
from skybridge.models import CredentialRecord
from skybridge.services import BearerTokenCodec, TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _probe_runtime(settings: AppSettings) -> int:
    """Round-trip a probe token and open both storage tables."""
    codec = BearerTokenCodec(TokenCipherService(secret=settings.security.token_secret))
    probe = CredentialRecord(identifier="probe.invalid", secret="probe")
    if codec.decode(f"Bearer {codec.encode(probe)}") != probe:
        print("Token secret failed to round-trip a probe token.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        SQLiteSessionStore(settings.database_path)
        SQLiteRateLimitStore(settings.database_path)
    except (sqlite3.Error, OSError) as exc:
        print(
            f"Database at {settings.database_path} is not usable: {exc}",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    print(f"Token secret and database ({settings.database_path}) OK.")
    return EXIT_OK


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "A changed token secret invalidates every issued bearer token.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate bridge settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_file(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare the checksum with the baseline."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        add_env_file(subparser)
        subparser.add_argument("--hash-file", required=True, type=Path)

    check_parser = subparsers.add_parser(
        "check",
        help="Validate settings, then probe the token secret and database.",
    )
    add_env_file(check_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: _probe_runtime(settings),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
