"""Pre-flight check for the PostMetric ``.env`` file.

Loads the settings the API would boot with and reports X OAuth problems
that would otherwise only surface once a user starts the link flow. The
``record``/``verify`` commands pin a SHA256 of the file, because rotating
``TOKEN_ENCRYPTION_SECRET`` without moving the old value into
``TOKEN_ENCRYPTION_PREVIOUS_SECRETS`` makes every stored token unreadable.

Usage::

    python -m scripts.check_env check --env-file .env
    python -m scripts.check_env record --hash-file .env.sha256
    python -m scripts.check_env verify --hash-file .env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import hmac
import sys
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import ValidationError

from postmetric.core.config import AppSettings, _load_env_file
from postmetric.services.token_cipher import TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


@dataclass
class EnvReport:
    """Problems block startup; warnings are printed and ignored."""

    problems: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


def inspect_settings(settings: AppSettings) -> EnvReport:
    report = EnvReport()
    x = settings.x

    redirect_uri = str(x.redirect_uri) if x.redirect_uri else None
    allowed = x.allowed_callback_urls
    for url in allowed:
        if urlsplit(url).scheme not in ("http", "https"):
            report.problems.append(f"X_ALLOWED_CALLBACK_URLS entry {url!r} is not an http(s) URL.")
    if redirect_uri and allowed and redirect_uri not in allowed:
        report.problems.append(
            f"X_REDIRECT_URI {redirect_uri} is not listed in X_ALLOWED_CALLBACK_URLS."
        )
    if not redirect_uri and not allowed:
        report.warnings.append(
            "neither X_REDIRECT_URI nor X_ALLOWED_CALLBACK_URLS is set; "
            "clients must always pass callback_url."
        )

    if settings.oauth.pending_ttl_seconds < 0:
        report.problems.append("OAUTH_PENDING_TTL must be 0 (disabled) or positive.")
    if x.refresh_margin_seconds < 0:
        report.problems.append("X_REFRESH_MARGIN_SECONDS must not be negative.")

    security = settings.security
    if not security.token_encryption_secret:
        report.warnings.append(
            "TOKEN_ENCRYPTION_SECRET is unset; stored tokens are keyed on X_CLIENT_SECRET."
        )
    if security.token_encryption_secret in security.previous_token_encryption_secrets:
        report.warnings.append(
            "TOKEN_ENCRYPTION_PREVIOUS_SECRETS still lists the current secret."
        )
    try:
        TokenCipherService(
            secret=security.token_encryption_secret or x.client_secret,
            previous_secrets=security.previous_token_encryption_secrets,
        )
    except ValueError as exc:
        report.problems.append(f"Token cipher cannot be built: {exc}")
    return report


def _digest(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _record(env_file: Path, hash_file: Path) -> int:
    digest = _digest(env_file)
    hash_file.write_text(f"{digest}\n", encoding="utf-8")
    print(f"Pinned {env_file} at sha256 {digest} in {hash_file}")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"No pinned checksum at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    pinned = hash_file.read_text(encoding="utf-8").strip()
    current = _digest(env_file)
    if hmac.compare_digest(pinned, current):
        print(f"{env_file} matches the pinned checksum.")
        return EXIT_OK

    print(
        f"{env_file} changed since it was pinned (pinned {pinned}, now {current}). "
        "If TOKEN_ENCRYPTION_SECRET rotated, keep the old value in "
        "TOKEN_ENCRYPTION_PREVIOUS_SECRETS before restarting the API.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check PostMetric X OAuth settings and pin the .env checksum."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Only inspect the settings.")
    check.set_defaults(action=lambda env_file, args: EXIT_OK)
    record = commands.add_parser("record", help="Inspect settings, then pin the checksum.")
    record.set_defaults(action=lambda env_file, args: _record(env_file, args.hash_file))
    verify = commands.add_parser("verify", help="Inspect settings, then compare the checksum.")
    verify.set_defaults(action=lambda env_file, args: _verify(env_file, args.hash_file))

    for command in (check, record, verify):
        command.add_argument("--env-file", type=Path, default=Path(".env"))
    for command in (record, verify):
        command.add_argument("--hash-file", type=Path, required=True)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.is_file():
        print(f"{env_file} not found.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _load_env_file(str(env_file))
    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(f"Settings failed validation:\n{exc.json(indent=2)}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    report = inspect_settings(settings)
    for warning in report.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if not report.ok:
        for problem in report.problems:
            print(f"Error: {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    return args.action(env_file, args)


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
