"""
NodeIdent: Command Line

Usage:
    nodeident-gen <key-output-path> <cert-output-path> [--algorithm ecdsa-p256]
    nodeident-id <cert-input-path>
    nodeident-compat <key-path> <cert-path> [--deriver go run ./load-node-id {key} {cert}]

or, equivalently, ``python -m nodeident.cli {gen,id,compat} ...``.

Stdout carries only the node ID; logs go to stderr. Exit status is 0 on
success and 1 on any NodeIdent error.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

import structlog

from nodeident.config import LoggingConfig, NodeIdentConfig, load_config
from nodeident.errors import NodeIdentError
from nodeident.harness import CompatibilityHarness
from nodeident.systems.credentials.service import CredentialService
from nodeident.systems.identity.node_id import NodeIdentityDeriver
from nodeident.telemetry.logging import setup_logging

logger = structlog.get_logger("nodeident.cli")

EXIT_OK = 0
EXIT_FAILURE = 1


# ─── Parsers ──────────────────────────────────────────────────────


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", default=None,
        help="YAML config file (env vars with NODEIDENT_ prefix override it)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Override logging level (default: from config, INFO)",
    )


def _add_gen_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("key_path", help="Where to write the PEM private key")
    parser.add_argument("cert_path", help="Where to write the PEM certificate")
    parser.add_argument(
        "--algorithm", default=None,
        help="Key algorithm: ecdsa-p256 | ed25519 | rsa-2048 (default: from config)",
    )
    parser.add_argument(
        "--common-name", default=None,
        help="Certificate subject common name",
    )
    _add_common(parser)


def _add_id_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("cert_path", help="PEM certificate to derive the node ID from")
    _add_common(parser)


def _add_compat_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("key_path", help="Key path owned by the harness")
    parser.add_argument("cert_path", help="Certificate path owned by the harness")
    parser.add_argument(
        "--deriver", nargs=argparse.REMAINDER, default=None,
        help="External deriver command; '{key}' and '{cert}' are substituted",
    )
    _add_common(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodeident",
        description="Generate staking credentials and derive node IDs",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    _add_gen_args(sub.add_parser("gen", help="Generate a key and self-signed certificate"))
    _add_id_args(sub.add_parser("id", help="Print the node ID of a certificate"))
    _add_compat_args(sub.add_parser("compat", help="Check a second deriver agrees"))
    return parser


# ─── Commands ─────────────────────────────────────────────────────


def _configure(args: argparse.Namespace) -> NodeIdentConfig:
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config.logging)
    return config


def cmd_gen(args: argparse.Namespace) -> int:
    config = _configure(args)
    if args.common_name:
        config.certificate.common_name = args.common_name
    service = CredentialService(config.certificate)
    node_id = service.generate(args.key_path, args.cert_path, args.algorithm)
    print(node_id.textual)
    return EXIT_OK


def cmd_id(args: argparse.Namespace) -> int:
    _configure(args)
    node_id = NodeIdentityDeriver().derive_from_file(args.cert_path)
    print(node_id.textual)
    return EXIT_OK


def cmd_compat(args: argparse.Namespace) -> int:
    config = _configure(args)
    if args.deriver:
        config.harness.deriver_command = list(args.deriver)
    harness = CompatibilityHarness(config.harness, CredentialService(config.certificate))
    report = harness.run(args.key_path, args.cert_path)
    print(report.local)
    return EXIT_OK


_COMMANDS = {"gen": cmd_gen, "id": cmd_id, "compat": cmd_compat}


def _dispatch(command: str, args: argparse.Namespace) -> int:
    # Defaults until the config is loaded, so early failures still log to stderr.
    setup_logging(LoggingConfig())
    try:
        return _COMMANDS[command](args)
    except NodeIdentError as exc:
        logger.error(
            "command_failed", command=command, error_type=type(exc).__name__, error=str(exc),
        )
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


# ─── Entry Points ─────────────────────────────────────────────────


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return _dispatch(args.command, args)


def _single(command: str, add_args, description: str, argv: Sequence[str] | None) -> int:
    parser = argparse.ArgumentParser(prog=f"nodeident-{command}", description=description)
    add_args(parser)
    return _dispatch(command, parser.parse_args(argv))


def gen_main(argv: Sequence[str] | None = None) -> int:
    return _single("gen", _add_gen_args, "Generate a key and self-signed certificate", argv)


def id_main(argv: Sequence[str] | None = None) -> int:
    return _single("id", _add_id_args, "Print the node ID of a certificate", argv)


def compat_main(argv: Sequence[str] | None = None) -> int:
    return _single("compat", _add_compat_args, "Check a second deriver agrees", argv)


if __name__ == "__main__":
    sys.exit(main())
