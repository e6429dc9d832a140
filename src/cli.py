#!/usr/bin/env python3
"""CLI entry point for the Octarine adapter.

Commands:
- serve: Run the HTTP/JSON adapter transport
- apply: Apply (or delete) a local manifest file against a cluster
- operations: List supported operations
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from adapter import MeshAdapter
from cluster_client.client import ResourceError
from cluster_client.session import SessionError
from config import ConfigError, load_config
from manifest import ManifestError
from operations import CUSTOM_OP, ApplyRequest, OperationError, supported_operations

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _read_kubeconfig(path) -> bytes:
    if path is None:
        return b''
    return Path(path).expanduser().read_bytes()


def _add_cluster_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        help="Path to kubeconfig (in-cluster config if omitted)",
    )
    parser.add_argument(
        "--context",
        default="",
        help="kubeconfig context to use",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="octarine-adapter",
        description="Apply Octarine operations to a Kubernetes cluster",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to adapter.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP adapter server")
    serve.add_argument("--port", "-p", type=int, help="Port to listen on")
    serve.add_argument("--bind", "-b", help="Address to bind to")
    _add_cluster_args(serve)
    serve.add_argument(
        "--connect",
        action="store_true",
        help="Create the cluster session at startup",
    )

    apply = sub.add_parser("apply", help="Apply a manifest file")
    apply.add_argument("--file", "-f", type=Path, required=True, help="Manifest file ('-' for stdin)")
    apply.add_argument("--namespace", "-n", default="", help="Override document namespaces")
    apply.add_argument("--delete", action="store_true", help="Delete the manifest's objects")
    _add_cluster_args(apply)

    ops = sub.add_parser("operations", help="List supported operations")
    ops.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def _handle_serve(args, config) -> int:
    from server.httpd import Server

    adapter = MeshAdapter(config)
    if args.connect:
        try:
            adapter.create_mesh_instance(_read_kubeconfig(args.kubeconfig), args.context)
        except (SessionError, OSError) as e:
            logger.error("Failed to connect: %s", e)
            return 1

    server = Server(
        adapter,
        bind=args.bind or config.bind,
        port=args.port if args.port is not None else config.port,
    )
    try:
        server.start()
    except OSError as e:
        logger.error("Failed to start server: %s", e)
        return 1
    server.serve_forever()
    return 0


def _handle_apply(args, config) -> int:
    try:
        if str(args.file) == "-":
            body = sys.stdin.read()
        else:
            body = args.file.read_text(encoding="utf-8")
        kubeconfig = _read_kubeconfig(args.kubeconfig)
    except OSError as e:
        logger.error("Cannot read input: %s", e)
        return 1

    adapter = MeshAdapter(config)
    try:
        adapter.create_mesh_instance(kubeconfig, args.context)
        adapter.apply_operation(ApplyRequest(
            op_name=CUSTOM_OP,
            namespace=args.namespace,
            delete_op=args.delete,
            custom_body=body,
        ))
    except OperationError as e:
        logger.error("%s", e)
        return 1
    except (SessionError, ResourceError, ManifestError) as e:
        logger.error("%s", e)
        return 2

    print(f"{'Deleted' if args.delete else 'Applied'} {args.file}")
    return 0


def _handle_operations(args) -> int:
    ops = supported_operations()
    if args.json:
        print(json.dumps(ops, indent=2))
        return 0
    width = max(len(key) for key in ops)
    for key, description in ops.items():
        print(f"  {key:<{width}}  {description}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "operations":
        return _handle_operations(args)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    if args.command == "serve":
        return _handle_serve(args, config)
    return _handle_apply(args, config)


if __name__ == "__main__":
    sys.exit(main())
