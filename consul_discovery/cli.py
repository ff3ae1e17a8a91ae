"""Argument parsing, configuration loading, and one-shot discovery commands."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from .config import AppConfig, load_config
from .consul.client import ConsulClient
from .consul.models import ConsistencyMode, QueryParams
from .discovery.client import ConsulDiscoveryClient
from .discovery.reactive import ConsulReactiveDiscoveryClient
from .exceptions import ConfigError, DiscoveryError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

COMMANDS = ("services", "instances", "all-instances", "probe")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="consul-discovery",
        description="Resolve services registered in Consul to healthy endpoints",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--reactive",
        action="store_true",
        help="Use the async client (services and instances only)",
    )
    parser.add_argument(
        "--consistency",
        choices=[mode.value for mode in ConsistencyMode],
        help="Override the consistency mode for a single instances lookup",
    )
    parser.add_argument(
        "--dc",
        help="Query this datacenter for a single instances lookup",
    )
    parser.add_argument("command", nargs="?", help="One of: " + ", ".join(COMMANDS))
    parser.add_argument("service", nargs="?", help="Service name for the instances command")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    if args.command not in COMMANDS:
        parser.print_usage(sys.stderr)
        return 2
    if args.command == "instances" and not args.service:
        print("The instances command requires a service name", file=sys.stderr)
        return 2
    if args.reactive and args.command not in ("services", "instances"):
        print(f"--reactive does not support '{args.command}'", file=sys.stderr)
        return 2
    if args.reactive and (args.consistency or args.dc):
        print("--consistency and --dc are not supported with --reactive", file=sys.stderr)
        return 2

    gateway = ConsulClient(config.consul)
    try:
        if args.reactive:
            result = asyncio.run(_run_reactive(gateway, config, args))
        else:
            result = _run(gateway, config, args)
    except DiscoveryError as exc:
        logger.error("Discovery failed: %s", exc, extra={"command": args.command})
        return 1

    if result is not None:
        print(json.dumps(result, indent=2))
    return 0


def _run(gateway: ConsulClient, config: AppConfig, args: argparse.Namespace) -> Any:
    client = ConsulDiscoveryClient(gateway, config.discovery)

    if args.command == "services":
        return client.get_services()
    if args.command == "instances":
        query_params = None
        if args.consistency or args.dc:
            mode = args.consistency or config.discovery.consistency_mode
            query_params = QueryParams(ConsistencyMode(mode), datacenter=args.dc)
        return [inst.to_dict() for inst in client.get_instances(args.service, query_params)]
    if args.command == "all-instances":
        return [inst.to_dict() for inst in client.get_all_instances()]

    client.probe()
    logger.info("Consul agent is reachable")
    return None


async def _run_reactive(gateway: ConsulClient, config: AppConfig, args: argparse.Namespace) -> Any:
    client = ConsulReactiveDiscoveryClient(gateway, config.discovery)
    try:
        if args.command == "services":
            return [name async for name in client.get_services()]
        return [inst.to_dict() async for inst in client.get_instances(args.service)]
    finally:
        client.close()
