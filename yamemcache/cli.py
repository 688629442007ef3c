#!/usr/bin/env python3
"""
yamemcache Command Line Tool

Runs one memcached operation and exits.

Usage:
    yamemcache version
    yamemcache get mykey
    yamemcache get-many key1 key2 key3
    yamemcache set mykey "some value" --flags 42 --ttl 60
    yamemcache delete mykey
    yamemcache --host 10.0.0.5 --port 11212 --debug version

Exit status:
    0  success
    1  key not found (get, delete)
    2  protocol error (bad key, bad query, bad server response)
    3  connection or transport error

Environment Variables:
    YAMEMCACHE_HOST             - Server address
    YAMEMCACHE_PORT             - Server port
    YAMEMCACHE_CONNECT_TIMEOUT  - Connect timeout in seconds
    YAMEMCACHE_DEBUG            - Enable debug logging (true/false)
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .client import Client
from .config.settings import settings
from .protocol.commands import U32_MAX, Value
from .protocol.errors import MemcacheError

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_PROTOCOL_ERROR = 2
EXIT_TRANSPORT_ERROR = 3

logger = logging.getLogger(__name__)


def u32(text: str) -> int:
    """argparse type for an unsigned 32-bit integer."""
    try:
        number = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if not 0 <= number <= U32_MAX:
        raise argparse.ArgumentTypeError(f"must be between 0 and {U32_MAX}: {number}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="yamemcache",
        description="Run a single memcached meta protocol operation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--host", type=str, default=settings.HOST, help="Server address")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Server port")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.CONNECT_TIMEOUT,
        help="Connect timeout in seconds",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("version", help="Print the server version")

    get = commands.add_parser("get", help="Print the value stored under a key")
    get.add_argument("key")

    get_many = commands.add_parser("get-many", help="Print every key found")
    get_many.add_argument("keys", nargs="+")

    store = commands.add_parser("set", help="Store a value")
    store.add_argument("key")
    store.add_argument("value")
    store.add_argument("--flags", type=u32, default=0, help="Client flags")
    store.add_argument("--ttl", type=u32, default=None, help="Seconds to live")

    delete = commands.add_parser("delete", help="Delete a key")
    delete.add_argument("key")

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def _show(key: str, value: Value) -> None:
    print(f"{key} flags={value.flags} {value.payload.decode('utf-8', errors='replace')}")


async def execute(client: Client, args: argparse.Namespace) -> int:
    """Run the selected operation on a connected client and return the exit status."""
    if args.command == "version":
        print(await client.version())
        return EXIT_OK

    if args.command == "get":
        value = await client.get(args.key)
        if value is None:
            print(f"{args.key}: not found")
            return EXIT_NOT_FOUND
        _show(args.key, value)
        return EXIT_OK

    if args.command == "get-many":
        for key, value in await client.get_many(args.keys):
            _show(key, value)
        return EXIT_OK

    if args.command == "set":
        value = Value(payload=args.value.encode("utf-8"), flags=args.flags, ttl=args.ttl)
        await client.set(args.key, value)
        print("stored")
        return EXIT_OK

    if args.command == "delete":
        if await client.delete(args.key):
            print("deleted")
            return EXIT_OK
        print(f"{args.key}: not found")
        return EXIT_NOT_FOUND

    raise ValueError(f"unknown command {args.command}")


async def run(args: argparse.Namespace) -> int:
    """Connect, run one operation, close."""
    try:
        async with await Client.connect(args.host, args.port, args.timeout) as client:
            return await execute(client, args)
    except MemcacheError as exc:
        logger.error(f"{args.command} failed: {exc.kind.value}: {exc}")
        return EXIT_PROTOCOL_ERROR
    except (
            OSError,
            asyncio.TimeoutError,
            asyncio.IncompleteReadError,
            asyncio.LimitOverrunError,
    ) as exc:
        logger.error(f"{args.command} failed: transport error: {exc!r}")
        return EXIT_TRANSPORT_ERROR


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the command line tool."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
