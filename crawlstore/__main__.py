"""
CLI entry point for inspecting and resetting crawl state.

Examples:
  python -m crawlstore health --environment prod
  python -m crawlstore stats --prefix news-crawl
  python -m crawlstore clear --prefix news-crawl --yes
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError

from .config.settings import load_settings
from .core.exceptions import StorageError
from .storage import RedisStorage
from .utils.logging import setup_logger


def _load(environment: Optional[str], overrides: Dict[str, Any]) -> RedisStorage:
    settings = load_settings(environment=environment, **overrides)
    setup_logger("crawlstore", level=settings.log_level, json_logs=settings.json_logs)
    return RedisStorage.from_settings(settings)


async def health_check(environment: Optional[str], overrides: Dict[str, Any]) -> int:
    """Print store health; returns the process exit code."""
    storage = _load(environment, overrides)
    try:
        try:
            await storage.init()
        except StorageError as e:
            print(f"Health check failed: {e}")
            return 1

        health = await storage.health_check()
        print("Storage Health Check Results:")
        print(f"Overall Status: {health.status}")
        print(f"Prefix: {health.prefix}")
        print(f"Ping: {'ok' if health.ping_successful else 'failed'}")
        if health.queue_size is not None:
            print(f"Queue Size: {health.queue_size}")
        if health.error:
            print(f"Error: {health.error}")
        return 0 if health.status == "healthy" else 1
    finally:
        await storage.close()


async def show_stats(environment: Optional[str], overrides: Dict[str, Any]) -> int:
    """Print the size of the crawl state under the configured prefix."""
    storage = _load(environment, overrides)
    try:
        await storage.init()
        assert storage.namespace is not None and storage.client is not None and storage.scope is not None

        cookie_keys = await storage.scope.run(storage.client.keys(storage.namespace.cookie_pattern()))
        visited_keys = await storage.scope.run(storage.client.keys(storage.namespace.visited_pattern()))
        queue_size = await storage.queue_size()

        print(f"Crawl State for prefix '{storage.prefix}':")
        print(f"  Visited Markers: {len(visited_keys)}")
        print(f"  Cookie Jars: {len(cookie_keys)}")
        print(f"  Queued Requests: {queue_size}")
        return 0
    except (StorageError, RedisError) as e:
        print(f"Statistics collection failed: {e}")
        return 1
    finally:
        await storage.close()


async def clear_state(environment: Optional[str], overrides: Dict[str, Any]) -> int:
    """Delete all crawl state under the configured prefix."""
    storage = _load(environment, overrides)
    try:
        await storage.init()
        deleted = await storage.clear()
        print(f"Cleared {deleted} keys under prefix '{storage.prefix}'")
        return 0
    except (StorageError, RedisError) as e:
        print(f"Clear failed: {e}")
        return 1
    finally:
        await storage.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Crawl state storage maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("health", "Check store connectivity"),
        ("stats", "Show crawl state counts"),
        ("clear", "Delete all crawl state of a prefix"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--environment", "-e", help="Environment (dev/devlocal/staging/prod)")
        sub.add_argument("--prefix", help="Override key prefix")
        sub.add_argument("--backend", choices=["redis", "memory"], help="Override store backend")
        sub.add_argument(
            "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override logging level"
        )
        if name == "clear":
            sub.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides: Dict[str, Any] = {}
    if args.prefix:
        overrides["prefix"] = args.prefix
    if args.backend:
        overrides["backend"] = args.backend
    if args.log_level:
        overrides["log_level"] = args.log_level

    try:
        if args.command == "health":
            return asyncio.run(health_check(args.environment, overrides))
        elif args.command == "stats":
            return asyncio.run(show_stats(args.environment, overrides))
        elif args.command == "clear":
            if not args.yes:
                answer = input(f"Delete all crawl state under prefix '{args.prefix or 'configured'}'? [y/N] ")
                if answer.strip().lower() not in ("y", "yes"):
                    print("Aborted")
                    return 1
            return asyncio.run(clear_state(args.environment, overrides))
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 0
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        print(f"Invalid configuration: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
