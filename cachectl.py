#!/usr/bin/env python3
"""
Inspect and maintain a diskstash cache directory.

USAGE:
    python3 cachectl.py CONFIG COMMAND [ARGS]

SYNOPSIS:
    Reads a YAML configuration file describing the cache directory and its
    limits, waits for the existing files to be indexed, then runs a single
    maintenance command.

COMMANDS:
    stats                 print size/count totals and limits
    get KEY               write the payload stored under KEY to stdout
    put KEY FILE [--ttl]  store the contents of FILE under KEY
    remove KEY            delete the entry for KEY
    clear                 delete every cached file
    purge                 delete expired entries
"""

import argparse
import logging
import sys
from pathlib import Path

from diskstash.config import ConfigError, load_config
from diskstash.exceptions import DiskStashError
from diskstash.store import CacheStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    logger.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cachectl.py",
        description="Inspect and maintain a diskstash cache directory.",
    )
    parser.add_argument(
        "config",
        type=str,
        help="Path to the YAML configuration file.",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("stats", help="Print cache totals and limits.")

    get_cmd = commands.add_parser("get", help="Write a cached payload to stdout.")
    get_cmd.add_argument("key")

    put_cmd = commands.add_parser("put", help="Store a file's contents under a key.")
    put_cmd.add_argument("key")
    put_cmd.add_argument("file", type=Path)
    put_cmd.add_argument("--ttl", type=int, default=None, help="Time-to-live in seconds.")

    remove_cmd = commands.add_parser("remove", help="Delete a cached entry.")
    remove_cmd.add_argument("key")

    commands.add_parser("clear", help="Delete every cached file.")
    commands.add_parser("purge", help="Delete expired entries.")
    return parser


def print_stats(store: CacheStore) -> None:
    """Print cache summary."""
    stats = store.stats()
    count_limit = stats.count_limit if stats.count_limit is not None else "unbounded"

    print("=" * 80)
    print("CACHE SUMMARY")
    print("=" * 80)
    print(f"Directory: {stats.cache_dir}")
    print(f"Entries: {stats.total_count} (limit: {count_limit})")
    print(f"Size: {stats.total_size} bytes (limit: {stats.size_limit} bytes)")
    print("=" * 80)


def run_command(store: CacheStore, args: argparse.Namespace) -> int:
    """
    Run one maintenance command against a ready store.

    Returns:
        Process exit code
    """
    if args.command == "stats":
        print_stats(store)
    elif args.command == "get":
        value = store.get(args.key)
        if value is None:
            logger.error(f"No live entry for key: {args.key}")
            return 1
        sys.stdout.buffer.write(value)
        sys.stdout.buffer.flush()
    elif args.command == "put":
        try:
            value = args.file.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read {args.file}: {e}")
            return 1
        store.put(args.key, value, ttl_seconds=args.ttl)
        logger.info(f"Stored {len(value)} bytes under {args.key}")
    elif args.command == "remove":
        if store.remove(args.key):
            logger.info(f"Removed {args.key}")
        else:
            logger.info(f"No file for key: {args.key}")
    elif args.command == "clear":
        store.clear()
        logger.info(f"Cleared {store.cache_dir}")
    elif args.command == "purge":
        removed = store.cleanup_expired()
        logger.info(f"Purged {removed} expired entries")
    return 0


def main(argv=None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
        logger.debug(f"Loaded configuration version {config.version}")
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(config.cache.log_level)

    try:
        store = CacheStore.from_settings(config.cache)
        store.wait_until_ready()
        exit_code = run_command(store, args)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        sys.exit(130)
    except DiskStashError as e:
        logger.error(f"Cache error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
