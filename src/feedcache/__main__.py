"""
feedcache — Command Line Interface

    python -m feedcache posts [--owner N] [--pages N] [--search Q] [--refresh]
    python -m feedcache users [--refresh]
    python -m feedcache clear

Output is JSON on stdout; logs go to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any

from .config import load_config
from .errors import FeedCacheError
from .logging_setup import configure_logging
from .runtime import FeedCacheRuntime

logger = logging.getLogger("feedcache.cli")


async def _posts(runtime: FeedCacheRuntime, args: Any) -> dict[str, Any]:
    feed = runtime.posts_feed(owner=args.owner)
    feed.set_search_query(args.search or "")

    if args.refresh:
        feed.refetch()
    else:
        feed.load()
    await feed.wait()

    while feed.error is None and feed.has_more and len(feed.controller.pages) < args.pages:
        feed.load_more()
        await feed.wait()

    if feed.error is not None:
        raise feed.error

    return {
        "cache_key": feed.controller.cache_key,
        "pages": len(feed.controller.pages),
        "has_more": feed.has_more,
        "total_loaded": len(feed.server_items),
        "match_count": feed.match_count,
        "posts": feed.posts,
    }


async def _users(runtime: FeedCacheRuntime, args: Any) -> dict[str, Any]:
    users = runtime.users()
    if args.refresh:
        users.refetch()
    else:
        users.load()
    await users.wait()

    if users.error is not None:
        raise users.error

    return {"users": [user.model_dump() for user in users.users]}


async def _async_main(argv: list[str] | None = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(prog="feedcache", description="Cached resource API client")
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("posts", help="Load the posts feed")
    p.add_argument("--owner", type=int, default=None, help="Only posts of this user id")
    p.add_argument("--pages", type=int, default=1, help="Number of pages to accumulate")
    p.add_argument("--search", type=str, default=None, help="Client-side title/body search")
    p.add_argument("--refresh", action="store_true", help="Ignore cached pages")

    u = sub.add_parser("users", help="Load the user list")
    u.add_argument("--refresh", action="store_true", help="Ignore the cached list")

    sub.add_parser("clear", help="Remove every cached entry of the configured namespace")

    args = parser.parse_args(argv)

    config = load_config(env_file=args.env_file)
    configure_logging(config.log_level, json_output=config.json_logs)

    async with FeedCacheRuntime(config=config) as runtime:
        try:
            if args.cmd == "posts":
                result = await _posts(runtime, args)
            elif args.cmd == "users":
                result = await _users(runtime, args)
            else:
                runtime.store.clear()
                result = {"cleared": config.cache.namespace}
        except FeedCacheError as e:
            print(json.dumps(e.to_dict(), indent=2, default=str))
            return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Synchronous wrapper for async main function."""
    try:
        code = asyncio.run(_async_main(argv))
    except FeedCacheError as e:
        logger.error(f"feedcache failed: {e.message}", extra={"error": e.to_dict()})
        raise SystemExit(1) from e
    raise SystemExit(code)


if __name__ == "__main__":
    main(sys.argv[1:])
