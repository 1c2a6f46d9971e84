"""Command line entry point running the mathcache HTTP service."""

from __future__ import annotations

import argparse
import logging
from typing import Callable, Optional

from redis import Redis

from .app import create_app
from .config import STORE_KINDS, ConfigError, ServiceConfig
from .sequences import FACTORIAL, FIBONACCI, build_engines
from .store import InMemoryStore, RedisStore, StorageError, Store

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2
EXIT_STORAGE_UNAVAILABLE = 3


def build_stores(
    config: ServiceConfig,
) -> tuple[Store, Store, Optional[Callable[[], bool]]]:
    """Create the Fibonacci and factorial stores described by *config*.

    Returns both stores and, for Redis, a readiness probe for ``/health``.
    """

    if config.store == "memory":
        return InMemoryStore(), InMemoryStore(), None

    client = Redis.from_url(config.redis_url, decode_responses=True)
    fib_store = RedisStore(client, FIBONACCI.name)
    fact_store = RedisStore(client, FACTORIAL.name)
    if not fib_store.ping():
        raise StorageError(f"Redis at {config.redis_url} is unreachable")
    return fib_store, fact_store, fib_store.ping


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Serve cached Fibonacci numbers and factorials over HTTP",
    )
    parser.add_argument("--host", help="Interface to bind (env: MATHCACHE_HOST)")
    parser.add_argument(
        "--port", type=int, help="Port to listen on (env: MATHCACHE_PORT)"
    )
    parser.add_argument(
        "--store",
        choices=STORE_KINDS,
        help="Term store backend (env: MATHCACHE_STORE)",
    )
    parser.add_argument(
        "--redis-url", help="Redis connection URL (env: REDIS_URL)"
    )
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level for execution (env: LOG_LEVEL)",
    )
    return parser


def load_config(argv: list[str] | None = None) -> ServiceConfig:
    """Merge environment settings with command line overrides."""

    args = _build_parser().parse_args(argv)
    return ServiceConfig.from_env().with_overrides(
        host=args.host,
        port=args.port,
        store=args.store,
        redis_url=args.redis_url,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> int:
    try:
        config = load_config(argv)
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIG_ERROR

    logging.basicConfig(
        level=config.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        fib_store, fact_store, readiness = build_stores(config)
        engines = build_engines(fib_store, fact_store)
    except StorageError as exc:
        logger.error("Storage backend unavailable at startup: %s", exc)
        return EXIT_STORAGE_UNAVAILABLE

    app = create_app(engines, readiness=readiness)
    logger.info(
        "Serving on %s:%d with %s store", config.host, config.port, config.store
    )
    app.run(host=config.host, port=config.port, threaded=True)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
