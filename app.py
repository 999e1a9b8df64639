#!/usr/bin/env python3
"""
Main entry point for the link gate service.

Concurrency: requests are handled concurrently via async I/O (FastAPI +
asyncpg connection pool + redis.asyncio + httpx for geolocation). Click
recording runs in background tasks that are drained on shutdown. Set
WORKERS > 1 for multi-process scaling (each worker has its own pool and
in-process caches).

Usage:
    python app.py

Environment variables:
    DATABASE_BACKEND - 'postgres' (default) or 'memory'
    DATABASE_URL - PostgreSQL connection URL
    CREATE_TABLES - Set to 1 to create tables on startup
    REDIS_URL - Redis connection URL (optional)
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
    SECRET_KEY - Key signing human-verification challenges
    API_KEY - Required X-API-Key for management endpoints (optional)
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import load_config
from linkgate.common.logging_config import setup_logging
from linkgate.database import InMemoryLinkStore, PostgresLinkStore, RedisCache
from linkgate.geolocation import GeoLocator
from linkgate.service import LinkGateService
from web_app import create_app


# Global instances for graceful shutdown
service_instance = None


def build_store(config, logger):
    if config.database_backend == "memory":
        logger.warning("Using the in-memory link store; data is lost on restart")
        return InMemoryLinkStore(logger=logger)

    if config.database_backend != "postgres":
        raise ValueError(f"Unknown database backend: {config.database_backend}")

    return PostgresLinkStore(
        db_config=config.database_url,
        pool_max_size=config.db_pool_max_size,
        create_tables=config.create_tables,
        logger=logger,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global service_instance

    config = app.state.config
    logger = app.state.logger

    logger.info("Starting link gate service...")

    store = build_store(config, logger)

    if config.redis_url:
        logger.info("Connecting to Redis")
        cache_instance = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache_instance.connect()
    else:
        logger.info("Redis caching disabled")
        cache_instance = None

    locator = GeoLocator.from_config(config, logger=logger)

    service_instance = LinkGateService.from_config(
        config,
        store=store,
        locator=locator,
        cache=cache_instance,
        logger=logger,
    )
    app.state.service = service_instance

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down link gate service...")

    if service_instance:
        await service_instance.close()

    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Link Gate Service")
    logger.info(
        f"Configuration: {config.model_dump(exclude={'secret_key', 'api_key', 'database_url', 'redis_url'})}"
    )
    if config.secret_key == "change-me":
        logger.warning("SECRET_KEY is not set; challenge tokens use the default key")

    app = create_app(service=None, config=config)
    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
