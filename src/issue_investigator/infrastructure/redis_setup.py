"""Redis connection factory for the Redis-backed issue store.

Supports a standalone server (development) and Redis Sentinel (HA
deployments). Connection parameters come from ``REDIS_*`` environment
variables unless passed explicitly.
"""

import logging
import os
from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.asyncio.sentinel import Sentinel

from issue_investigator.utils import service_startup_retry

logger = logging.getLogger(__name__)


def parse_sentinel_hosts(hosts_str: str) -> List[Tuple[str, int]]:
    """Parse ``"host1:26379,host2"`` into ``[("host1", 26379), ("host2", 26379)]``."""
    sentinels = []

    for host_port in hosts_str.split(","):
        host_port = host_port.strip()
        if not host_port:
            continue

        if ":" in host_port:
            host, port_str = host_port.rsplit(":", 1)
            sentinels.append((host, int(port_str)))
        else:
            sentinels.append((host_port, 26379))

    return sentinels


@service_startup_retry
async def _verify_redis_connection(client: Redis) -> None:
    await client.ping()
    logger.info("Redis connection verified")


async def get_redis_client(
    mode: Optional[str] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    db: Optional[int] = None,
    password: Optional[str] = None,
    sentinel_hosts: Optional[str] = None,
    master_set: Optional[str] = None,
) -> Redis:
    """Create and verify an async Redis client.

    Args:
        mode: "standalone" or "sentinel" (default: REDIS_MODE, then standalone)
        host: Redis host (default: REDIS_HOST, then localhost)
        port: Redis port (default: REDIS_PORT, then 6379)
        db: Database index (default: REDIS_DB, then 0)
        password: Redis password (default: REDIS_PASSWORD)
        sentinel_hosts: Comma-separated sentinel hosts (default: REDIS_SENTINEL_HOSTS)
        master_set: Sentinel master name (default: REDIS_MASTER_SET, then mymaster)

    Returns:
        Client with ``decode_responses=True``

    Raises:
        ValueError: If sentinel mode is selected without sentinel hosts
        ConnectionError: If the server cannot be reached after retries
    """
    mode = (mode or os.getenv("REDIS_MODE", "standalone")).lower()
    db_index = db if db is not None else int(os.getenv("REDIS_DB", "0"))
    password = password or os.getenv("REDIS_PASSWORD")

    if mode == "sentinel":
        sentinel_hosts_str = sentinel_hosts or os.getenv("REDIS_SENTINEL_HOSTS", "")
        master_name = master_set or os.getenv("REDIS_MASTER_SET", "mymaster")
        sentinels = parse_sentinel_hosts(sentinel_hosts_str)
        if not sentinels:
            raise ValueError(
                "REDIS_SENTINEL_HOSTS is required for Sentinel mode"
            )

        logger.info(f"Connecting to Redis Sentinel: master={master_name}, sentinels={sentinels}")
        sentinel_client = Sentinel(
            sentinels,
            sentinel_kwargs={"password": password} if password else {},
        )
        redis_client = sentinel_client.master_for(
            master_name,
            db=db_index,
            password=password,
            decode_responses=True,
        )
    else:
        redis_host = host or os.getenv("REDIS_HOST", "localhost")
        redis_port = port if port is not None else int(os.getenv("REDIS_PORT", "6379"))

        logger.info(f"Connecting to standalone Redis: {redis_host}:{redis_port}/{db_index}")
        redis_client = Redis(
            host=redis_host,
            port=redis_port,
            db=db_index,
            password=password,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    await _verify_redis_connection(redis_client)
    return redis_client
