"""
Redis-backed frontier store.

Useful when a crawl's visited set or page list should not live in process
memory. All keys for one run share a ``<prefix>:<run_id>`` namespace.
"""

import json
import logging
import uuid
from typing import Dict, List, Optional, Any
import redis.asyncio as redis

from ..crawler.frontier import FrontierStore, InMemoryFrontierStore
from ..crawler.parser import Page
from ..crawler.urls import normalize_url
from ..utils.config import Config


def _decode(value) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value


class RedisFrontierStore(FrontierStore):
    """
    Frontier store on Redis.

    ``SADD`` returns the number of members actually added, which makes it an
    atomic check-and-set for ``mark_visited``.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "crawler",
                 run_id: Optional[str] = None, keep_state: bool = False,
                 owns_client: bool = False):
        self.redis_client = redis_client
        self.run_id = run_id or uuid.uuid4().hex
        self.keep_state = keep_state
        self.owns_client = owns_client
        self.logger = logging.getLogger(__name__)

        namespace = f"{key_prefix}:{self.run_id}"
        self.visited_key = f"{namespace}:visited"
        self.pages_key = f"{namespace}:pages"
        self.domain_counts_key = f"{namespace}:domain_counts"

    async def is_visited(self, url: str) -> bool:
        return bool(await self.redis_client.sismember(self.visited_key, normalize_url(url)))

    async def mark_visited(self, url: str) -> bool:
        added = await self.redis_client.sadd(self.visited_key, normalize_url(url))
        return added == 1

    async def domain_page_count(self, host: str) -> int:
        value = await self.redis_client.hget(self.domain_counts_key, host.lower())
        return int(value) if value is not None else 0

    async def store_page(self, page: Page):
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.hincrby(self.domain_counts_key, page.host, 1)
            pipe.rpush(self.pages_key, json.dumps(page.to_dict()))
            await pipe.execute()
        self.logger.debug(f"Stored page {page.url} in {self.pages_key}")

    async def get_pages(self) -> List[Page]:
        items = await self.redis_client.lrange(self.pages_key, 0, -1)
        return [Page.from_dict(json.loads(_decode(item))) for item in items]

    async def get_stats(self) -> Dict[str, Any]:
        return {
            'visited_urls': await self.redis_client.scard(self.visited_key),
            'pages_stored': await self.redis_client.llen(self.pages_key),
            'domains': await self.redis_client.hlen(self.domain_counts_key)
        }

    async def close(self):
        """Delete this run's keys unless the store was told to keep them."""
        if self.keep_state:
            self.logger.info(f"Keeping crawl state under run id {self.run_id}")
        else:
            await self.redis_client.delete(self.visited_key, self.pages_key, self.domain_counts_key)
            self.logger.debug(f"Removed crawl state for run {self.run_id}")

        if self.owns_client:
            await self.redis_client.aclose()


def create_redis_client(config: Config) -> redis.Redis:
    """Build a Redis client from the ``redis`` configuration section."""
    return redis.Redis(
        host=config.redis.host,
        port=config.redis.port,
        db=config.redis.db,
        password=config.redis.password,
        decode_responses=False
    )


def create_frontier_store(config: Config,
                          redis_client: Optional[redis.Redis] = None) -> FrontierStore:
    """Create the frontier store selected by ``storage.backend``."""
    backend = config.storage.backend
    if backend == 'memory':
        return InMemoryFrontierStore()

    if backend == 'redis':
        owns_client = redis_client is None
        if owns_client:
            redis_client = create_redis_client(config)
        return RedisFrontierStore(
            redis_client,
            key_prefix=config.redis.key_prefix,
            keep_state=config.redis.keep_state,
            owns_client=owns_client
        )

    raise ValueError(f"Unknown storage backend: {backend!r}")
