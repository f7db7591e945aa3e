"""
Storage backends for crawl state.
"""

from .redis_store import RedisFrontierStore, create_frontier_store, create_redis_client

__all__ = ['RedisFrontierStore', 'create_frontier_store', 'create_redis_client']
