from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from redis.asyncio import Redis

from artmarket.core import AbstractCache
from artmarket.logging import get_logger

logger = get_logger("artmarket.redis")


@dataclass
class RedisConnectInfo:
    host: str
    port: int
    password: Optional[str] = None
    ssl: bool = False

    @property
    def conn_args(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "password": self.password,
            "ssl": self.ssl,
        }

    @property
    def url(self) -> str:
        scheme = "rediss" if self.ssl else "redis"
        return f"{scheme}://{self.host}:{self.port}"


class RedisCache(AbstractCache):
    """Redis 로 구현된 캐시입니다.

    커넥션 풀은 첫 명령 실행시 생성되며 프로세스 내에서 재사용됩니다.
    """

    def __init__(self, info: RedisConnectInfo, redis: Optional[Redis] = None):
        self.info = info
        self.redis = redis or Redis(
            **info.conn_args,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    def __repr__(self) -> str:
        return f"RedisCache[{self.info.url}]"

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self.redis.set(key, value, ex=ttl)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self.redis.delete(*keys)

    async def flush(self) -> None:
        """현재 Redis DB 의 모든 키를 지웁니다. 시드 데이터를 다시 넣을 때 사용합니다."""
        logger.info("flush all cache entries at %s", self.info.url)
        await self.redis.flushdb()

    async def close(self) -> None:
        await self.redis.aclose()
