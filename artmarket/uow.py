"""UnitOfWork 패턴 모듈.

Cosmos DB 와 Redis 를 이용한 기본 구현체를 제공합니다.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Type

from azure.cosmos.aio import CosmosClient

from artmarket.core import AbstractCache, AbstractUnitOfWork, EntityReposMap
from artmarket.domain import ArtPiece, User
from artmarket.logging import get_logger
from artmarket.redis import RedisCache, RedisConnectInfo
from artmarket.repo import CosmosRepository

logger = get_logger("artmarket.uow")


@dataclass
class CosmosConnectInfo:
    endpoint: str
    key: str
    database_id: str


class CosmosUnitOfWork(AbstractUnitOfWork):
    """Cosmos DB 컨테이너와 Redis 캐시를 묶은 UnitOfWork 구현입니다.

    클라이언트는 :meth:`open` 이 처음 호출될 때 한번만 생성되며, 동시에 여러번
    호출되어도 락으로 보호됩니다.
    """

    def __init__(
        self,
        cosmos_info: CosmosConnectInfo,
        redis_info: RedisConnectInfo,
        entity_classes: Sequence[Type[Any]] = (User, ArtPiece),
        cache: Optional[AbstractCache] = None,
    ) -> None:
        self.cosmos_info = cosmos_info
        self.redis_info = redis_info
        self.entity_classes = entity_classes
        self.repos: EntityReposMap = {}
        self._cache = cache
        self._client: Optional[CosmosClient] = None
        self._lock = asyncio.Lock()

    def __repr__(self):
        return f"CosmosUnitOfWork[{self.cosmos_info.endpoint}/{self.cosmos_info.database_id}]"

    @property
    def is_open(self) -> bool:
        return self._client is not None

    @property
    def cache(self) -> AbstractCache:  # type: ignore
        if not self._cache:
            self._cache = RedisCache(self.redis_info)
        return self._cache

    async def open(self) -> CosmosUnitOfWork:
        """Cosmos 클라이언트를 생성하고 엔티티별 레포지터리를 초기화합니다."""
        async with self._lock:
            if self._client:
                return self

            logger.info("connect to cosmos db: %r", self)
            client = CosmosClient(self.cosmos_info.endpoint, credential=self.cosmos_info.key)
            database = client.get_database_client(self.cosmos_info.database_id)
            for entity_class in self.entity_classes:
                container = database.get_container_client(entity_class.Meta.collection)
                self.repos[entity_class] = CosmosRepository(entity_class, container)
            self._client = client
        return self

    async def close(self) -> None:
        """클라이언트 연결을 종료합니다. 열려있지 않으면 아무 일도 하지 않습니다."""
        async with self._lock:
            if self._client:
                await self._client.close()
                self._client = None
                self.repos = {}
            if self._cache:
                await self._cache.close()
                self._cache = None
