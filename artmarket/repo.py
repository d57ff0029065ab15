"""레포지터리 패턴 구현."""
from __future__ import annotations

from typing import Any, Optional, Sequence, Type, TypeVar

from azure.core import MatchConditions
from azure.cosmos import exceptions
from azure.cosmos.aio import ContainerProxy

from artmarket.core import (
    AbstractRepository,
    ArtMarketError,
    Conflict,
    Entity,
    NotFound,
    RateLimited,
    Unavailable,
)
from artmarket.logging import get_logger

E = TypeVar("E", bound=Entity)

logger = get_logger("artmarket.repo")


def translate_error(e: exceptions.CosmosHttpResponseError, what: str) -> ArtMarketError:
    """Cosmos DB 응답 에러를 ``ArtMarketError`` 계열 에러로 변환합니다."""
    status = getattr(e, "status_code", None)
    if status == 404:
        return NotFound(f"{what} not found")
    if status in (409, 412):
        return Conflict(f"{what} was modified concurrently")
    if status == 429:
        headers = getattr(e, "headers", None) or {}
        retry_ms = headers.get("x-ms-retry-after-ms")
        retry_after = max(1, int(float(retry_ms) / 1000)) if retry_ms else 10
        return RateLimited("Too many requests", retry_after=retry_after)
    return Unavailable(f"Document store error ({status}): {e.message}")


class CosmosRepository(AbstractRepository[E]):
    """Cosmos DB 컨테이너를 저장소로 하는 :class:`AbstractRepository` 구현입니다."""

    def __init__(self, entity_class: Type[E], container: ContainerProxy):
        """임의의 엔티티 클래스 E 를 받아 E 에대한 Repository를 초기화합니다."""
        self.entity_class = entity_class
        self.container = container

    def __repr__(self) -> str:
        return f"CosmosRepository[{self.entity_class.__name__}]"

    def _what(self, id: Any = "") -> str:
        return f"{self.entity_class.__name__} {id}".strip()

    async def get(self, id: str, partition_key: str) -> Optional[E]:
        try:
            doc = await self.container.read_item(item=id, partition_key=partition_key)
        except exceptions.CosmosResourceNotFoundError:
            return None
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what(id)) from e
        return self.entity_class.from_doc(doc)

    async def query_by_ids(self, ids: Sequence[str]) -> list[E]:
        if not ids:
            return []
        # 파티션 키를 지정하지 않으면 모든 파티션을 조회합니다.
        query = "SELECT * FROM c WHERE ARRAY_CONTAINS(@ids, c.id)"
        try:
            return [
                self.entity_class.from_doc(doc)
                async for doc in self.container.query_items(
                    query=query,
                    parameters=[{"name": "@ids", "value": list(ids)}],
                )
            ]
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what()) from e

    async def find_by(self, key: str, value: Any) -> list[E]:
        if not key.isidentifier():
            raise ValueError(f"invalid document field: {key!r}")
        query = f"SELECT * FROM c WHERE c.{key} = @value"
        try:
            return [
                self.entity_class.from_doc(doc)
                async for doc in self.container.query_items(
                    query=query,
                    parameters=[{"name": "@value", "value": value}],
                )
            ]
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what()) from e

    async def replace(self, item: E) -> E:
        kwargs: dict[str, Any] = {}
        if item.etag:
            kwargs = {"etag": item.etag, "match_condition": MatchConditions.IfNotModified}
        try:
            doc = await self.container.replace_item(
                item=item.id, body=item.to_doc(), **kwargs
            )
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what(item.id)) from e
        item.etag = doc.get("_etag")
        return item

    async def create(self, item: E) -> E:
        try:
            doc = await self.container.create_item(body=item.to_doc(system_fields=False))
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what(item.id)) from e
        item.etag = doc.get("_etag")
        return item

    async def delete(self, id: str, partition_key: str) -> None:
        try:
            await self.container.delete_item(item=id, partition_key=partition_key)
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what(id)) from e

    async def all(self) -> list[E]:
        try:
            return [
                self.entity_class.from_doc(doc)
                async for doc in self.container.read_all_items()
            ]
        except exceptions.CosmosHttpResponseError as e:
            raise translate_error(e, self._what()) from e
