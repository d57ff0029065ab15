from __future__ import annotations

import abc
from typing import Any, Generic, Optional, Protocol, Sequence, Type, TypeVar

from artmarket.core.errors import ArtMarketError


class Entity(Protocol):
    """Entity 프로토콜 명세."""

    id: str  # 문서의 id 필드. 파티션 내에서 유일해야 합니다.
    etag: Optional[str]

    @property
    def partition_key(self) -> str:
        ...

    def to_doc(self, system_fields: bool = True) -> dict[str, Any]:
        ...


E = TypeVar("E", bound=Entity)


class AbstractRepository(Generic[E], abc.ABC):
    """Document Store 컬렉션에 대한 Repository 패턴의 추상 인터페이스 입니다.

    문서는 ``id`` 와 파티션 키로 식별됩니다. 파티션 키 값이 바뀌는 변경은
    ``replace`` 로 할 수 없고 ``delete`` + ``create`` 로 처리해야 합니다.
    """

    entity_class: Type[E]

    async def __aenter__(self) -> AbstractRepository[E]:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """레포지터리와 연결된 저장소 객체를 종료합니다."""
        return

    @abc.abstractmethod
    async def get(self, id: str, partition_key: str) -> Optional[E]:
        """파티션 키와 id로 문서 하나를 조회합니다. 못 찾을 경우 ``None`` 을 리턴합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    async def query_by_ids(self, ids: Sequence[str]) -> list[E]:
        """여러 파티션에 걸쳐 `ids` 에 해당하는 문서들을 한번에 조회합니다.

        존재하지 않는 id는 결과에서 빠지므로 호출자가 개수를 비교해야 합니다.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def find_by(self, key: str, value: Any) -> list[E]:
        """JSON 필드 `key` 의 값이 `value` 인 문서들을 모든 파티션에서 조회합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    async def replace(self, item: E) -> E:
        """문서를 교체합니다.

        `item` 에 ``etag`` 가 있으면 읽은 이후 변경되지 않았을 때만 교체하며,
        변경되었다면 :class:`~artmarket.core.errors.Conflict` 가 발생합니다.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def create(self, item: E) -> E:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, id: str, partition_key: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def all(self) -> list[E]:
        """컬렉션의 모든 문서를 조회합니다."""
        raise NotImplementedError


class AbstractCache(abc.ABC):
    """조회 가속용 key/value 캐시의 추상 인터페이스입니다.

    캐시는 원본 저장소가 아니므로 모든 항목은 언제든 사라지거나 오래된 값일 수
    있습니다.
    """

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """`ttl` 초 후에 만료되는 값을 저장합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, *keys: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def flush(self) -> None:
        """모든 캐시 항목을 지웁니다."""
        raise NotImplementedError

    async def close(self) -> None:
        return


EntityReposMap = dict[Type[Any], AbstractRepository]


class AbstractUnitOfWork(abc.ABC):
    """저장소와 캐시 클라이언트를 소유하는 프로세스 단위의 리소스 핸들입니다.

    UoW 는 영구 저장소의 유일한 진입점이며 ``uow[User]`` 처럼 엔티티 클래스로
    레포지터리를 얻습니다. 두 컬렉션에 걸친 트랜잭션을 저장소가 제공하지 않으므로
    ``commit`` 은 없고, 각 쓰기는 호출 즉시 반영됩니다.

    생명주기:
        - 프로세스 시작시 한번 :meth:`open` (여러번 호출해도 한번만 초기화)
        - 요청 핸들러에는 의존성 주입으로 전달
        - 프로세스 종료시 :meth:`close`
    """

    repos: EntityReposMap
    cache: AbstractCache

    async def __aenter__(self) -> AbstractUnitOfWork:
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __getitem__(self, key: Type[E]) -> AbstractRepository[E]:
        if key not in self.repos:
            raise ArtMarketError("repository not found for: %r" % key)
        return self.repos[key]

    @abc.abstractmethod
    async def open(self) -> AbstractUnitOfWork:
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self) -> None:
        raise NotImplementedError
