"""Test 헬퍼를 제공하는 모듈.

- FakeRepository, FakeCache, FakeUnitOfWork 를 기본 제공합니다.
"""
import copy
import inspect
import itertools
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Type, TypeVar, Union

from artmarket.core import (
    AbstractCache,
    AbstractRepository,
    AbstractUnitOfWork,
    Conflict,
    Entity,
    NotFound,
)
from artmarket.domain import ArtPiece, Document, User

E = TypeVar("E", bound=Entity)

Effect = Union[BaseException, Callable[..., Any]]


@dataclass
class Injection:
    op: str
    effect: Effect
    times: int = 1
    when: Optional[Callable[..., bool]] = None


class FakeRepository(AbstractRepository[E]):
    """단위 테스트를 위한 Fake 레포지터리.

    문서를 JSON 딕셔너리 사본으로 보관하고 쓰기마다 ``_etag`` 를 새로 붙이므로
    실제 저장소처럼 조건부 교체가 동작합니다. :meth:`inject` 로 특정 호출에서
    에러를 발생시킬 수 있습니다.
    """

    _etags = itertools.count(1)

    def __init__(self, entity_class: Type[E], items: Optional[Sequence[E]] = None):
        self.entity_class = entity_class
        self._docs: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.injections: list[Injection] = []
        for item in items or []:
            self.add(item)

    def _new_etag(self) -> str:
        return f'"{next(self._etags)}"'

    def _store(self, item: E) -> None:
        doc = copy.deepcopy(item.to_doc(system_fields=False))
        doc["_etag"] = self._new_etag()
        self._docs[(item.partition_key, item.id)] = doc
        item.etag = doc["_etag"]

    def add(self, item: E) -> E:
        """저장소 상태를 바로 만듭니다. 호출 기록과 에러 주입을 거치지 않습니다."""
        self._store(item)
        return item

    def doc(self, id: str, partition_key: Optional[str] = None) -> Optional[dict[str, Any]]:
        """저장된 문서의 사본. 파티션 키를 생략하면 id 로 찾습니다."""
        for (pk, doc_id), doc in self._docs.items():
            if doc_id == id and (partition_key is None or pk == partition_key):
                return copy.deepcopy(doc)
        return None

    def update_doc(self, id: str, partition_key: str, **fields: Any) -> None:
        """다른 요청이 문서를 바꾼 것처럼 필드를 바꾸고 etag 를 갱신합니다."""
        doc = self._docs[(partition_key, id)]
        doc.update(fields)
        doc["_etag"] = self._new_etag()

    def remove(self, id: str, partition_key: str) -> None:
        """다른 요청이 문서를 지운 것처럼 저장소에서 바로 뺍니다."""
        self._docs.pop((partition_key, id), None)

    def inject(
        self,
        op: str,
        effect: Effect,
        times: int = 1,
        when: Optional[Callable[..., bool]] = None,
    ) -> None:
        """`op` 호출시 `effect` 를 발생시킵니다.

        `effect` 가 예외면 그 예외를 발생시키고, 함수면 호출한 후 (코루틴 함수면
        완료를 기다린 후) 원래 동작을 계속합니다. `when` 이 주어지면 호출 인자로
        검사해서 참일 때만 적용합니다.
        """
        self.injections.append(Injection(op, effect, times, when))

    async def _hit(self, op: str, *args: Any) -> None:
        self.calls.append((op, args))
        for inj in self.injections:
            if inj.op != op or inj.times <= 0:
                continue
            if inj.when and not inj.when(*args):
                continue
            inj.times -= 1
            if isinstance(inj.effect, BaseException):
                raise inj.effect
            result = inj.effect(*args)
            if inspect.isawaitable(result):
                await result

    @property
    def writes(self) -> list[tuple[str, Any]]:
        return [it for it in self.calls if it[0] in ("replace", "create", "delete")]

    async def get(self, id: str, partition_key: str) -> Optional[E]:
        await self._hit("get", id, partition_key)
        doc = self._docs.get((partition_key, id))
        return self.entity_class.from_doc(copy.deepcopy(doc)) if doc else None

    async def query_by_ids(self, ids: Sequence[str]) -> list[E]:
        await self._hit("query_by_ids", list(ids))
        return [
            self.entity_class.from_doc(copy.deepcopy(doc))
            for (_, id), doc in self._docs.items()
            if id in ids
        ]

    async def find_by(self, key: str, value: Any) -> list[E]:
        await self._hit("find_by", key, value)
        return [
            self.entity_class.from_doc(copy.deepcopy(doc))
            for doc in self._docs.values()
            if doc.get(key) == value
        ]

    async def replace(self, item: E) -> E:
        await self._hit("replace", item)
        stored = self._docs.get((item.partition_key, item.id))
        if stored is None:
            raise NotFound(f"{self.entity_class.__name__} {item.id} not found")
        if item.etag and item.etag != stored["_etag"]:
            raise Conflict(f"{self.entity_class.__name__} {item.id} was modified concurrently")
        self._store(item)
        return item

    async def create(self, item: E) -> E:
        await self._hit("create", item)
        if (item.partition_key, item.id) in self._docs:
            raise Conflict(f"{self.entity_class.__name__} {item.id} already exists")
        self._store(item)
        return item

    async def delete(self, id: str, partition_key: str) -> None:
        await self._hit("delete", id, partition_key)
        if self._docs.pop((partition_key, id), None) is None:
            raise NotFound(f"{self.entity_class.__name__} {id} not found")

    async def all(self) -> list[E]:
        await self._hit("all")
        return [self.entity_class.from_doc(copy.deepcopy(doc)) for doc in self._docs.values()]


class FakeCache(AbstractCache):
    """단위 테스트를 위한 메모리 캐시. TTL 은 기록만 하고 만료시키지 않습니다."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.deleted: list[str] = []

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.deleted.append(key)
            self.data.pop(key, None)
            self.ttls.pop(key, None)

    async def flush(self) -> None:
        self.deleted.extend(self.data)
        self.data.clear()
        self.ttls.clear()


class FailingCache(AbstractCache):
    """모든 호출이 실패하는 캐시. 캐시 장애 상황을 흉내냅니다."""

    def __init__(self):
        self.calls = 0

    async def get(self, key: str) -> Optional[str]:
        self.calls += 1
        raise ConnectionError("cache is down")

    async def set(self, key: str, value: str, ttl: int) -> None:
        self.calls += 1
        raise ConnectionError("cache is down")

    async def delete(self, *keys: str) -> None:
        self.calls += 1
        raise ConnectionError("cache is down")

    async def flush(self) -> None:
        self.calls += 1
        raise ConnectionError("cache is down")


class FakeUnitOfWork(AbstractUnitOfWork):
    """단위 테스트를 위한 Fake UoW.

    Params:
        - items: 저장소에 미리 넣어둘 :class:`User`, :class:`ArtPiece` 목록
        - cache: 사용할 캐시. 생략하면 :class:`FakeCache`
    """

    def __init__(
        self,
        items: Optional[Sequence[Document]] = None,
        cache: Optional[AbstractCache] = None,
    ) -> None:
        items = items or []
        self.repos = {
            entity_class: FakeRepository(
                entity_class, [it for it in items if isinstance(it, entity_class)]
            )
            for entity_class in (User, ArtPiece)
        }
        self.cache = cache or FakeCache()
        self.opened = 0
        self.closed = 0

    async def open(self) -> AbstractUnitOfWork:
        self.opened += 1
        return self

    async def close(self) -> None:
        self.closed += 1

    @property
    def users(self) -> FakeRepository[User]:
        return self.repos[User]  # type: ignore

    @property
    def art_pieces(self) -> FakeRepository[ArtPiece]:
        return self.repos[ArtPiece]  # type: ignore

    @property
    def writes(self) -> list[tuple[str, Any]]:
        return self.users.writes + self.art_pieces.writes
