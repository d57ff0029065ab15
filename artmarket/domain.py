"""도메인 모델."""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal, Optional, Type, TypeVar

Role = Literal["admin", "user"]

SYSTEM_FIELDS = ("_rid", "_self", "_etag", "_attachments", "_ts")
"""Cosmos DB 가 문서에 붙이는 시스템 필드."""

D = TypeVar("D", bound="Document")


def now_iso() -> str:
    """현재 UTC 시각을 ``2024-01-31T12:00:00.000Z`` 형식의 문자열로 리턴합니다."""
    return (
        datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


def key(name: str, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """문서의 JSON 키 이름을 메타데이터로 가지는 dataclass 필드를 만듭니다."""
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata={"key": name})
    return field(default=default, metadata={"key": name})


def unique(ids: Any) -> list[str]:
    """순서를 유지하며 중복을 제거합니다. 저장된 배열은 집합으로 취급됩니다."""
    return list(dict.fromkeys(ids or []))


@dataclass
class Document:
    """문서 저장소에 JSON 으로 저장되는 엔티티의 기본 클래스.

    dataclass 필드의 ``metadata["key"]`` 로 JSON 키 이름을 지정합니다.
    모르는 필드는 ``extra`` 에 그대로 보관했다가 저장할 때 다시 씁니다.
    """

    class Meta:
        collection: ClassVar[str] = ""
        partition_field: ClassVar[str] = "id"

    @classmethod
    def _doc_fields(cls):
        return [f for f in fields(cls) if "key" in f.metadata]

    @classmethod
    def from_doc(cls: Type[D], doc: dict[str, Any]) -> D:
        kwargs: dict[str, Any] = {}
        known = set()
        for f in cls._doc_fields():
            json_key = f.metadata["key"]
            known.add(json_key)
            if json_key in doc and doc[json_key] is not None:
                kwargs[f.name] = doc[json_key]

        item = cls(**kwargs)
        item.etag = doc.get("_etag")
        item.extra = {k: v for k, v in doc.items() if k not in known and k != "_etag"}
        item._normalize()
        return item

    def to_doc(self, system_fields: bool = True) -> dict[str, Any]:
        """저장소에 저장할 JSON 문서를 만듭니다.

        Args:
            system_fields: ``False`` 면 API 응답이나 캐시용으로 시스템 필드를 뺍니다.
        """
        doc = {
            k: v
            for k, v in self.extra.items()
            if system_fields or k not in SYSTEM_FIELDS
        }
        for f in self._doc_fields():
            value = getattr(self, f.name)
            doc[f.metadata["key"]] = list(value) if isinstance(value, list) else value
        return doc

    @property
    def partition_key(self) -> str:
        name = next(
            f.name
            for f in self._doc_fields()
            if f.metadata["key"] == self.Meta.partition_field
        )
        return getattr(self, name)

    def _normalize(self) -> None:
        for f in self._doc_fields():
            value = getattr(self, f.name)
            if isinstance(value, list):
                setattr(self, f.name, unique(value))


@dataclass
class User(Document):
    """사용자. 파티션 키는 ``id`` 입니다."""

    class Meta:
        collection = "Users"
        partition_field = "id"

    id: str = key("id", "")
    username: str = key("username", "")
    first_name: str = key("firstName", "")
    last_name: str = key("lastName", "")
    email: str = key("email", "")
    password: str = key("password", "")
    role: Role = key("role", "user")
    created_pieces: list[str] = key("createdPieces", default_factory=list)
    """소유한 작품 id 목록. 항상 ``userId`` 가 이 사용자인 작품들의 집합과 같아야 합니다."""
    liked_art_pieces: list[str] = key("likedArtPieces", default_factory=list)
    cart: list[str] = key("cart", default_factory=list)
    created_at: str = key("createdAt", default_factory=now_iso)
    updated_at: str = key("updatedAt", default_factory=now_iso)

    etag: Optional[str] = field(default=None, compare=False, repr=False)
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_public(self) -> dict[str, Any]:
        """비밀번호와 시스템 필드를 뺀 API 응답용 사용자 정보."""
        doc = self.to_doc(system_fields=False)
        doc.pop("password", None)
        return doc

    def add_created(self, art_piece_id: str) -> None:
        if art_piece_id not in self.created_pieces:
            self.created_pieces.append(art_piece_id)

    def remove_created(self, art_piece_id: str) -> None:
        self.created_pieces = [it for it in self.created_pieces if it != art_piece_id]

    def receive(self, art_piece_id: str) -> None:
        """구매한 작품을 소유 목록에 넣고 좋아요/장바구니 목록에서 뺍니다."""
        self.add_created(art_piece_id)
        self.liked_art_pieces = [it for it in self.liked_art_pieces if it != art_piece_id]
        self.cart = [it for it in self.cart if it != art_piece_id]
        self.updated_at = now_iso()

    def like(self, art_piece_id: str, liked: bool) -> None:
        _set_member(self.liked_art_pieces, art_piece_id, liked)
        self.updated_at = now_iso()

    def put_in_cart(self, art_piece_id: str, added: bool) -> None:
        _set_member(self.cart, art_piece_id, added)
        self.updated_at = now_iso()

    def toggle_like(self, art_piece: ArtPiece) -> bool:
        """작품 좋아요를 토글합니다. 좋아요 상태가 되면 참을 리턴합니다."""
        liked = art_piece.id not in self.liked_art_pieces
        self.like(art_piece.id, liked)
        art_piece.mark_liked(self.id, liked)
        return liked

    def toggle_cart(self, art_piece: ArtPiece) -> bool:
        """작품을 장바구니에 넣거나 뺍니다. 장바구니에 들어가면 참을 리턴합니다."""
        added = art_piece.id not in self.cart
        self.put_in_cart(art_piece.id, added)
        art_piece.mark_in_cart(self.id, added)
        return added


@dataclass
class ArtPiece(Document):
    """판매 작품. 파티션 키는 현재 소유자 id(``userId``) 입니다."""

    class Meta:
        collection = "ArtPieces"
        partition_field = "userId"

    id: str = key("id", "")
    title: str = key("title", "")
    description: str = key("description", "")
    artist: str = key("artist", "")
    price: float = key("price", 0)
    tags: list[str] = key("tags", default_factory=list)
    year: Optional[int] = key("year", None)
    url: Optional[str] = key("url", None)
    image_gallery: list[str] = key("imageGallery", default_factory=list)
    folder_name: Optional[str] = key("folderName", None)
    user_id: str = key("userId", "")
    """현재 유일한 소유자. 문서 저장소의 파티션 키이기도 합니다."""
    liked_by: list[str] = key("likedBy", default_factory=list)
    in_cart: list[str] = key("inCart", default_factory=list)
    publish_on_market: bool = key("publishOnMarket", False)
    created_at: str = key("createdAt", default_factory=now_iso)
    updated_at: str = key("updatedAt", default_factory=now_iso)

    etag: Optional[str] = field(default=None, compare=False, repr=False)
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def toggle_publish(self) -> bool:
        self.publish_on_market = not self.publish_on_market
        self.updated_at = now_iso()
        return self.publish_on_market

    def mark_liked(self, user_id: str, liked: bool) -> None:
        _set_member(self.liked_by, user_id, liked)
        self.updated_at = now_iso()

    def mark_in_cart(self, user_id: str, added: bool) -> None:
        _set_member(self.in_cart, user_id, added)
        self.updated_at = now_iso()


@dataclass(frozen=True)
class Transfer:
    """작품 하나의 소유권 이전 기록."""

    art_piece_id: str
    old_owner: str
    new_owner: str

    def to_dict(self) -> dict[str, str]:
        return {
            "artPieceId": self.art_piece_id,
            "oldOwner": self.old_owner,
            "newOwner": self.new_owner,
        }


def transfer_ownership(art_piece: ArtPiece, seller: User, buyer: User) -> Transfer:
    """메모리 상에서 `art_piece` 의 소유권을 `seller` 에서 `buyer` 로 옮깁니다.

    구매한 작품은 더 이상 구매자의 좋아요/장바구니 목록에 남지 않습니다.
    `seller` 와 `buyer` 가 같은 객체면 소유 목록은 그대로입니다.
    """
    old_owner = art_piece.user_id
    seller.remove_created(art_piece.id)
    buyer.receive(art_piece.id)
    art_piece.user_id = buyer.id
    art_piece.updated_at = buyer.updated_at = now_iso()
    if seller is not buyer:
        seller.updated_at = art_piece.updated_at
    return Transfer(art_piece.id, old_owner, buyer.id)


def _set_member(ids: list[str], value: str, present: bool) -> None:
    if present and value not in ids:
        ids.append(value)
    elif not present:
        while value in ids:
            ids.remove(value)
