"""작품 목록/사용자 프로필 조회와 작품 관리 서비스.

조회는 모두 캐시를 먼저 보고, 없으면 저장소에서 읽어 캐시에 넣습니다.
캐시는 원본이 아니므로 캐시가 비었거나 접근할 수 없어도 결과는 같습니다.
"""
import uuid
from typing import Any, Optional

from artmarket import cache
from artmarket.auth import Identity
from artmarket.core import AbstractUnitOfWork, Forbidden, NotFound, ValidationError
from artmarket.domain import ArtPiece, User, now_iso
from artmarket.logging import get_logger
from artmarket.services.transfer import caller_id

logger = get_logger("artmarket.services.listing")

EDITABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "price": "price",
    "publishOnMarket": "publish_on_market",
    "tags": "tags",
    "year": "year",
}
"""관리자가 수정할 수 있는 작품 필드 (JSON 키 -> 속성 이름)."""

REQUIRED_FIELDS = ("title", "description", "artist", "price", "year")


def _public(art_piece: ArtPiece) -> dict[str, Any]:
    return art_piece.to_doc(system_fields=False)


async def get_all_art_pieces(uow: AbstractUnitOfWork) -> list[dict[str, Any]]:
    """마켓에 게시된 모든 작품을 리턴합니다.

    Raises:
        NotFound: 게시된 작품이 하나도 없을 때.
    """
    cached = await cache.get_json(uow.cache, cache.ALL_ART_PIECES)
    if cached is not None:
        logger.debug("cache hit: %s", cache.ALL_ART_PIECES)
        return cached

    art_pieces = [_public(it) for it in await uow[ArtPiece].all() if it.publish_on_market]
    if not art_pieces:
        raise NotFound("No art pieces available")

    await cache.set_json(
        uow.cache, cache.ALL_ART_PIECES, art_pieces, cache.TTL_ALL_ART_PIECES
    )
    return art_pieces


async def get_art_piece(art_piece_id: str, uow: AbstractUnitOfWork) -> dict[str, Any]:
    """게시된 작품 하나를 리턴합니다.

    캐시된 작품이 더 이상 게시 상태가 아니면 캐시에서 지우고 저장소에서 다시 읽습니다.
    작품 문서는 소유자 id 로 파티션되어 있으므로 id 로 모든 파티션을 조회합니다.
    """
    if not art_piece_id:
        raise ValidationError("Art piece ID is required")

    key = cache.art_piece_key(art_piece_id)
    cached = await cache.get_json(uow.cache, key)
    if cached is not None:
        if cached.get("publishOnMarket"):
            return cached
        logger.info("cached art piece %s is no longer published", art_piece_id)
        await cache.invalidate(uow.cache, key)

    found = await uow[ArtPiece].query_by_ids([art_piece_id])
    if not found:
        raise NotFound(f"Art piece with ID {art_piece_id} not found")
    if not found[0].publish_on_market:
        raise NotFound(f"Art piece with ID {art_piece_id} is not available on the market")

    art_piece = _public(found[0])
    await cache.set_json(uow.cache, key, art_piece, cache.TTL_ART_PIECE)
    return art_piece


async def _user_ids(
    identity: Optional[Identity],
    user_id: str,
    uow: AbstractUnitOfWork,
    key: str,
    ttl: int,
    attr: str,
) -> list[str]:
    requester = caller_id(identity)
    if not user_id:
        raise ValidationError("User ID is required")
    if requester != user_id and not identity.is_admin:  # type: ignore
        raise Forbidden("Cannot read another user's profile")

    cached = await cache.get_json(uow.cache, key)
    if cached is not None:
        return cached

    user = await uow[User].get(user_id, user_id)
    if user is None:
        raise NotFound(f"User with ID {user_id} not found")

    ids = list(getattr(user, attr))
    await cache.set_json(uow.cache, key, ids, ttl)
    return ids


async def get_user_cart(
    identity: Optional[Identity], user_id: str, uow: AbstractUnitOfWork
) -> list[str]:
    """사용자 장바구니의 작품 id 목록. 본인이나 관리자만 볼 수 있습니다."""
    return await _user_ids(
        identity, user_id, uow, cache.user_cart_key(user_id), cache.TTL_USER_CART, "cart"
    )


async def get_user_liked_items(
    identity: Optional[Identity], user_id: str, uow: AbstractUnitOfWork
) -> list[str]:
    return await _user_ids(
        identity,
        user_id,
        uow,
        cache.user_liked_items_key(user_id),
        cache.TTL_USER_LIKED_ITEMS,
        "liked_art_pieces",
    )


async def get_user_created_pieces(
    identity: Optional[Identity], user_id: str, uow: AbstractUnitOfWork
) -> list[str]:
    """사용자가 소유한 작품 id 목록."""
    return await _user_ids(
        identity,
        user_id,
        uow,
        cache.user_art_pieces_key(user_id),
        cache.TTL_USER_ART_PIECES,
        "created_pieces",
    )


async def add_art_piece(
    identity: Optional[Identity], data: dict[str, Any], uow: AbstractUnitOfWork
) -> ArtPiece:
    """새 작품을 등록하고 소유자의 ``createdPieces`` 에 추가합니다.

    작품의 소유자는 호출자입니다. 관리자는 ``userId`` 로 다른 사용자를 지정할 수
    있습니다. 이미지 업로드는 다루지 않으며 ``url``, ``imageGallery`` 는 받은
    그대로 저장합니다.

    Raises:
        ValidationError: 필수 필드가 없을 때.
        Forbidden: 관리자가 아닌 사용자가 다른 사용자의 작품을 등록하려 할 때.
        NotFound: 소유자가 없을 때.
    """
    requester = caller_id(identity)
    missing = [k for k in REQUIRED_FIELDS if data.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    owner_id = data.get("userId") or requester
    if owner_id != requester and not identity.is_admin:  # type: ignore
        raise Forbidden("Cannot add an art piece for another user")

    owner = await uow[User].get(owner_id, owner_id)
    if owner is None:
        raise NotFound(f"User {owner_id} not found")

    gallery = list(data.get("imageGallery") or [])
    url = data.get("url") or (gallery[0] if gallery else None)
    art_piece = ArtPiece(
        id=str(uuid.uuid4()),
        title=data["title"],
        description=data["description"],
        artist=data["artist"],
        price=float(data["price"]),
        tags=list(data.get("tags") or []),
        year=int(data["year"]),
        url=url,
        image_gallery=gallery,
        folder_name=str(uuid.uuid4()),
        user_id=owner.id,
        publish_on_market=bool(data.get("publishOnMarket", False)),
    )
    await uow[ArtPiece].create(art_piece)

    owner.add_created(art_piece.id)
    owner.updated_at = now_iso()
    await uow[User].replace(owner)
    logger.info("art piece %s created for %s", art_piece.id, owner.id)

    await cache.invalidate(
        uow.cache, cache.ALL_ART_PIECES, cache.user_art_pieces_key(owner.id)
    )
    return art_piece


async def _find(art_piece_id: str, uow: AbstractUnitOfWork) -> ArtPiece:
    if not art_piece_id:
        raise ValidationError("Art piece ID is required")
    found = await uow[ArtPiece].query_by_ids([art_piece_id])
    if not found:
        raise NotFound(f"Art piece {art_piece_id} not found")
    return found[0]


async def toggle_publish(
    identity: Optional[Identity], art_piece_id: str, uow: AbstractUnitOfWork
) -> ArtPiece:
    """작품의 마켓 게시 여부를 뒤집습니다. 소유자나 관리자만 할 수 있습니다."""
    requester = caller_id(identity)
    art_piece = await _find(art_piece_id, uow)
    if art_piece.user_id != requester and not identity.is_admin:  # type: ignore
        raise Forbidden("Only the owner can publish this art piece")

    art_piece.toggle_publish()
    await uow[ArtPiece].replace(art_piece)
    logger.info(
        "art piece %s publishOnMarket=%s", art_piece.id, art_piece.publish_on_market
    )
    await cache.invalidate(
        uow.cache, cache.ALL_ART_PIECES, cache.art_piece_key(art_piece.id)
    )
    return art_piece


def _check_change(name: str, value: Any) -> Any:
    if name == "price":
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValidationError("price must be a non-negative number")
        return float(value)
    if name == "year":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError("year must be an integer")
    elif name == "publishOnMarket":
        if not isinstance(value, bool):
            raise ValidationError("publishOnMarket must be a boolean")
    elif name == "tags":
        if not isinstance(value, list) or not all(isinstance(it, str) for it in value):
            raise ValidationError("tags must be a list of strings")
        return list(value)
    elif not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value


async def edit_art_piece(
    identity: Optional[Identity],
    art_piece_id: str,
    changes: dict[str, Any],
    uow: AbstractUnitOfWork,
) -> ArtPiece:
    """작품 정보를 수정합니다. 관리자만 할 수 있습니다.

    수정할 수 있는 필드는 :data:`EDITABLE_FIELDS` 뿐입니다.

    Raises:
        Forbidden: 관리자가 아닐 때.
        ValidationError: 변경 내용이 없거나 허용되지 않은 필드가 있을 때.
    """
    caller_id(identity)
    if not identity.is_admin:  # type: ignore
        raise Forbidden("Access forbidden. Admin role required.")
    if not changes:
        raise ValidationError("Update data is required")
    invalid = [k for k in changes if k not in EDITABLE_FIELDS]
    if invalid:
        raise ValidationError(f"Invalid fields: {', '.join(invalid)}")

    values = {EDITABLE_FIELDS[k]: _check_change(k, v) for k, v in changes.items()}
    art_piece = await _find(art_piece_id, uow)
    for attr, value in values.items():
        setattr(art_piece, attr, value)
    art_piece.updated_at = now_iso()

    await uow[ArtPiece].replace(art_piece)
    logger.info("art piece %s edited: %s", art_piece.id, ", ".join(changes))
    await cache.invalidate(
        uow.cache, cache.ALL_ART_PIECES, cache.art_piece_key(art_piece.id)
    )
    return art_piece
