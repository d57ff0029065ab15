"""좋아요/장바구니 토글 서비스."""
import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from artmarket import cache
from artmarket.auth import Identity
from artmarket.core import AbstractUnitOfWork, Forbidden, NotFound, ValidationError
from artmarket.domain import ArtPiece, User
from artmarket.logging import get_logger
from artmarket.services.transfer import caller_id, replace_reloading

logger = get_logger("artmarket.services.engagement")


@dataclass
class ToggleResult:
    action: str
    count: int

    def to_dict(self):
        return {"success": True, "action": self.action, "count": self.count}


async def _load(
    identity: Optional[Identity], art_piece_id: str, uow: AbstractUnitOfWork
) -> tuple[User, ArtPiece]:
    user_id = caller_id(identity)
    if not art_piece_id:
        raise ValidationError("artPieceId is required")

    user, found = await asyncio.gather(
        uow[User].get(user_id, user_id),
        uow[ArtPiece].query_by_ids([art_piece_id]),
    )
    if user is None:
        raise NotFound(f"User {user_id} not found")
    if not found:
        raise NotFound(f"Art piece {art_piece_id} not found")

    art_piece = found[0]
    if art_piece.user_id == user.id and not identity.is_admin:  # type: ignore
        raise Forbidden("Cannot like or cart your own art piece")
    return user, art_piece


async def _toggle(
    identity: Optional[Identity],
    art_piece_id: str,
    uow: AbstractUnitOfWork,
    members: Callable[[User], list[str]],
    mark_user: Callable[[User, str, bool], None],
    mark_piece: Callable[[ArtPiece, str, bool], None],
) -> tuple[User, ArtPiece, bool]:
    """사용자와 작품 문서에 같은 토글을 반영합니다.

    작품 문서를 먼저, 사용자 문서를 나중에 교체합니다. 다른 요청이 먼저 문서를
    바꾸면 다시 읽어서 같은 변경을 적용합니다. 사용자 문서를 바꾸지 못하면 작품
    문서의 변경을 되돌리고 에러를 다시 발생시킵니다.
    """
    user, art_piece = await _load(identity, art_piece_id, uow)
    user_id = user.id
    on = art_piece.id not in members(user)

    def apply_piece(a: ArtPiece) -> None:
        mark_piece(a, user_id, on)

    def revert_piece(a: ArtPiece) -> None:
        mark_piece(a, user_id, not on)

    def apply_user(u: User) -> None:
        mark_user(u, art_piece_id, on)

    apply_piece(art_piece)
    art_piece = await replace_reloading(uow[ArtPiece], art_piece, apply_piece)

    apply_user(user)
    try:
        user = await replace_reloading(uow[User], user, apply_user)
    except Exception:
        logger.warning("failed to update user %s, reverting art piece %s", user_id, art_piece_id)
        revert_piece(art_piece)
        try:
            await replace_reloading(uow[ArtPiece], art_piece, revert_piece)
        except Exception:
            # 같은 토글을 다시 요청하면 두 문서가 다시 맞춰집니다.
            logger.error("failed to revert art piece %s for %s", art_piece_id, user_id)
        raise

    await cache.invalidate(
        uow.cache, cache.ALL_ART_PIECES, cache.art_piece_key(art_piece.id)
    )
    return user, art_piece, on


async def toggle_like(
    identity: Optional[Identity], art_piece_id: str, uow: AbstractUnitOfWork
) -> ToggleResult:
    """작품 좋아요를 토글합니다.

    사용자의 ``likedArtPieces`` 와 작품의 ``likedBy`` 를 함께 바꾸고, 캐시의
    ``userLikedItems:<id>`` 를 새 목록으로 갱신합니다. 두번 호출하면 원래 상태로
    돌아옵니다.

    Raises:
        NotFound: 사용자나 작품이 없을 때.
        Forbidden: 관리자가 아닌 사용자가 자기 작품에 좋아요를 누를 때.
    """
    user, art_piece, liked = await _toggle(
        identity,
        art_piece_id,
        uow,
        lambda u: u.liked_art_pieces,
        User.like,
        ArtPiece.mark_liked,
    )
    await cache.set_json(
        uow.cache,
        cache.user_liked_items_key(user.id),
        user.liked_art_pieces,
        cache.TTL_USER_LIKED_ITEMS,
    )
    action = "liked" if liked else "unliked"
    logger.info("user %s %s art piece %s", user.id, action, art_piece.id)
    return ToggleResult(action, len(art_piece.liked_by))


async def toggle_cart(
    identity: Optional[Identity], art_piece_id: str, uow: AbstractUnitOfWork
) -> ToggleResult:
    """작품을 장바구니에 넣거나 뺍니다. ``count`` 는 장바구니의 작품 수입니다."""
    user, art_piece, added = await _toggle(
        identity,
        art_piece_id,
        uow,
        lambda u: u.cart,
        User.put_in_cart,
        ArtPiece.mark_in_cart,
    )
    await cache.set_json(
        uow.cache, cache.user_cart_key(user.id), user.cart, cache.TTL_USER_CART
    )
    action = "added" if added else "removed"
    logger.info("user %s %s art piece %s (cart)", user.id, action, art_piece.id)
    return ToggleResult(action, len(user.cart))
