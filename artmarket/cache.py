"""캐시 키 이름 규칙과 best-effort 캐시 헬퍼.

캐시는 조회 가속용일 뿐이므로 여기의 헬퍼들은 캐시 에러를 절대 호출자에게
전파하지 않습니다. 실패는 로그로만 남기고 캐시 미스처럼 동작합니다.
"""
import json
from typing import Any, Optional

from artmarket.core import AbstractCache
from artmarket.logging import get_logger

logger = get_logger("artmarket.cache")

ALL_ART_PIECES = "artPieces:all"
ALL_USERS = "users:all"

TTL_ALL_ART_PIECES = 60
TTL_ART_PIECE = 300
TTL_USER_CART = 60 * 60
TTL_USER_LIKED_ITEMS = 60 * 60
TTL_USER_ART_PIECES = 60
TTL_ALL_USERS = 60


def art_piece_key(art_piece_id: str) -> str:
    return f"artPiece:{art_piece_id}"


def user_cart_key(user_id: str) -> str:
    return f"userCart:{user_id}"


def user_art_pieces_key(user_id: str) -> str:
    return f"userArtPieces:{user_id}"


def user_liked_items_key(user_id: str) -> str:
    return f"userLikedItems:{user_id}"


async def get_json(cache: AbstractCache, key: str) -> Optional[Any]:
    """캐시에서 JSON 값을 읽습니다. 없거나 읽을 수 없으면 ``None`` 을 리턴합니다."""
    try:
        cached = await cache.get(key)
    except Exception:
        logger.warning("cache get failed for %r", key, exc_info=True)
        return None

    if cached is None:
        return None

    try:
        return json.loads(cached)
    except ValueError:
        logger.warning("dropping undecodable cache entry %r", key)
        await invalidate(cache, key)
        return None


async def set_json(cache: AbstractCache, key: str, value: Any, ttl: int) -> bool:
    """`value` 를 JSON 으로 캐시에 저장합니다. 성공하면 참을 리턴합니다."""
    try:
        await cache.set(key, json.dumps(value), ttl)
        return True
    except Exception:
        logger.warning("cache set failed for %r", key, exc_info=True)
        return False


async def invalidate(cache: AbstractCache, *keys: str) -> bool:
    """캐시 항목들을 삭제합니다. 실패해도 예외를 발생시키지 않습니다."""
    keys = tuple(dict.fromkeys(k for k in keys if k))
    if not keys:
        return True
    try:
        await cache.delete(*keys)
        logger.debug("invalidated cache keys: %r", keys)
        return True
    except Exception:
        logger.warning("cache invalidation failed for %r", keys, exc_info=True)
        return False


async def flush(cache: AbstractCache) -> bool:
    """캐시 전체를 비웁니다. 실패해도 예외를 발생시키지 않습니다."""
    try:
        await cache.flush()
        logger.info("flushed cache %r", cache)
        return True
    except Exception:
        logger.warning("cache flush failed", exc_info=True)
        return False
