"""사용자 계정 서비스.

가입, 로그인(토큰 발급), 관리자용 사용자 목록과 사용자 삭제를 다룹니다.
비밀번호는 해시로만 저장하며 API 응답에는 :meth:`User.to_public` 만 사용합니다.
"""
import asyncio
import re
import uuid
from typing import Any, Optional

from artmarket import cache
from artmarket.auth import Identity, create_token, hash_password, verify_password
from artmarket.core import (
    AbstractUnitOfWork,
    Conflict,
    Forbidden,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from artmarket.domain import ArtPiece, User, unique
from artmarket.logging import get_logger
from artmarket.services.transfer import caller_id, replace_reloading

logger = get_logger("artmarket.services.account")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
REQUIRED_FIELDS = ("username", "password", "email", "firstName", "lastName")


def _require_admin(identity: Optional[Identity]) -> None:
    caller_id(identity)
    if not identity.is_admin:  # type: ignore
        raise Forbidden("Access forbidden. Admin role required.")


async def register_user(data: dict[str, Any], uow: AbstractUnitOfWork) -> User:
    """새 사용자를 만듭니다. 가입한 사용자의 역할은 항상 ``user`` 입니다.

    Raises:
        ValidationError: 필수 필드가 없거나 비밀번호가 짧거나 이메일 형식이 틀릴 때.
        Conflict: 사용자 이름이나 이메일이 이미 사용중일 때.
    """
    missing = [k for k in REQUIRED_FIELDS if not str(data.get(k) or "").strip()]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    username = data["username"].strip()
    email = data["email"].strip()
    password = data["password"]
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")

    same_name, same_email = await asyncio.gather(
        uow[User].find_by("username", username),
        uow[User].find_by("email", email),
    )
    if same_name:
        raise Conflict(f'Username "{username}" is already taken.')
    if same_email:
        raise Conflict(f'Email "{email}" is already registered.')

    user = User(
        id=str(uuid.uuid4()),
        username=username,
        first_name=data["firstName"].strip(),
        last_name=data["lastName"].strip(),
        email=email,
        password=hash_password(password),
        role="user",
    )
    await uow[User].create(user)
    logger.info("user %s registered as %r", user.id, user.username)

    await cache.invalidate(uow.cache, cache.ALL_USERS)
    return user


async def authenticate_user(
    username: str,
    password: str,
    uow: AbstractUnitOfWork,
    secret: str,
    expires_in: int = 24 * 60 * 60,
) -> dict[str, Any]:
    """사용자 이름과 비밀번호를 확인하고 토큰을 발급합니다.

    사용자가 없을 때와 비밀번호가 틀렸을 때 같은 에러를 발생시킵니다.

    Raises:
        ValidationError: 사용자 이름이나 비밀번호가 비었을 때.
        Unauthenticated: 사용자 이름이나 비밀번호가 틀렸을 때.
    """
    if not username or not password:
        raise ValidationError("Username and password are required")

    found = await uow[User].find_by("username", username)
    user = found[0] if found else None
    if user is None or not verify_password(password, user.password):
        logger.info("failed login for %r", username)
        raise Unauthenticated("Incorrect username or password")

    token = create_token(
        user.id, secret, role=user.role, expires_in=expires_in, username=user.username
    )
    logger.info("user %s logged in", user.id)
    return {"token": token, "username": user.username, "role": user.role, "userId": user.id}


async def get_all_users(
    identity: Optional[Identity], uow: AbstractUnitOfWork
) -> list[dict[str, Any]]:
    """모든 사용자의 공개 정보. 관리자만 볼 수 있습니다."""
    _require_admin(identity)

    cached = await cache.get_json(uow.cache, cache.ALL_USERS)
    if cached is not None:
        logger.debug("cache hit: %s", cache.ALL_USERS)
        return cached

    users = [it.to_public() for it in await uow[User].all()]
    await cache.set_json(uow.cache, cache.ALL_USERS, users, cache.TTL_ALL_USERS)
    return users


def _forget(user_id: str):
    def apply(art_piece: ArtPiece) -> None:
        art_piece.mark_liked(user_id, False)
        art_piece.mark_in_cart(user_id, False)

    return apply


async def delete_user(
    identity: Optional[Identity], user_id: str, uow: AbstractUnitOfWork
) -> User:
    """사용자를 삭제합니다. 관리자만 할 수 있습니다.

    소유한 작품이 남아있는 사용자는 삭제하지 않습니다. 작품 문서에 남은 이 사용자의
    좋아요/장바구니 표시를 먼저 지운 후 사용자 문서를 삭제합니다.

    Raises:
        Forbidden: 관리자가 아닐 때.
        NotFound: 사용자가 없을 때.
        Conflict: 사용자가 아직 작품을 소유하고 있을 때.
    """
    _require_admin(identity)
    if not user_id:
        raise ValidationError("User ID is required")

    user = await uow[User].get(user_id, user_id)
    if user is None:
        raise NotFound(f"User with ID {user_id} not found")
    if user.created_pieces:
        raise Conflict(
            f"User {user_id} still owns {len(user.created_pieces)} art piece(s)"
        )

    forget = _forget(user.id)
    marked = unique(user.liked_art_pieces + user.cart)
    art_pieces = await uow[ArtPiece].query_by_ids(marked) if marked else []
    for art_piece in art_pieces:
        forget(art_piece)
        await replace_reloading(uow[ArtPiece], art_piece, forget)

    await uow[User].delete(user.id, user.id)
    logger.info("user %s deleted by %s", user.id, identity.user_id)  # type: ignore

    await cache.invalidate(
        uow.cache,
        cache.ALL_USERS,
        cache.user_cart_key(user.id),
        cache.user_liked_items_key(user.id),
        cache.user_art_pieces_key(user.id),
        *([cache.ALL_ART_PIECES] if art_pieces else []),
        *(cache.art_piece_key(it.id) for it in art_pieces),
    )
    return user
