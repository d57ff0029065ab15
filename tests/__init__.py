import uuid
from typing import Any

from artmarket.domain import ArtPiece, User
from artmarket.test.unit import FakeUnitOfWork


def random_suffix() -> str:
    """랜덤 ID뒤에 붙일 UUID 기반의 6자리 임의의 ID를 생성합니다."""
    return uuid.uuid4().hex[:6]


def random_user_id(name: str = "") -> str:
    """임의의 사용자 id 를 생성합니다."""
    return f"user-{name}-{random_suffix()}"


def random_art_piece_id(name: str = "") -> str:
    """임의의 작품 id 를 생성합니다."""
    return f"art-{name}-{random_suffix()}"


def new_user(name: str = "", **kwargs: Any) -> User:
    kwargs.setdefault("username", name or "user")
    return User(id=random_user_id(name), **kwargs)


def new_art_piece(owner: User, name: str = "", **kwargs: Any) -> ArtPiece:
    """`owner` 소유의 게시된 작품을 만들고 소유자의 ``createdPieces`` 에 추가합니다."""
    kwargs.setdefault("title", name or "untitled")
    kwargs.setdefault("artist", "unknown")
    kwargs.setdefault("price", 100.0)
    kwargs.setdefault("publish_on_market", True)
    art_piece = ArtPiece(id=random_art_piece_id(name), user_id=owner.id, **kwargs)
    owner.add_created(art_piece.id)
    return art_piece


def check_ownership(uow: FakeUnitOfWork) -> None:
    """저장소의 모든 사용자의 ``createdPieces`` 가 실제 소유 작품과 같은지 검사합니다."""
    owned: dict[str, set[str]] = {}
    for art_piece in uow.art_pieces._docs.values():
        owned.setdefault(art_piece["userId"], set()).add(art_piece["id"])

    seen: set[str] = set()
    for user in uow.users._docs.values():
        created = set(user["createdPieces"])
        assert created == owned.get(user["id"], set()), user["id"]
        assert not created & seen
        seen |= created
