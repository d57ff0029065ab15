# pylint: disable=redefined-outer-name
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

import pytest

from artmarket.auth import Identity
from artmarket.domain import ArtPiece, User
from artmarket.test.unit import FakeUnitOfWork
from tests import new_art_piece, new_user


@pytest.fixture
def seller() -> User:
    return new_user("seller")


@pytest.fixture
def buyer() -> User:
    return new_user("buyer")


@pytest.fixture
def admin() -> User:
    return new_user("admin", role="admin")


@pytest.fixture
def art_pieces(seller: User) -> list[ArtPiece]:
    """`seller` 소유의 게시된 작품 3개."""
    return [new_art_piece(seller, f"piece{i}") for i in range(3)]


@pytest.fixture
def uow(seller, buyer, admin, art_pieces) -> FakeUnitOfWork:
    """판매자, 구매자, 관리자와 판매자의 작품들이 저장된 Fake UoW."""
    return FakeUnitOfWork([seller, buyer, admin, *art_pieces])


@pytest.fixture
def buyer_identity(buyer: User) -> Identity:
    return Identity(buyer.id)


@pytest.fixture
def admin_identity(admin: User) -> Identity:
    return Identity(admin.id, role="admin")
