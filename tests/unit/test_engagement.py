import json

import pytest

from artmarket.auth import Identity
from artmarket.core import Forbidden, NotFound, Unauthenticated, Unavailable, ValidationError
from artmarket.services.engagement import ToggleResult, toggle_cart, toggle_like
from artmarket.test.unit import FailingCache, FakeUnitOfWork
from tests import new_art_piece, new_user


@pytest.mark.asyncio
async def test_toggle_like_twice_restores_state(uow, buyer, art_pieces):
    piece = art_pieces[0]
    before_user = uow.users.doc(buyer.id)
    before_piece = uow.art_pieces.doc(piece.id)

    liked = await toggle_like(Identity(buyer.id), piece.id, uow)
    assert (liked.action, liked.count) == ("liked", 1)
    assert piece.id in uow.users.doc(buyer.id)["likedArtPieces"]
    assert uow.art_pieces.doc(piece.id)["likedBy"] == [buyer.id]

    unliked = await toggle_like(Identity(buyer.id), piece.id, uow)
    assert (unliked.action, unliked.count) == ("unliked", 0)
    assert uow.users.doc(buyer.id)["likedArtPieces"] == before_user["likedArtPieces"]
    assert uow.art_pieces.doc(piece.id)["likedBy"] == before_piece["likedBy"]


@pytest.mark.asyncio
async def test_toggle_like_refreshes_cache(uow, buyer, art_pieces):
    await toggle_like(Identity(buyer.id), art_pieces[0].id, uow)

    key = f"userLikedItems:{buyer.id}"
    assert json.loads(uow.cache.data[key]) == [art_pieces[0].id]
    assert uow.cache.ttls[key] == 3600


@pytest.mark.asyncio
async def test_toggle_cart_counts_cart_size(uow, buyer, art_pieces):
    first = await toggle_cart(Identity(buyer.id), art_pieces[0].id, uow)
    second = await toggle_cart(Identity(buyer.id), art_pieces[1].id, uow)
    removed = await toggle_cart(Identity(buyer.id), art_pieces[0].id, uow)

    assert (first.action, first.count) == ("added", 1)
    assert (second.action, second.count) == ("added", 2)
    assert (removed.action, removed.count) == ("removed", 1)
    assert uow.users.doc(buyer.id)["cart"] == [art_pieces[1].id]
    assert uow.art_pieces.doc(art_pieces[1].id)["inCart"] == [buyer.id]
    assert json.loads(uow.cache.data[f"userCart:{buyer.id}"]) == [art_pieces[1].id]


def test_toggle_result_dict():
    assert ToggleResult("liked", 3).to_dict() == {"success": True, "action": "liked", "count": 3}


@pytest.mark.asyncio
async def test_owner_cannot_like_or_cart_own_piece(uow, seller, art_pieces):
    with pytest.raises(Forbidden):
        await toggle_like(Identity(seller.id), art_pieces[0].id, uow)
    with pytest.raises(Forbidden):
        await toggle_cart(Identity(seller.id), art_pieces[0].id, uow)
    assert uow.writes == []


@pytest.mark.asyncio
async def test_admin_may_like_own_piece(admin, admin_identity):
    piece = new_art_piece(admin, "mine")
    uow = FakeUnitOfWork([admin, piece])

    result = await toggle_like(admin_identity, piece.id, uow)
    assert result.action == "liked"


@pytest.mark.asyncio
async def test_toggle_errors(uow, buyer, art_pieces):
    with pytest.raises(Unauthenticated):
        await toggle_like(None, art_pieces[0].id, uow)
    with pytest.raises(ValidationError):
        await toggle_like(Identity(buyer.id), "", uow)
    with pytest.raises(NotFound):
        await toggle_cart(Identity(buyer.id), "nonexistent", uow)
    with pytest.raises(NotFound):
        await toggle_cart(Identity("ghost"), art_pieces[0].id, uow)
    assert uow.writes == []


@pytest.mark.asyncio
async def test_toggle_works_when_cache_is_down(seller, buyer, art_pieces):
    uow = FakeUnitOfWork([seller, buyer, *art_pieces], cache=FailingCache())
    result = await toggle_cart(Identity(buyer.id), art_pieces[0].id, uow)
    assert result.action == "added"


@pytest.mark.asyncio
async def test_concurrent_like_on_same_piece_is_reapplied(uow, seller, buyer, art_pieces):
    piece = art_pieces[0]
    other = new_user("other")
    uow.users.add(other)
    # 다른 사용자의 좋아요가 먼저 저장된 상황
    uow.art_pieces.inject(
        "replace", lambda item: uow.art_pieces.update_doc(piece.id, seller.id, likedBy=[other.id])
    )

    result = await toggle_like(Identity(buyer.id), piece.id, uow)

    assert (result.action, result.count) == ("liked", 2)
    assert uow.art_pieces.doc(piece.id)["likedBy"] == [other.id, buyer.id]
    assert uow.users.doc(buyer.id)["likedArtPieces"] == [piece.id]


@pytest.mark.asyncio
async def test_failed_user_write_reverts_art_piece(uow, buyer, art_pieces):
    piece = art_pieces[0]
    uow.users.inject("replace", Unavailable("store is down"))

    with pytest.raises(Unavailable):
        await toggle_cart(Identity(buyer.id), piece.id, uow)

    assert uow.art_pieces.doc(piece.id)["inCart"] == []
    assert uow.users.doc(buyer.id)["cart"] == []

    result = await toggle_cart(Identity(buyer.id), piece.id, uow)
    assert result.action == "added"
    assert uow.art_pieces.doc(piece.id)["inCart"] == [buyer.id]


@pytest.mark.asyncio
async def test_toggle_invalidates_cached_art_piece(uow, buyer, art_pieces):
    piece = art_pieces[0]
    await uow.cache.set(f"artPiece:{piece.id}", json.dumps({"id": piece.id}), 300)
    await uow.cache.set("artPieces:all", "[]", 60)

    await toggle_like(Identity(buyer.id), piece.id, uow)

    assert f"artPiece:{piece.id}" not in uow.cache.data
    assert "artPieces:all" not in uow.cache.data
