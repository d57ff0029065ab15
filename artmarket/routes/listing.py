"""작품 목록과 사용자 프로필 엔드포인트."""
from typing import Any

from fastapi import Body, Depends

from artmarket.api import app, get_identity, get_uow
from artmarket.auth import Identity
from artmarket.core import AbstractUnitOfWork
from artmarket.schema import ArtPieceAddSchema
from artmarket.services import listing


@app.get("/art-pieces")
async def get_all_art_pieces(uow: AbstractUnitOfWork = Depends(get_uow)):
    return {"artPieces": await listing.get_all_art_pieces(uow)}


@app.get("/art-pieces/{art_piece_id}")
async def get_art_piece(art_piece_id: str, uow: AbstractUnitOfWork = Depends(get_uow)):
    return {"artPiece": await listing.get_art_piece(art_piece_id, uow)}


@app.post("/art-pieces", status_code=201)
async def post_art_piece(
    req: ArtPieceAddSchema,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    """``POST /art-pieces`` 요청을 처리하여 새 작품을 등록합니다."""
    data = req.model_dump(by_alias=True, exclude_none=True)
    art_piece = await listing.add_art_piece(identity, data, uow)
    return {"artPiece": art_piece.to_doc(system_fields=False)}


@app.patch("/art-pieces/{art_piece_id}")
async def patch_art_piece(
    art_piece_id: str,
    changes: dict[str, Any] = Body(...),
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    art_piece = await listing.edit_art_piece(identity, art_piece_id, changes, uow)
    return {"artPiece": art_piece.to_doc(system_fields=False)}


@app.post("/art-pieces/{art_piece_id}/publish")
async def post_toggle_publish(
    art_piece_id: str,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    art_piece = await listing.toggle_publish(identity, art_piece_id, uow)
    return {"id": art_piece.id, "publishOnMarket": art_piece.publish_on_market}


@app.get("/users/{user_id}/cart")
async def get_user_cart(
    user_id: str,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    return {"userCart": await listing.get_user_cart(identity, user_id, uow)}


@app.get("/users/{user_id}/liked")
async def get_user_liked_items(
    user_id: str,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    return {"likedItems": await listing.get_user_liked_items(identity, user_id, uow)}


@app.get("/users/{user_id}/art-pieces")
async def get_user_created_pieces(
    user_id: str,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    return {"createdPieces": await listing.get_user_created_pieces(identity, user_id, uow)}
