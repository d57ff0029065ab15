"""구매, 좋아요, 장바구니 엔드포인트."""
from fastapi import Depends

from artmarket.api import app, get_config, get_identity, get_uow
from artmarket.auth import Identity
from artmarket.config import ArtMarket
from artmarket.core import AbstractUnitOfWork
from artmarket.schema import PurchaseSchema, ToggleSchema
from artmarket.services import engagement, transfer


@app.post("/purchase")
async def post_purchase(
    req: PurchaseSchema,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
    config: ArtMarket = Depends(get_config),
):
    """``POST /purchase`` 요청을 처리하여 작품들의 소유권을 호출자에게 옮깁니다."""
    result = await transfer.purchase(
        identity, req.ids, uow, timeout=config.request_timeout
    )
    return result.to_dict()


@app.post("/cart/toggle")
async def post_toggle_cart(
    req: ToggleSchema,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    result = await engagement.toggle_cart(identity, req.art_piece_id, uow)
    return result.to_dict()


@app.post("/likes/toggle")
async def post_toggle_like(
    req: ToggleSchema,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    result = await engagement.toggle_like(identity, req.art_piece_id, uow)
    return result.to_dict()
