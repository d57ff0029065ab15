"""가입, 로그인, 사용자 관리 엔드포인트."""
from fastapi import Depends

from artmarket.api import app, get_config, get_identity, get_uow
from artmarket.auth import Identity
from artmarket.config import ArtMarket
from artmarket.core import AbstractUnitOfWork
from artmarket.schema import LoginSchema, UserRegisterSchema
from artmarket.services import account


@app.post("/users", status_code=201)
async def post_user(req: UserRegisterSchema, uow: AbstractUnitOfWork = Depends(get_uow)):
    """``POST /users`` 요청을 처리하여 새 사용자를 등록합니다."""
    user = await account.register_user(req.model_dump(by_alias=True), uow)
    return {"message": "User created successfully", "user": user.to_public()}


@app.post("/auth/login")
async def post_login(
    req: LoginSchema,
    uow: AbstractUnitOfWork = Depends(get_uow),
    config: ArtMarket = Depends(get_config),
):
    return await account.authenticate_user(
        req.username, req.password, uow, config.jwt_secret, config.jwt_expires_in
    )


@app.get("/users")
async def get_all_users(
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    return {"users": await account.get_all_users(identity, uow)}


@app.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    identity: Identity = Depends(get_identity),
    uow: AbstractUnitOfWork = Depends(get_uow),
):
    user = await account.delete_user(identity, user_id, uow)
    return {"message": "User deleted successfully", "deletedUserId": user.id}
