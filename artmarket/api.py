"""FastAPI 로 구현한 RESTful 서비스 앱."""
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from artmarket.auth import Identity, authenticate
from artmarket.config import ArtMarket
from artmarket.core import AbstractUnitOfWork, ArtMarketError, RateLimited
from artmarket.logging import get_logger

logger = get_logger("artmarket.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    uow: Optional[AbstractUnitOfWork] = getattr(app.state, "uow", None)
    if uow:
        await uow.open()
    try:
        yield
    finally:
        if uow:
            await uow.close()


# globals
app: FastAPI = FastAPI(title=__name__, lifespan=lifespan)


def init_app(config: ArtMarket, uow: Optional[AbstractUnitOfWork] = None) -> FastAPI:
    """FastAPI 앱을 초기화 합니다.

    :mod:`artmarket.routes` 모듈에 정의된 엔드포인트 라우팅 설정을 로드하고
    설정과 UnitOfWork 를 앱 상태에 저장합니다. UnitOfWork 를 지정하지 않으면
    설정으로부터 Cosmos/Redis 구현을 만듭니다.
    """
    import artmarket.routes  # noqa

    app.title = config.title
    app.state.config = config
    app.state.uow = uow or config.uow
    return app


def get_config(request: Request) -> ArtMarket:
    return request.app.state.config


def get_uow(request: Request) -> AbstractUnitOfWork:
    return request.app.state.uow


def get_identity(request: Request, authorization: Optional[str] = Header(None)) -> Identity:
    """``Authorization: Bearer <token>`` 헤더로 호출자를 인증합니다."""
    config = get_config(request)
    return authenticate(authorization, config.jwt_secret, config.jwt_leeway)


@app.exception_handler(ArtMarketError)
async def handle_artmarket_error(request: Request, e: ArtMarketError):
    if e.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, e.message)
    headers = None
    if isinstance(e, RateLimited):
        headers = {"Retry-After": str(e.retry_after)}
    return JSONResponse(e.to_dict(), status_code=e.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, e: RequestValidationError):
    messages = [
        "{}: {}".format(".".join(str(it) for it in err.get("loc", ())), err.get("msg"))
        for err in e.errors()
    ]
    return JSONResponse(
        {"error": "ValidationError", "message": "; ".join(messages)}, status_code=400
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, e: Exception):
    logger.exception("unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"error": "Internal", "message": "Internal Server Error"}, status_code=500
    )


class AsyncAPIClient:
    def __init__(self, session: httpx.AsyncClient, token: Optional[str] = None):
        self.session = session
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def post_to_purchase(self, *art_piece_ids: str) -> httpx.Response:
        return await self.session.post(
            "/purchase", json={"artPieceIds": list(art_piece_ids)}, headers=self.headers
        )

    async def post_to_toggle_like(self, art_piece_id: str) -> httpx.Response:
        return await self.session.post(
            "/likes/toggle", json={"artPieceId": art_piece_id}, headers=self.headers
        )

    async def post_to_toggle_cart(self, art_piece_id: str) -> httpx.Response:
        return await self.session.post(
            "/cart/toggle", json={"artPieceId": art_piece_id}, headers=self.headers
        )

    async def get_art_piece(self, art_piece_id: str) -> dict[str, Any]:
        r = await self.session.get(f"/art-pieces/{art_piece_id}")
        assert r.status_code == 200
        return r.json()["artPiece"]

    async def register(self, **fields: str) -> httpx.Response:
        return await self.session.post("/users", json=fields)

    async def login(self, username: str, password: str) -> str:
        """로그인하고 이후 요청에 받은 토큰을 사용합니다."""
        r = await self.session.post(
            "/auth/login", json={"username": username, "password": password}
        )
        assert r.status_code == 200, r.text
        token = r.json()["token"]
        self.headers = {"Authorization": f"Bearer {token}"}
        return token
