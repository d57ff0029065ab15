"""Bearer 토큰 인증과 비밀번호 해시.

HS256 으로 서명된 JWT 를 발급하고 검증하여 호출자의 :class:`Identity` 를 만듭니다.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from artmarket.core import Unauthenticated
from artmarket.domain import Role

ALGORITHM = "HS256"
BEARER = "Bearer "

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    """인증된 호출자."""

    user_id: str
    role: Role = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def verify_token(token: str, secret: str, leeway: int = 0) -> dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], options={"leeway": leeway})
    except JWTError as e:
        raise Unauthenticated(f"Invalid or expired token: {e}") from e


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """토큰 클레임에서 사용자 id(``userId`` 또는 ``sub``)와 역할을 꺼냅니다."""
    user_id = claims.get("userId") or claims.get("sub")
    if not user_id:
        raise Unauthenticated("Token missing userId claim")
    role = "admin" if claims.get("role") == "admin" else "user"
    return Identity(user_id=str(user_id), role=role)


def authenticate(authorization: Optional[str], secret: str, leeway: int = 0) -> Identity:
    """``Authorization`` 헤더 값을 검증하여 :class:`Identity` 를 리턴합니다.

    Raises:
        Unauthenticated: 헤더가 없거나 형식이 잘못되었거나 토큰이 유효하지 않을 때.
    """
    if not authorization or not authorization.startswith(BEARER):
        raise Unauthenticated("Missing or malformed Authorization header")
    token = authorization[len(BEARER) :].strip()
    if not token:
        raise Unauthenticated("Missing or malformed Authorization header")
    return identity_from_claims(verify_token(token, secret, leeway))


def create_token(
    user_id: str,
    secret: str,
    role: Role = "user",
    expires_in: int = 24 * 60 * 60,
    **claims: Any,
) -> str:
    """`user_id` 의 토큰을 발급합니다. 로그인과 테스트에서 사용합니다."""
    now = int(time.time())
    payload = {
        "userId": user_id,
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """`password` 가 저장된 해시와 맞는지 검사합니다. 해시 형식이 잘못되었으면 거짓입니다."""
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False
