"""기본 환경 설정."""

from __future__ import annotations

import os
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from artmarket.core import AbstractUnitOfWork, ConfigError
from artmarket.redis import RedisConnectInfo


@dataclass
class ArtMarketSetupConfig:
    name: str
    title: Optional[str] = None


def load_setupcfg(path: Path) -> Optional[ArtMarketSetupConfig]:
    if (path / "setup.cfg").exists():
        # 현재 경로에 "setup.cfg" 파일이 있다면 [artmarket] 섹션에서
        # name, title 정보를 읽습니다.
        config = ConfigParser()
        config.read(path / "setup.cfg")
        if "artmarket" in config:
            return ArtMarketSetupConfig(**config["artmarket"])
    return None


DURATION_UNITS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def parse_duration(value: Optional[str], default: int) -> int:
    """``"24h"``, ``"30m"``, ``"3600"`` 같은 기간 문자열을 초 단위로 바꿉니다."""
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    try:
        if value[-1] in DURATION_UNITS:
            return int(value[:-1]) * DURATION_UNITS[value[-1]]
        return int(value)
    except ValueError as e:
        raise ConfigError(f"invalid duration: {value!r}") from e


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ArtMarket:
    """ArtMarket App 설정.

    다음처럼 OS 환경변수를 이용해 값을 지정합니다. ::

        COSMOS_ENDPOINT=https://<account>.documents.azure.com:443/
        COSMOS_KEY=...
        COSMOS_DATABASE_ID=artmarket
        REDIS_HOST=<name>.redis.cache.windows.net
        REDIS_PORT=6380
        REDIS_PASSWORD=...
        REDIS_SSL=true
        JWT_SECRET=...
        JWT_EXPIRES_IN=24h
    """

    name: str = "artmarket"
    title: str = "Art Market"

    cosmos_endpoint: str = ""
    cosmos_key: str = ""
    cosmos_database_id: str = ""

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_ssl: bool = False

    jwt_secret: str = ""
    jwt_leeway: int = 2 * 60 * 60
    """토큰 만료 검증시 허용하는 시계 오차(초)."""
    jwt_expires_in: int = 24 * 60 * 60
    """로그인으로 발급하는 토큰의 유효 기간(초)."""

    api_host: str = "127.0.0.1"
    api_port: int = 5000
    request_timeout: Optional[float] = 30.0
    """구매 요청 하나가 저장소 호출에 쓸 수 있는 최대 시간(초)."""

    _uow: Optional[AbstractUnitOfWork] = field(default=None, repr=False, compare=False)

    @staticmethod
    def load_from_config(
        path: Path = Path("."), environ: Optional[Mapping[str, str]] = None
    ) -> ArtMarket:
        """`setup.cfg` 의 ``[artmarket]`` 섹션과 환경변수를 읽어 설정을 만듭니다."""
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        cfg = load_setupcfg(path)
        if cfg:
            kwargs["name"] = cfg.name
            kwargs["title"] = cfg.title or cfg.name

        timeout = env.get("REQUEST_TIMEOUT")
        kwargs.update(
            cosmos_endpoint=env.get("COSMOS_ENDPOINT", ""),
            cosmos_key=env.get("COSMOS_KEY", ""),
            cosmos_database_id=env.get("COSMOS_DATABASE_ID", ""),
            redis_host=env.get("REDIS_HOST", "localhost"),
            redis_port=int(env.get("REDIS_PORT", "6379")),
            redis_password=env.get("REDIS_PASSWORD") or None,
            redis_ssl=_env_bool(env.get("REDIS_SSL"), False),
            jwt_secret=env.get("JWT_SECRET", "").strip(),
            jwt_expires_in=parse_duration(env.get("JWT_EXPIRES_IN"), 24 * 60 * 60),
            api_host=env.get("API_HOST", "127.0.0.1"),
            api_port=int(env.get("API_PORT", "5000")),
            request_timeout=float(timeout) if timeout else 30.0,
        )
        return ArtMarket(**kwargs)

    def validate(self) -> ArtMarket:
        """필수 설정값이 모두 있는지 확인합니다.

        Raises:
            ConfigError: 누락된 설정이 있을 때 발생하는 예외.
        """
        required = {
            "COSMOS_ENDPOINT": self.cosmos_endpoint,
            "COSMOS_KEY": self.cosmos_key,
            "COSMOS_DATABASE_ID": self.cosmos_database_id,
            "JWT_SECRET": self.jwt_secret,
        }
        missing = [k for k, v in required.items() if not v]
        if missing:
            raise ConfigError(f"missing required settings: {', '.join(missing)}")
        return self

    def get_api_url(self) -> str:
        """Get API server's full url."""
        return f"http://{self.api_host}:{self.api_port}"

    @property
    def redis_conn_info(self) -> RedisConnectInfo:
        return RedisConnectInfo(
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_password,
            ssl=self.redis_ssl,
        )

    @property
    def uow(self) -> AbstractUnitOfWork:
        """프로세스 전체에서 공유하는 UnitOfWork 를 리턴합니다."""
        if not self._uow:
            from artmarket.uow import CosmosConnectInfo, CosmosUnitOfWork

            self._uow = CosmosUnitOfWork(
                CosmosConnectInfo(
                    endpoint=self.cosmos_endpoint,
                    key=self.cosmos_key,
                    database_id=self.cosmos_database_id,
                ),
                self.redis_conn_info,
            )
        return self._uow

    @uow.setter
    def uow(self, new_uow: AbstractUnitOfWork):
        self._uow = new_uow
