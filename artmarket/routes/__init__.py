"""FastAPI 엔드포인트 라우팅 모듈입니다."""
from artmarket.routes import account, listing, market  # noqa
