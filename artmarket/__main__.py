"""``uvicorn artmarket.__main__:app`` 으로 실행되는 API 서버 진입점."""
from artmarket.api import init_app
from artmarket.config import ArtMarket

app = init_app(ArtMarket.load_from_config().validate())
