"""Art Market - 아트 작품 거래 마켓플레이스 백엔드."""

__version__ = "0.3"
