import os

import pytest

from artmarket.test.e2e import check_port_opened

requires_redis = pytest.mark.skipif(
    not check_port_opened(int(os.environ.get("REDIS_PORT", "6379")), os.environ.get("REDIS_HOST", "127.0.0.1")),
    reason="Redis server is not running",
)

requires_cosmos = pytest.mark.skipif(
    not (os.environ.get("COSMOS_ENDPOINT") and os.environ.get("COSMOS_KEY")),
    reason="COSMOS_ENDPOINT / COSMOS_KEY are not set",
)
