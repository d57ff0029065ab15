import asyncio

import pytest

from artmarket.core import Timeout
from artmarket.utils import Deadline


@pytest.mark.asyncio
async def test_deadline_without_timeout():
    deadline = Deadline()
    assert deadline.remaining is None
    assert await deadline.run(asyncio.sleep(0, "done")) == "done"


@pytest.mark.asyncio
async def test_deadline_expires():
    deadline = Deadline(0.05)
    with pytest.raises(Timeout):
        await deadline.run(asyncio.sleep(1))
    with pytest.raises(Timeout):
        await deadline.run(asyncio.sleep(0))


@pytest.mark.asyncio
async def test_renewed_deadline_has_full_budget():
    deadline = Deadline(0.05)
    await asyncio.sleep(0.06)
    with pytest.raises(Timeout):
        await deadline.run(asyncio.sleep(0))

    renewed = deadline.renew()
    assert renewed.timeout == 0.05
    assert await renewed.run(asyncio.sleep(0, "done")) == "done"
    assert Deadline().renew().remaining is None
