import asyncio
from typing import Awaitable, Optional, TypeVar

from colorama import init as init_colors

from artmarket.core import Timeout

init_colors()  # For Windows environment

from colorama import Fore, Style  # noqa: E402

T = TypeVar("T")


def fg(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러로 출력합니다."""
    return f"{color}{text}{Fore.RESET}"


def bold(text, color=Fore.WHITE):
    """텍스트를 지정된 ANSI 컬러와 밝기 효과를 주어 출력합니다."""
    return f"{Style.BRIGHT}{color}{text}{Style.RESET_ALL}"


class Deadline:
    """요청 하나가 여러 네트워크 호출에 나눠 쓰는 시간 예산.

    Example: ::

        deadline = Deadline(5.0)
        user = await deadline.run(uow[User].get(user_id, user_id))
        ...
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._expires_at: Optional[float] = None
        if timeout is not None:
            self._expires_at = asyncio.get_running_loop().time() + timeout

    @property
    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return self._expires_at - asyncio.get_running_loop().time()

    def renew(self) -> "Deadline":
        """같은 크기의 새 시간 예산. 이미 시작한 쓰기를 마무리할 때 사용합니다."""
        return Deadline(self.timeout)

    async def run(self, aw: Awaitable[T]) -> T:
        """남은 시간 안에 `aw` 를 실행합니다.

        Raises:
            Timeout: 시간 예산을 다 쓴 경우.
        """
        remaining = self.remaining
        if remaining is None:
            return await aw
        if remaining <= 0:
            if asyncio.iscoroutine(aw):
                aw.close()
            raise Timeout(f"Request deadline of {self.timeout}s exceeded")
        try:
            return await asyncio.wait_for(aw, remaining)
        except asyncio.TimeoutError as e:
            raise Timeout(f"Request deadline of {self.timeout}s exceeded") from e
