"""Command line script for ArtMarket."""
import asyncio
import os
import sys
from argparse import ArgumentParser, Namespace, RawTextHelpFormatter
from pathlib import Path
from textwrap import dedent
from typing import Optional, Sequence

import uvicorn

from artmarket.config import ArtMarket
from artmarket.core import ArtMarketError
from artmarket.logging import get_logger
from artmarket.utils import Fore, bold, fg

YELLOW, CYAN, RED, GREEN, WHITE = (
    Fore.YELLOW,
    Fore.CYAN,
    Fore.RED,
    Fore.GREEN,
    Fore.WHITE,
)
WHITE_EX, CYAN_EX = Fore.LIGHTWHITE_EX, Fore.LIGHTCYAN_EX

logger = get_logger("artmarket.command")


class ArtMarketCommand:
    def __init__(self, path: Optional[Path] = None):
        """Constructor.

        현재 경로의 `setup.cfg` 와 환경변수에서 설정을 읽습니다.
        """
        self.path = path or Path(os.path.abspath("."))
        self.config = ArtMarket.load_from_config(self.path)

    def banner(self, msg, icon=""):
        """프로젝트 배너를 표시합니다."""
        if os.name == "nt":
            icon = ""
        try:
            term_width = os.get_terminal_size().columns
        except OSError:
            term_width = 75
        banner_width = min(75, term_width)
        print("─" * banner_width)
        print(f"{icon} {msg}")
        print("─" * banner_width)

    def info(self):
        """ArtMarket 앱 설정 정보를 출력합니다."""
        dot = bold("-", YELLOW)
        config = self.config
        secret = "(set)" if config.jwt_secret else fg("(missing)", RED)
        self.banner(f"{bold('ArtMarket Information')}", icon="💡")
        print(dot, fg("Name", CYAN), "    :", fg(config.name, WHITE_EX))
        print(dot, fg("Title", CYAN), "   :", fg(config.title, WHITE_EX))
        print(dot, fg("API", CYAN), "     :", fg(config.get_api_url(), WHITE_EX))
        print(dot, fg("Cosmos", CYAN), "  :", fg(config.cosmos_endpoint or "-", WHITE_EX))
        print(dot, fg("Database", CYAN), ":", fg(config.cosmos_database_id or "-", WHITE_EX))
        print(dot, fg("Redis", CYAN), "   :", fg(config.redis_conn_info.url, WHITE_EX))
        print(dot, fg("JWT", CYAN), "     :", secret)

    def run(self, app_name: Optional[str] = None, dry_run=False, reload=False, banner=True):
        """ArtMarket API 서버를 실행합니다."""
        self.config.validate()
        if banner:
            msg = "".join(
                [
                    bold("Launching ArtMarket: ", CYAN),
                    bold(self.config.title, WHITE),
                ]
            )
            self.banner(msg, icon="🚀")

        if not app_name:
            app_name = "artmarket.__main__:app"

        if not dry_run:
            uvicorn.run(
                app_name,
                host=self.config.api_host,
                port=self.config.api_port,
                reload=reload,
            )

    def seed(self):
        """저장소를 비우고 데모 사용자와 작품을 넣습니다."""
        from artmarket.seed import seed

        self.config.validate()

        async def _seed():
            async with self.config.uow as uow:
                return await seed(uow)

        users, art_pieces = asyncio.run(_seed())
        bullet = bold("✓" if os.name != "nt" else "v", GREEN)
        for user in users:
            print(bullet, fg(user.username, CYAN), fg(user.id, WHITE_EX))
        print(bullet, bold(f"{len(art_pieces)}", YELLOW), "art pieces seeded.")


class ArtMarketCommandParser:
    """콘솔 커맨드 명령어 파서.

    실제 작업은 `ArtMarketCommand` 객체에 위임합니다.
    """

    def __init__(self, cmd: Optional[ArtMarketCommand] = None):
        """기본 생성자."""
        self.parser = ArgumentParser(
            "artmarket",
            description=f"✨ {bold('ArtMarket')} : {fg('command line utility', CYAN_EX)}",
        )
        self._subparsers = self.parser.add_subparsers(dest="command")
        self._cmd = cmd or ArtMarketCommand()

        for handler in [
            self._cmd.info,
            self._cmd.run,
            self._cmd.seed,
        ]:
            command = handler.__name__
            # 핸들러 함수의 주석을 커맨드라인 도움말로 변환합니다.
            doc = None
            if handler.__doc__:
                lines = handler.__doc__.splitlines()
                doc = lines[0] + "\n" + dedent("\n".join(lines[1:]))
            parser = self._subparsers.add_parser(
                command,
                description=doc,
                formatter_class=RawTextHelpFormatter,
            )
            if command == "run":
                parser.add_argument("app_name", metavar="app_name", nargs="?")
                parser.add_argument("--reload", action="store_true", help="코드 변경시 재시작")

    def parse_args(self, args: Sequence[str]) -> int:
        """콘솔 명령어를 해석해서 적절한 작업을 수행합니다."""
        if not args:
            self.parser.print_help()
            return 0

        ns = self.parser.parse_args(args)
        try:
            if hasattr(self, ns.command):
                getattr(self, ns.command)(ns)
            else:
                getattr(self._cmd, ns.command)()
        except ArtMarketError as e:
            print(
                f"{bold('ArtMarket ERROR:', RED)} {fg(e.message, YELLOW)}",
                file=sys.stderr,
            )
            return 1
        return 0

    def run(self, ns: Namespace):
        """`run` 명령어 처리."""
        self._cmd.run(app_name=ns.app_name, reload=ns.reload)


def console_main():
    parser = ArtMarketCommandParser()
    sys.exit(parser.parse_args(sys.argv[1:]))


if __name__ == "__main__":
    console_main()
