"""E2E 테스트 모듈입니다."""
import socket


def check_port_opened(port: int, host: str = "127.0.0.1") -> bool:
    """e2e/통합 테스트를 위해 포트 오픈 여부를 체크합니다."""
    a_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    a_socket.settimeout(1)
    try:
        return a_socket.connect_ex((host, port)) == 0
    finally:
        a_socket.close()
