from typing import Any, Optional


class ArtMarketError(Exception):
    """``ArtMarket`` 과 관련된 모든 에러의 기본 클래스.

    모든 에러는 변하지 않는 ``kind`` 문자열과 HTTP 상태 코드를 가집니다.
    """

    kind = "Internal"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """API 응답 본문으로 사용할 딕셔너리를 리턴합니다."""
        return {"error": self.kind, "message": self.message}


class Unauthenticated(ArtMarketError):
    """인증 정보가 없거나 유효하지 않을 때 발생하는 에러."""

    kind = "Unauthenticated"
    status_code = 401


class Forbidden(ArtMarketError):
    """권한이 없는 작업(자기 작품 구매 등)을 시도할 때 발생하는 에러."""

    kind = "Forbidden"
    status_code = 403


class ValidationError(ArtMarketError):
    """요청 필드가 누락되었거나 잘못되었을 때 발생하는 에러."""

    kind = "ValidationError"
    status_code = 400


class NotFound(ArtMarketError):
    kind = "NotFound"
    status_code = 404


class Conflict(ArtMarketError):
    """저장소의 문서가 읽은 이후에 변경되었을 때 발생하는 에러 (etag 불일치)."""

    kind = "Conflict"
    status_code = 409


class PartialFailure(Conflict):
    """배치 작업 중 일부 항목만 처리된 후 실패했을 때 발생하는 에러.

    이미 처리된 항목은 롤백되지 않으므로 호출자가 ``transferred`` 목록을 보고
    상태를 맞춰야 합니다. 자동 재시도 대상이 아닙니다.
    """

    kind = "PartialFailure"

    def __init__(
        self,
        message: str,
        transferred: Optional[list[Any]] = None,
        failed: Optional[str] = None,
    ):
        super().__init__(message)
        self.transferred = list(transferred or [])
        self.failed = failed

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["transferred"] = [
            it.to_dict() if hasattr(it, "to_dict") else it for it in self.transferred
        ]
        data["failed"] = self.failed
        return data


class InconsistentTransfer(PartialFailure):
    """작품 문서가 이전 파티션에서 삭제된 후 새 파티션에 생성되지 못했을 때 발생합니다.

    수동 복구가 필요한 치명적인 불일치 상태입니다.
    """

    kind = "InconsistentTransfer"
    status_code = 500


class RateLimited(ArtMarketError):
    kind = "RateLimited"
    status_code = 429

    def __init__(self, message: str, retry_after: int = 10):
        super().__init__(message)
        self.retry_after = retry_after


class Unavailable(ArtMarketError):
    """저장소나 캐시에 접근할 수 없을 때 발생하는 에러."""

    kind = "Unavailable"
    status_code = 503


class Timeout(Unavailable):
    kind = "Timeout"
    status_code = 504


class ConfigError(ArtMarketError):
    """필수 설정값이 누락되었을 때 발생하는 에러."""

    kind = "ConfigError"
