"""
도메인 예외 정의

자격 증명 갱신 실패와 메시지 가져오기 드라이버 실패를 코드로 분류합니다.
"""

from enum import Enum
from typing import Optional


class ConnectedAccountRefreshAccessTokenExceptionCode(str, Enum):
    """자격 증명 갱신 실패 사유"""
    TEMPORARY_NETWORK_ERROR = "TEMPORARY_NETWORK_ERROR"
    REFRESH_ACCESS_TOKEN_FAILED = "REFRESH_ACCESS_TOKEN_FAILED"
    REFRESH_TOKEN_NOT_FOUND = "REFRESH_TOKEN_NOT_FOUND"
    PROVIDER_NOT_SUPPORTED = "PROVIDER_NOT_SUPPORTED"
    INVALID_REFRESH_TOKEN_RESPONSE = "INVALID_REFRESH_TOKEN_RESPONSE"


class MessageImportDriverExceptionCode(str, Enum):
    """메시지 가져오기 드라이버 예외 분류"""
    NOT_FOUND = "NOT_FOUND"
    TEMPORARY_ERROR = "TEMPORARY_ERROR"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    PROVIDER_NOT_SUPPORTED = "PROVIDER_NOT_SUPPORTED"
    SYNC_CURSOR_ERROR = "SYNC_CURSOR_ERROR"
    UNKNOWN = "UNKNOWN"


class ConnectedAccountRefreshAccessTokenException(Exception):
    """자격 증명 갱신 실패"""

    def __init__(
        self,
        message: str,
        code: ConnectedAccountRefreshAccessTokenExceptionCode,
        reason: Optional[str] = None,
    ):
        self.message = message
        self.code = code
        self.reason = reason
        super().__init__(message)


class MessageImportDriverException(Exception):
    """분류된 메시지 가져오기 실패"""

    def __init__(self, message: str, code: MessageImportDriverExceptionCode):
        self.message = message
        self.code = code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"MessageImportDriverException(code={self.code.value}, message={self.message!r})"


class GraphApiError(Exception):
    """Microsoft Graph / ID 플랫폼 HTTP 오류"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        error_description: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.error_description = error_description
        super().__init__(message)

    def is_transient(self) -> bool:
        """재시도로 해결될 수 있는 오류인지 확인"""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class GraphApiNetworkError(GraphApiError):
    """전송 계층 오류 (연결 실패, 타임아웃)"""


class TokenEncryptionError(Exception):
    """토큰 암호화/복호화 실패"""
