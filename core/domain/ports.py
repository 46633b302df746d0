"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .entities import (
    ConnectedAccount,
    MessageChannel,
    MessageChannelSyncStage,
    MessageFolder,
    MessageImportSyncStep,
    QueuedJob,
)


class MessageChannelRepositoryPort(ABC):
    """메시지 채널 저장소 포트"""

    @abstractmethod
    async def find_by_id(
        self,
        message_channel_id: str,
        with_relations: bool = True,
    ) -> Optional[MessageChannel]:
        """ID로 메시지 채널 조회 (연결된 계정과 폴더 포함)"""
        pass

    @abstractmethod
    async def create(self, message_channel: MessageChannel) -> MessageChannel:
        """메시지 채널 생성 (폴더 포함)"""
        pass

    @abstractmethod
    async def update(self, message_channel: MessageChannel) -> MessageChannel:
        """메시지 채널 동기화 필드 업데이트"""
        pass

    @abstractmethod
    async def create_folder(self, message_folder: MessageFolder) -> MessageFolder:
        """메시지 폴더 추가"""
        pass

    @abstractmethod
    async def update_folder(self, message_folder: MessageFolder) -> MessageFolder:
        """메시지 폴더 델타 링크 업데이트"""
        pass

    @abstractmethod
    async def list_by_sync_stages(
        self,
        sync_stages: Sequence[MessageChannelSyncStage],
        limit: int = 100,
    ) -> List[MessageChannel]:
        """동기화 활성화된 채널 중 주어진 단계에 있는 채널 목록 조회"""
        pass

    @abstractmethod
    async def list_all(self, skip: int = 0, limit: int = 100) -> List[MessageChannel]:
        """모든 메시지 채널 목록 조회"""
        pass


class ConnectedAccountRepositoryPort(ABC):
    """연결된 계정 저장소 포트"""

    @abstractmethod
    async def create(self, connected_account: ConnectedAccount) -> ConnectedAccount:
        """연결된 계정 생성"""
        pass

    @abstractmethod
    async def get_by_id(self, connected_account_id: str) -> Optional[ConnectedAccount]:
        """ID로 연결된 계정 조회"""
        pass

    @abstractmethod
    async def get_by_handle(self, workspace_id: str, handle: str) -> Optional[ConnectedAccount]:
        """핸들로 연결된 계정 조회"""
        pass

    @abstractmethod
    async def update_tokens(
        self,
        connected_account_id: str,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
    ) -> None:
        """토큰 업데이트 (암호화된 값, None인 값은 유지)"""
        pass

    @abstractmethod
    async def mark_auth_failed(self, connected_account_id: str) -> None:
        """인증 실패 시간 기록"""
        pass


class MessageImportCachePort(ABC):
    """가져오기 대기 메시지 ID 캐시 포트"""

    @abstractmethod
    async def add_message_ids(self, cache_key: str, message_ids: Sequence[str]) -> int:
        """메시지 ID 추가, 추가된 개수 반환"""
        pass

    @abstractmethod
    async def remove_message_ids(self, cache_key: str, message_ids: Sequence[str]) -> int:
        """메시지 ID 제거, 제거된 개수 반환"""
        pass

    @abstractmethod
    async def count(self, cache_key: str) -> int:
        """대기 중인 메시지 ID 개수"""
        pass

    @abstractmethod
    async def flush(self, cache_key: str) -> int:
        """키에 해당하는 모든 메시지 ID 삭제"""
        pass


class GraphApiClientPort(ABC):
    """Microsoft Graph API 클라이언트 포트"""

    @abstractmethod
    async def refresh_token(
        self,
        client_id: str,
        client_secret: Optional[str],
        tenant_id: str,
        refresh_token: str,
    ) -> dict:
        """
        토큰 갱신

        Raises:
            GraphApiNetworkError: 전송 계층 오류
            GraphApiError: HTTP 오류 응답
        """
        pass

    @abstractmethod
    async def get_message_list_delta(
        self,
        access_token: str,
        folder_external_id: Optional[str] = None,
        delta_link: Optional[str] = None,
        page_size: int = 100,
    ) -> Tuple[List[str], List[str], Optional[str]]:
        """
        폴더의 메시지 ID 델타 조회 (모든 페이지)

        Returns:
            (추가/변경된 메시지 ID 목록, 삭제된 메시지 ID 목록, 새 델타 링크)

        Raises:
            MessageImportDriverException: 분류된 Graph 오류
        """
        pass


class EncryptionServicePort(ABC):
    """암호화 서비스 포트"""

    @abstractmethod
    async def encrypt(self, data: str) -> str:
        """데이터 암호화"""
        pass

    @abstractmethod
    async def decrypt(self, encrypted_data: str) -> str:
        """데이터 복호화"""
        pass


class ConnectedAccountRefreshTokensPort(ABC):
    """자격 증명 갱신 서비스 포트"""

    @abstractmethod
    async def refresh_and_save_tokens(
        self,
        connected_account: ConnectedAccount,
        workspace_id: str,
    ) -> str:
        """
        액세스 토큰을 갱신하고 저장합니다.

        Returns:
            새 액세스 토큰 (평문)

        Raises:
            ConnectedAccountRefreshAccessTokenException: 갱신 실패
        """
        pass


class PartialMessageListFetchPort(ABC):
    """부분 메시지 목록 가져오기 전략 포트"""

    @abstractmethod
    async def process_message_list_fetch(
        self,
        message_channel: MessageChannel,
        connected_account: ConnectedAccount,
        workspace_id: str,
    ) -> None:
        pass


class FullMessageListFetchPort(ABC):
    """전체 메시지 목록 가져오기 전략 포트"""

    @abstractmethod
    async def process_message_list_fetch(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        pass


class MessageImportExceptionHandlerPort(ABC):
    """메시지 가져오기 실패 처리기 포트

    구현체는 예외를 호출자에게 다시 던지지 않아야 합니다.
    """

    @abstractmethod
    async def handle_driver_exception(
        self,
        exception: Exception,
        sync_step: MessageImportSyncStep,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        pass


class MonitoringServicePort(ABC):
    """모니터링 이벤트 포트"""

    @abstractmethod
    async def track(
        self,
        event_name: str,
        workspace_id: str,
        connected_account_id: Optional[str] = None,
        message_channel_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """이벤트 기록"""
        pass


class MessageQueuePort(ABC):
    """메시지 큐 포트"""

    @abstractmethod
    async def add(self, job_name: str, data: Dict[str, Any]) -> QueuedJob:
        """작업 적재"""
        pass

    @abstractmethod
    async def get(self) -> Optional[QueuedJob]:
        """다음 작업을 가져와 처리 중으로 표시, 없으면 None"""
        pass

    @abstractmethod
    async def complete(self, job_id: str) -> None:
        """작업 완료 표시"""
        pass

    @abstractmethod
    async def fail(self, job_id: str, error_message: str) -> None:
        """작업 실패 표시"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 데이터베이스 설정
    @abstractmethod
    def get_database_url(self) -> str:
        """데이터베이스 URL 조회"""
        pass

    # Microsoft Azure 설정
    @abstractmethod
    def get_azure_client_id(self) -> str:
        """Azure 클라이언트 ID 조회"""
        pass

    @abstractmethod
    def get_azure_client_secret(self) -> Optional[str]:
        """Azure 클라이언트 시크릿 조회"""
        pass

    @abstractmethod
    def get_azure_tenant_id(self) -> str:
        """Azure 테넌트 ID 조회"""
        pass

    # 보안 설정
    @abstractmethod
    def get_encryption_key(self) -> str:
        """암호화 키 조회"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass

    # 웹 서버 설정
    @abstractmethod
    def get_web_host(self) -> str:
        """웹 서버 호스트 조회"""
        pass

    @abstractmethod
    def get_web_port(self) -> int:
        """웹 서버 포트 조회"""
        pass

    @abstractmethod
    def get_web_workers(self) -> int:
        """웹 서버 워커 수 조회"""
        pass

    # 큐 워커 설정
    @abstractmethod
    def get_queue_backend(self) -> str:
        """큐 백엔드 조회 (database, memory)"""
        pass

    @abstractmethod
    def get_worker_concurrency(self) -> int:
        """동시 처리 작업 수 조회"""
        pass

    @abstractmethod
    def get_worker_poll_interval_seconds(self) -> float:
        """빈 큐 폴링 간격(초) 조회"""
        pass

    # 스로틀 설정
    @abstractmethod
    def get_throttle_duration_seconds(self) -> int:
        """기본 스로틀 시간(초) 조회"""
        pass

    @abstractmethod
    def get_throttle_max_duration_seconds(self) -> int:
        """최대 스로틀 시간(초) 조회"""
        pass

    @abstractmethod
    def get_throttle_max_attempts(self) -> int:
        """실패 처리 전 최대 재시도 횟수 조회"""
        pass

    # Graph API 설정
    @abstractmethod
    def get_graph_timeout_seconds(self) -> float:
        """Graph API 요청 타임아웃(초) 조회"""
        pass

    @abstractmethod
    def get_graph_page_size(self) -> int:
        """델타 조회 페이지 크기 조회"""
        pass

    # 스케줄러 설정
    @abstractmethod
    def get_cron_batch_size(self) -> int:
        """한 번에 적재할 채널 수 조회"""
        pass

    # 복합 설정 조회 메서드
    @abstractmethod
    def get_web_config(self) -> dict:
        """웹 서버 설정 조회"""
        pass
