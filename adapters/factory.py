"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
세션이 필요 없는 어댑터는 한 번만 만들고, 세션에 묶인 어댑터와
메시지 목록 가져오기 유즈케이스는 호출마다 새로 만듭니다.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.ports import (
    ConfigPort,
    ConnectedAccountRepositoryPort,
    EncryptionServicePort,
    GraphApiClientPort,
    LoggerPort,
    MessageChannelRepositoryPort,
    MessageImportCachePort,
    MessageQueuePort,
    MonitoringServicePort,
)
from core.usecases.connected_account_refresh_tokens import ConnectedAccountRefreshTokensService
from core.usecases.message_channel_management import MessageChannelManagementUseCase
from core.usecases.message_import_exception_handler import MessageImportExceptionHandler
from core.usecases.message_list_fetch import MessageListFetchUseCase
from core.usecases.message_list_fetch_cron import MessageListFetchCronUseCase
from core.usecases.message_list_fetch_services import (
    FullMessageListFetchService,
    PartialMessageListFetchService,
)

from .db.cache_repository import DatabaseMessageImportCacheAdapter
from .db.queue_repository import DatabaseMessageQueueAdapter
from .db.repositories import ConnectedAccountRepositoryAdapter, MessageChannelRepositoryAdapter
from .external.encryption_service import EncryptionServiceAdapter
from .external.graph_api_client import GraphApiClientAdapter
from .external.monitoring_service import MonitoringServiceAdapter
from .external.queue_service import InMemoryMessageQueueAdapter
from .logger import LoggerAdapter
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(self, config: Optional[ConfigPort] = None):
        self.config = config or get_config()
        self._logger: Optional[LoggerPort] = None
        self._encryption_service: Optional[EncryptionServicePort] = None
        self._graph_api_client: Optional[GraphApiClientPort] = None
        self._memory_queue: Optional[InMemoryMessageQueueAdapter] = None

    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            self._logger = LoggerAdapter(
                name="message_sync",
                level=self.config.get_log_level(),
                format_string=self.config.get_log_format(),
            )
        return self._logger

    def create_encryption_service(self) -> EncryptionServicePort:
        """암호화 서비스 어댑터를 생성합니다."""
        if self._encryption_service is None:
            self._encryption_service = EncryptionServiceAdapter(
                encryption_key=self.config.get_encryption_key(),
                logger=self.create_logger(),
            )
        return self._encryption_service

    def create_graph_api_client(self) -> GraphApiClientPort:
        """Graph API 클라이언트 어댑터를 생성합니다."""
        if self._graph_api_client is None:
            self._graph_api_client = GraphApiClientAdapter(
                logger=self.create_logger(),
                timeout=self.config.get_graph_timeout_seconds(),
            )
        return self._graph_api_client

    def create_message_queue(self, session: AsyncSession) -> MessageQueuePort:
        """설정된 큐 백엔드에 맞는 메시지 큐를 생성합니다."""
        if self.config.get_queue_backend() == "memory":
            if self._memory_queue is None:
                self._memory_queue = InMemoryMessageQueueAdapter(logger=self.create_logger())
            return self._memory_queue
        return DatabaseMessageQueueAdapter(session, self.create_logger())

    def create_monitoring_service(self, session: Optional[AsyncSession] = None) -> MonitoringServicePort:
        """모니터링 서비스 어댑터를 생성합니다."""
        return MonitoringServiceAdapter(self.create_logger(), session)

    def create_message_channel_repository(self, session: AsyncSession) -> MessageChannelRepositoryPort:
        """메시지 채널 Repository 어댑터를 생성합니다."""
        return MessageChannelRepositoryAdapter(session)

    def create_connected_account_repository(
        self, session: AsyncSession
    ) -> ConnectedAccountRepositoryPort:
        """연결된 계정 Repository 어댑터를 생성합니다."""
        return ConnectedAccountRepositoryAdapter(session)

    def create_message_import_cache(self, session: AsyncSession) -> MessageImportCachePort:
        """가져오기 대기 캐시 어댑터를 생성합니다."""
        return DatabaseMessageImportCacheAdapter(session, self.create_logger())

    def create_message_list_fetch_usecase(self, session: AsyncSession) -> MessageListFetchUseCase:
        """메시지 목록 가져오기 유즈케이스를 생성합니다. 작업 호출마다 새로 만듭니다."""
        logger = self.create_logger()
        message_channel_repository = self.create_message_channel_repository(session)
        connected_account_repository = self.create_connected_account_repository(session)
        message_import_cache = self.create_message_import_cache(session)
        graph_api_client = self.create_graph_api_client()
        page_size = self.config.get_graph_page_size()

        refresh_tokens_service = ConnectedAccountRefreshTokensService(
            connected_account_repository=connected_account_repository,
            graph_api_client=graph_api_client,
            encryption_service=self.create_encryption_service(),
            logger=logger,
            client_id=self.config.get_azure_client_id(),
            client_secret=self.config.get_azure_client_secret(),
            tenant_id=self.config.get_azure_tenant_id(),
        )

        return MessageListFetchUseCase(
            message_channel_repository=message_channel_repository,
            refresh_tokens_service=refresh_tokens_service,
            partial_message_list_fetch_service=PartialMessageListFetchService(
                message_channel_repository, graph_api_client, message_import_cache, logger, page_size
            ),
            full_message_list_fetch_service=FullMessageListFetchService(
                message_channel_repository, graph_api_client, message_import_cache, logger, page_size
            ),
            exception_handler=MessageImportExceptionHandler(
                message_channel_repository=message_channel_repository,
                connected_account_repository=connected_account_repository,
                message_import_cache=message_import_cache,
                logger=logger,
                throttle_max_attempts=self.config.get_throttle_max_attempts(),
            ),
            monitoring_service=self.create_monitoring_service(session),
            logger=logger,
            throttle_duration=timedelta(seconds=self.config.get_throttle_duration_seconds()),
            max_throttle_duration=timedelta(
                seconds=self.config.get_throttle_max_duration_seconds()
            ),
        )

    def create_message_list_fetch_cron_usecase(
        self, session: AsyncSession
    ) -> MessageListFetchCronUseCase:
        """메시지 목록 가져오기 예약 유즈케이스를 생성합니다."""
        return MessageListFetchCronUseCase(
            message_channel_repository=self.create_message_channel_repository(session),
            message_queue=self.create_message_queue(session),
            logger=self.create_logger(),
            batch_size=self.config.get_cron_batch_size(),
        )

    def create_message_channel_management_usecase(
        self, session: AsyncSession
    ) -> MessageChannelManagementUseCase:
        """메시지 채널 관리 유즈케이스를 생성합니다."""
        return MessageChannelManagementUseCase(
            connected_account_repository=self.create_connected_account_repository(session),
            message_channel_repository=self.create_message_channel_repository(session),
            encryption_service=self.create_encryption_service(),
            logger=self.create_logger(),
        )

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(config: Optional[ConfigPort] = None) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config)
    return _factory
