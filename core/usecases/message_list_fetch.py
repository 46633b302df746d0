"""
메시지 목록 가져오기 유즈케이스

채널 하나에 대한 메시지 목록 가져오기 작업을 조율합니다.
- 스로틀 판단으로 실패가 반복되는 채널 보호
- 자격 증명 갱신 실패를 드라이버 예외로 변환
- 동기화 단계에 따라 부분/전체 가져오기 전략 선택
- 모든 실패를 한 곳에서 실패 처리기로 전달
"""

from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from ..domain.entities import (
    MessageChannel,
    MessageChannelSyncStage,
    MessageImportSyncStep,
    MessageListFetchJobData,
)
from ..domain.exceptions import (
    ConnectedAccountRefreshAccessTokenException,
    ConnectedAccountRefreshAccessTokenExceptionCode,
    MessageImportDriverException,
    MessageImportDriverExceptionCode,
)
from ..domain.ports import (
    ConnectedAccountRefreshTokensPort,
    FullMessageListFetchPort,
    LoggerPort,
    MessageChannelRepositoryPort,
    MessageImportExceptionHandlerPort,
    MonitoringServicePort,
    PartialMessageListFetchPort,
)
from ..domain.throttle import (
    DEFAULT_MAX_THROTTLE_DURATION,
    DEFAULT_THROTTLE_DURATION,
    is_throttled,
)

MESSAGE_LIST_FETCH_JOB = "MessageListFetchJob"

JOB_TRIGGERED_EVENT = "message_list_fetch_job.triggered"
CHANNEL_NOT_FOUND_EVENT = "message_list_fetch_job.error.message_channel_not_found"
PARTIAL_FETCH_STARTED_EVENT = "partial_message_list_fetch.started"
PARTIAL_FETCH_COMPLETED_EVENT = "partial_message_list_fetch.completed"
FULL_FETCH_STARTED_EVENT = "full_message_list_fetch.started"
FULL_FETCH_COMPLETED_EVENT = "full_message_list_fetch.completed"
INSUFFICIENT_PERMISSIONS_EVENT = "refresh_token.error.insufficient_permissions"


class StageRoute(str, Enum):
    """동기화 단계별 처리 경로"""
    PARTIAL_FETCH = "partial_fetch"
    FULL_FETCH = "full_fetch"
    IDLE = "idle"


STAGE_ROUTES: Dict[MessageChannelSyncStage, StageRoute] = {
    MessageChannelSyncStage.PARTIAL_MESSAGE_LIST_FETCH_PENDING: StageRoute.PARTIAL_FETCH,
    MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING: StageRoute.FULL_FETCH,
    MessageChannelSyncStage.MESSAGE_LIST_FETCH_ONGOING: StageRoute.IDLE,
    MessageChannelSyncStage.MESSAGES_IMPORT_PENDING: StageRoute.IDLE,
    MessageChannelSyncStage.MESSAGES_IMPORT_ONGOING: StageRoute.IDLE,
    MessageChannelSyncStage.FAILED: StageRoute.IDLE,
}

# 새 단계가 추가되면 경로를 지정할 때까지 임포트 시점에 실패
_unrouted_stages = set(MessageChannelSyncStage) - set(STAGE_ROUTES)
if _unrouted_stages:
    raise RuntimeError(
        f"경로가 지정되지 않은 동기화 단계: {sorted(stage.value for stage in _unrouted_stages)}"
    )

REFRESH_ERROR_CATEGORIES: Dict[
    ConnectedAccountRefreshAccessTokenExceptionCode, MessageImportDriverExceptionCode
] = {
    ConnectedAccountRefreshAccessTokenExceptionCode.TEMPORARY_NETWORK_ERROR:
        MessageImportDriverExceptionCode.TEMPORARY_ERROR,
    ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_ACCESS_TOKEN_FAILED:
        MessageImportDriverExceptionCode.INSUFFICIENT_PERMISSIONS,
    ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_TOKEN_NOT_FOUND:
        MessageImportDriverExceptionCode.INSUFFICIENT_PERMISSIONS,
    ConnectedAccountRefreshAccessTokenExceptionCode.PROVIDER_NOT_SUPPORTED:
        MessageImportDriverExceptionCode.PROVIDER_NOT_SUPPORTED,
}


def translate_refresh_exception(
    exception: Exception,
) -> Optional[MessageImportDriverException]:
    """
    자격 증명 갱신 실패를 드라이버 예외로 변환합니다.

    Returns:
        변환된 드라이버 예외, 알 수 없는 사유면 None (원래 예외를 그대로 다시 던져야 함)
    """
    if not isinstance(exception, ConnectedAccountRefreshAccessTokenException):
        return None

    category = REFRESH_ERROR_CATEGORIES.get(exception.code)
    if category is None:
        return None

    return MessageImportDriverException(exception.message, category)


class MessageListFetchUseCase:
    """메시지 목록 가져오기 유즈케이스

    작업 호출마다 새로 생성되며 호출 간 상태를 가지지 않습니다.
    """

    def __init__(
        self,
        message_channel_repository: MessageChannelRepositoryPort,
        refresh_tokens_service: ConnectedAccountRefreshTokensPort,
        partial_message_list_fetch_service: PartialMessageListFetchPort,
        full_message_list_fetch_service: FullMessageListFetchPort,
        exception_handler: MessageImportExceptionHandlerPort,
        monitoring_service: MonitoringServicePort,
        logger: LoggerPort,
        throttle_duration: timedelta = DEFAULT_THROTTLE_DURATION,
        max_throttle_duration: timedelta = DEFAULT_MAX_THROTTLE_DURATION,
    ):
        self.message_channel_repository = message_channel_repository
        self.refresh_tokens_service = refresh_tokens_service
        self.partial_message_list_fetch_service = partial_message_list_fetch_service
        self.full_message_list_fetch_service = full_message_list_fetch_service
        self.exception_handler = exception_handler
        self.monitoring_service = monitoring_service
        self.logger = logger
        self.throttle_duration = throttle_duration
        self.max_throttle_duration = max_throttle_duration

    async def handle(self, job_data: MessageListFetchJobData) -> None:
        """큐에서 전달된 작업을 처리합니다."""
        await self.handle_message_channel(job_data.message_channel_id, job_data.workspace_id)

    async def handle_message_channel(self, message_channel_id: str, workspace_id: str) -> None:
        """
        메시지 채널 하나의 메시지 목록을 가져옵니다.

        결과 값은 반환하지 않습니다. 결과는 모니터링 이벤트로 관찰되며,
        자격 증명 갱신이나 단계 처리 중 발생한 오류는 실패 처리기로 전달됩니다.

        Args:
            message_channel_id: 메시지 채널 ID
            workspace_id: 워크스페이스 ID
        """
        await self.monitoring_service.track(
            event_name=JOB_TRIGGERED_EVENT,
            workspace_id=workspace_id,
            message_channel_id=message_channel_id,
        )

        message_channel = await self.message_channel_repository.find_by_id(
            message_channel_id, with_relations=True
        )

        if not message_channel:
            self.logger.warning(f"메시지 채널을 찾을 수 없음: {message_channel_id}")
            await self.monitoring_service.track(
                event_name=CHANNEL_NOT_FOUND_EVENT,
                workspace_id=workspace_id,
                message_channel_id=message_channel_id,
            )
            return

        if is_throttled(
            message_channel.sync_stage_started_at,
            message_channel.throttle_failure_count,
            throttle_duration=self.throttle_duration,
            max_throttle_duration=self.max_throttle_duration,
        ):
            self.logger.debug(
                f"스로틀 중인 채널 건너뜀: {message_channel_id}, "
                f"실패 횟수: {message_channel.throttle_failure_count}"
            )
            return

        try:
            await self._refresh_access_token(message_channel, workspace_id)
            await self._route_sync_stage(message_channel, workspace_id)
        except Exception as e:
            self.logger.warning(
                f"메시지 목록 가져오기 실패: {message_channel_id}, 오류: {str(e)}"
            )
            await self.exception_handler.handle_driver_exception(
                e,
                MessageImportSyncStep.FULL_OR_PARTIAL_MESSAGE_LIST_FETCH,
                message_channel,
                workspace_id,
            )

    async def _refresh_access_token(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        """
        연결된 계정의 액세스 토큰을 갱신하고 메모리의 채널에 반영합니다.

        Raises:
            MessageImportDriverException: 알려진 갱신 실패 사유
            Exception: 알 수 없는 사유의 원래 예외 (변환하지 않음)
        """
        connected_account = message_channel.connected_account

        try:
            access_token = await self.refresh_tokens_service.refresh_and_save_tokens(
                connected_account,
                workspace_id,
            )
        except ConnectedAccountRefreshAccessTokenException as e:
            driver_exception = translate_refresh_exception(e)
            if driver_exception is None:
                raise

            if driver_exception.code == MessageImportDriverExceptionCode.INSUFFICIENT_PERMISSIONS:
                await self.monitoring_service.track(
                    event_name=INSUFFICIENT_PERMISSIONS_EVENT,
                    workspace_id=workspace_id,
                    connected_account_id=message_channel.connected_account_id,
                    message_channel_id=message_channel.id,
                    message=f"{e.code.value}: {e.reason or ''}",
                )

            raise driver_exception from e

        connected_account.access_token = access_token

    async def _route_sync_stage(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        """동기화 단계에 맞는 가져오기 전략을 실행합니다."""
        route = STAGE_ROUTES[message_channel.sync_stage]
        connected_account = message_channel.connected_account

        if route == StageRoute.PARTIAL_FETCH:
            await self.monitoring_service.track(
                event_name=PARTIAL_FETCH_STARTED_EVENT,
                workspace_id=workspace_id,
                connected_account_id=connected_account.id,
                message_channel_id=message_channel.id,
            )

            await self.partial_message_list_fetch_service.process_message_list_fetch(
                message_channel,
                connected_account,
                workspace_id,
            )

            await self.monitoring_service.track(
                event_name=PARTIAL_FETCH_COMPLETED_EVENT,
                workspace_id=workspace_id,
                connected_account_id=connected_account.id,
                message_channel_id=message_channel.id,
            )

        elif route == StageRoute.FULL_FETCH:
            await self.monitoring_service.track(
                event_name=FULL_FETCH_STARTED_EVENT,
                workspace_id=workspace_id,
                connected_account_id=connected_account.id,
                message_channel_id=message_channel.id,
            )

            await self.full_message_list_fetch_service.process_message_list_fetch(
                message_channel,
                workspace_id,
            )

            await self.monitoring_service.track(
                event_name=FULL_FETCH_COMPLETED_EVENT,
                workspace_id=workspace_id,
                connected_account_id=connected_account.id,
                message_channel_id=message_channel.id,
            )

        elif route == StageRoute.IDLE:
            self.logger.debug(
                f"가져올 단계가 아님: {message_channel.id}, 단계: {message_channel.sync_stage.value}"
            )
