"""
메시지 가져오기 실패 처리 유즈케이스

작업 오케스트레이터가 잡은 예외를 받아 채널 단위의 상태를 기록합니다.
- 일시 오류: 실패 횟수 증가 후 재예약, 최대 횟수 초과 시 실패 처리
- 권한 부족: 채널 실패 처리 및 계정 인증 실패 시간 기록
- 델타 링크 오류: 델타 링크 초기화 후 전체 가져오기 예약
- 그 외: 알 수 없는 실패로 처리

이 처리기는 예외를 호출자에게 다시 던지지 않습니다.
"""

from ..domain.entities import (
    MessageChannel,
    MessageChannelSyncStage,
    MessageChannelSyncStatus,
    MessageImportSyncStep,
)
from ..domain.exceptions import (
    MessageImportDriverException,
    MessageImportDriverExceptionCode,
)
from ..domain.ports import (
    ConnectedAccountRepositoryPort,
    LoggerPort,
    MessageChannelRepositoryPort,
    MessageImportCachePort,
    MessageImportExceptionHandlerPort,
)
from .message_list_fetch_services import messages_to_import_cache_key

DEFAULT_THROTTLE_MAX_ATTEMPTS = 4


class MessageImportExceptionHandler(MessageImportExceptionHandlerPort):
    """메시지 가져오기 실패 처리기"""

    def __init__(
        self,
        message_channel_repository: MessageChannelRepositoryPort,
        connected_account_repository: ConnectedAccountRepositoryPort,
        message_import_cache: MessageImportCachePort,
        logger: LoggerPort,
        throttle_max_attempts: int = DEFAULT_THROTTLE_MAX_ATTEMPTS,
    ):
        self.message_channel_repository = message_channel_repository
        self.connected_account_repository = connected_account_repository
        self.message_import_cache = message_import_cache
        self.logger = logger
        self.throttle_max_attempts = throttle_max_attempts

    async def handle_driver_exception(
        self,
        exception: Exception,
        sync_step: MessageImportSyncStep,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        """
        예외 종류에 따라 채널 상태를 갱신합니다.

        Args:
            exception: 오케스트레이터가 잡은 예외
            sync_step: 실패한 동기화 단계
            message_channel: 메시지 채널
            workspace_id: 워크스페이스 ID
        """
        code = None
        if isinstance(exception, MessageImportDriverException):
            code = exception.code

        try:
            if code == MessageImportDriverExceptionCode.NOT_FOUND:
                await self._handle_not_found(sync_step, message_channel, workspace_id)
            elif code == MessageImportDriverExceptionCode.TEMPORARY_ERROR:
                await self._handle_temporary(sync_step, message_channel, workspace_id)
            elif code == MessageImportDriverExceptionCode.INSUFFICIENT_PERMISSIONS:
                await self._handle_insufficient_permissions(message_channel, workspace_id)
            elif code == MessageImportDriverExceptionCode.SYNC_CURSOR_ERROR:
                await self._reset_and_schedule_full_fetch(message_channel, workspace_id)
            else:
                await self._handle_unknown(exception, message_channel, workspace_id)
        except Exception as e:
            self.logger.error(
                f"실패 처리 중 오류: {message_channel.id}, "
                f"원래 오류: {exception!r}, 처리 오류: {e!r}"
            )

    async def _handle_not_found(
        self,
        sync_step: MessageImportSyncStep,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        if sync_step == MessageImportSyncStep.FULL_OR_PARTIAL_MESSAGE_LIST_FETCH:
            self.logger.warning(f"목록 가져오기 대상 리소스 없음: {message_channel.id}")
            return

        await self._reset_and_schedule_full_fetch(message_channel, workspace_id)

    async def _handle_temporary(
        self,
        sync_step: MessageImportSyncStep,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        if message_channel.throttle_failure_count >= self.throttle_max_attempts:
            self.logger.warning(
                f"최대 재시도 횟수 초과: {message_channel.id}, "
                f"실패 횟수: {message_channel.throttle_failure_count}"
            )
            await self._mark_failed(
                message_channel, MessageChannelSyncStatus.FAILED_UNKNOWN, workspace_id
            )
            return

        message_channel.throttle_failure_count += 1

        if sync_step == MessageImportSyncStep.FULL_OR_PARTIAL_MESSAGE_LIST_FETCH:
            if message_channel.can_fetch_partially():
                next_stage = MessageChannelSyncStage.PARTIAL_MESSAGE_LIST_FETCH_PENDING
            else:
                next_stage = MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING
        else:
            next_stage = MessageChannelSyncStage.MESSAGES_IMPORT_PENDING

        # 스로틀 대기 시간은 마지막 실패 시점부터 계산
        message_channel.mark_stage(next_stage, restart_clock=True)
        await self.message_channel_repository.update(message_channel)

        self.logger.info(
            f"일시 오류로 재예약: {message_channel.id}, 단계: {next_stage.value}, "
            f"실패 횟수: {message_channel.throttle_failure_count}"
        )

    async def _handle_insufficient_permissions(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        await self._mark_failed(
            message_channel,
            MessageChannelSyncStatus.FAILED_INSUFFICIENT_PERMISSIONS,
            workspace_id,
        )

        if message_channel.connected_account:
            message_channel.connected_account.mark_auth_failed()
        await self.connected_account_repository.mark_auth_failed(
            message_channel.connected_account_id
        )

        self.logger.warning(
            f"권한 부족으로 채널 동기화 중단: {message_channel.id}, "
            f"계정: {message_channel.connected_account_id}"
        )

    async def _reset_and_schedule_full_fetch(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        for folder in message_channel.message_folders:
            if folder.sync_cursor:
                folder.sync_cursor = None
                await self.message_channel_repository.update_folder(folder)

        await self.message_import_cache.flush(
            messages_to_import_cache_key(workspace_id, message_channel.id)
        )

        message_channel.throttle_failure_count = 0
        message_channel.mark_stage(
            MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING, restart_clock=True
        )
        await self.message_channel_repository.update(message_channel)

        self.logger.info(f"전체 가져오기로 재설정: {message_channel.id}")

    async def _handle_unknown(
        self,
        exception: Exception,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        self.logger.error(
            f"메시지 가져오기 중 알 수 없는 오류: 채널 {message_channel.id}, "
            f"워크스페이스 {workspace_id}: {exception!r}",
            exc_info=exception,
        )
        await self._mark_failed(
            message_channel, MessageChannelSyncStatus.FAILED_UNKNOWN, workspace_id
        )

    async def _mark_failed(
        self,
        message_channel: MessageChannel,
        sync_status: MessageChannelSyncStatus,
        workspace_id: str,
    ) -> None:
        message_channel.mark_stage(MessageChannelSyncStage.FAILED)
        message_channel.sync_status = sync_status
        await self.message_channel_repository.update(message_channel)

        await self.message_import_cache.flush(
            messages_to_import_cache_key(workspace_id, message_channel.id)
        )
