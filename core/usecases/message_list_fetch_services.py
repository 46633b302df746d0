"""
메시지 목록 가져오기 서비스

Graph 델타 조회로 채널 폴더의 메시지 ID 목록을 가져와 가져오기 대기 캐시에 적재합니다.
- 전체 가져오기: 델타 링크 없이 처음부터 조회
- 부분 가져오기: 저장된 델타 링크 이후 변경분만 조회

동기화 단계는 이 서비스들과 실패 처리기만 변경합니다.
"""

from typing import List

from ..domain.entities import (
    ConnectedAccount,
    MessageChannel,
    MessageChannelSyncStage,
    MessageChannelSyncStatus,
    MessageFolder,
)
from ..domain.exceptions import (
    MessageImportDriverException,
    MessageImportDriverExceptionCode,
)
from ..domain.ports import (
    FullMessageListFetchPort,
    GraphApiClientPort,
    LoggerPort,
    MessageChannelRepositoryPort,
    MessageImportCachePort,
    PartialMessageListFetchPort,
)


DEFAULT_FOLDER_NAME = "inbox"


def messages_to_import_cache_key(workspace_id: str, message_channel_id: str) -> str:
    """가져오기 대기 메시지 ID 캐시 키"""
    return f"messages-to-import:{workspace_id}:{message_channel_id}"


class _MessageListFetchServiceBase:
    """가져오기 서비스 공통 로직"""

    def __init__(
        self,
        message_channel_repository: MessageChannelRepositoryPort,
        graph_api_client: GraphApiClientPort,
        message_import_cache: MessageImportCachePort,
        logger: LoggerPort,
        page_size: int = 100,
    ):
        self.message_channel_repository = message_channel_repository
        self.graph_api_client = graph_api_client
        self.message_import_cache = message_import_cache
        self.logger = logger
        self.page_size = page_size

    async def _mark_fetch_ongoing(self, message_channel: MessageChannel) -> None:
        message_channel.mark_stage(
            MessageChannelSyncStage.MESSAGE_LIST_FETCH_ONGOING, restart_clock=True
        )
        message_channel.sync_status = MessageChannelSyncStatus.ONGOING
        await self.message_channel_repository.update(message_channel)

    async def _mark_fetched(
        self,
        message_channel: MessageChannel,
        next_stage: MessageChannelSyncStage,
    ) -> None:
        message_channel.mark_stage(next_stage)
        message_channel.sync_status = MessageChannelSyncStatus.ACTIVE
        message_channel.throttle_failure_count = 0
        await self.message_channel_repository.update(message_channel)



class FullMessageListFetchService(_MessageListFetchServiceBase, FullMessageListFetchPort):
    """전체 메시지 목록 가져오기 서비스"""

    async def _folders_to_sync(self, message_channel: MessageChannel) -> List[MessageFolder]:
        """폴더가 없는 채널에는 기본 폴더(inbox)를 만들어 저장합니다."""
        if not message_channel.message_folders:
            folder = MessageFolder(
                message_channel_id=message_channel.id,
                name=DEFAULT_FOLDER_NAME,
                external_id=DEFAULT_FOLDER_NAME,
            )
            await self.message_channel_repository.create_folder(folder)
            message_channel.message_folders.append(folder)
            self.logger.info(f"기본 폴더 추가: {message_channel.id}, {folder.name}")
        return list(message_channel.message_folders)

    async def process_message_list_fetch(
        self,
        message_channel: MessageChannel,
        workspace_id: str,
    ) -> None:
        """
        채널의 모든 폴더에서 메시지 ID 전체 목록을 가져옵니다.

        Args:
            message_channel: 메시지 채널 (연결된 계정과 폴더 포함)
            workspace_id: 워크스페이스 ID

        Raises:
            MessageImportDriverException: 분류된 Graph 오류
        """
        self.logger.info(f"전체 메시지 목록 가져오기 시작: {message_channel.id}")

        await self._mark_fetch_ongoing(message_channel)

        access_token = message_channel.connected_account.access_token
        cache_key = messages_to_import_cache_key(workspace_id, message_channel.id)
        queued_count = 0

        for folder in await self._folders_to_sync(message_channel):
            message_ids, _, delta_link = await self.graph_api_client.get_message_list_delta(
                access_token=access_token,
                folder_external_id=folder.external_id,
                page_size=self.page_size,
            )

            queued_count += await self.message_import_cache.add_message_ids(cache_key, message_ids)

            folder.sync_cursor = delta_link
            await self.message_channel_repository.update_folder(folder)

            self.logger.debug(f"폴더 조회 완료: {folder.name}, {len(message_ids)}개")

        await self._mark_fetched(message_channel, MessageChannelSyncStage.MESSAGES_IMPORT_PENDING)

        self.logger.info(
            f"전체 메시지 목록 가져오기 완료: {message_channel.id}, 대기열 추가: {queued_count}개"
        )


class PartialMessageListFetchService(_MessageListFetchServiceBase, PartialMessageListFetchPort):
    """부분 메시지 목록 가져오기 서비스"""

    async def process_message_list_fetch(
        self,
        message_channel: MessageChannel,
        connected_account: ConnectedAccount,
        workspace_id: str,
    ) -> None:
        """
        저장된 델타 링크 이후 변경된 메시지 ID를 가져옵니다.

        변경이 없으면 채널을 다시 부분 가져오기 대기로 돌려놓습니다.

        Args:
            message_channel: 메시지 채널 (폴더 포함)
            connected_account: 연결된 계정 (갱신된 액세스 토큰 보유)
            workspace_id: 워크스페이스 ID

        Raises:
            MessageImportDriverException: 델타 링크가 없거나 Graph 오류가 발생한 경우
        """
        self.logger.info(f"부분 메시지 목록 가져오기 시작: {message_channel.id}")

        folders = list(message_channel.message_folders)
        if not folders:
            raise MessageImportDriverException(
                f"동기화할 폴더가 없는 채널입니다: {message_channel.id}",
                MessageImportDriverExceptionCode.SYNC_CURSOR_ERROR,
            )
        for folder in folders:
            if not folder.has_sync_cursor():
                raise MessageImportDriverException(
                    f"델타 링크가 없는 폴더입니다: {folder.name} ({folder.id})",
                    MessageImportDriverExceptionCode.SYNC_CURSOR_ERROR,
                )

        await self._mark_fetch_ongoing(message_channel)

        cache_key = messages_to_import_cache_key(workspace_id, message_channel.id)
        added_count = 0
        removed_count = 0

        for folder in folders:
            message_ids, removed_message_ids, delta_link = (
                await self.graph_api_client.get_message_list_delta(
                    access_token=connected_account.access_token,
                    delta_link=folder.sync_cursor,
                    page_size=self.page_size,
                )
            )

            if removed_message_ids:
                await self.message_import_cache.remove_message_ids(cache_key, removed_message_ids)
            if message_ids:
                await self.message_import_cache.add_message_ids(cache_key, message_ids)

            added_count += len(message_ids)
            removed_count += len(removed_message_ids)

            if delta_link and delta_link != folder.sync_cursor:
                folder.sync_cursor = delta_link
                await self.message_channel_repository.update_folder(folder)

        if added_count == 0 and removed_count == 0:
            self.logger.info(f"변경된 메시지 없음: {message_channel.id}")
            await self._mark_fetched(
                message_channel, MessageChannelSyncStage.PARTIAL_MESSAGE_LIST_FETCH_PENDING
            )
            return

        await self._mark_fetched(message_channel, MessageChannelSyncStage.MESSAGES_IMPORT_PENDING)

        self.logger.info(
            f"부분 메시지 목록 가져오기 완료: {message_channel.id}, "
            f"추가: {added_count}개, 삭제: {removed_count}개"
        )
