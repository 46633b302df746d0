"""
메시지 채널 관리 유즈케이스

연결된 계정과 메시지 채널의 등록, 조회 로직을 구현합니다.
"""

from typing import List, Optional, Sequence

from ..domain.entities import (
    ConnectedAccount,
    ConnectedAccountProvider,
    MessageChannel,
    MessageFolder,
)
from ..domain.ports import (
    ConnectedAccountRepositoryPort,
    EncryptionServicePort,
    LoggerPort,
    MessageChannelRepositoryPort,
)
from .message_list_fetch_services import DEFAULT_FOLDER_NAME

DEFAULT_FOLDERS = (DEFAULT_FOLDER_NAME,)


class MessageChannelManagementUseCase:
    """메시지 채널 관리 유즈케이스"""

    def __init__(
        self,
        connected_account_repository: ConnectedAccountRepositoryPort,
        message_channel_repository: MessageChannelRepositoryPort,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
    ):
        self.connected_account_repository = connected_account_repository
        self.message_channel_repository = message_channel_repository
        self.encryption_service = encryption_service
        self.logger = logger

    async def connect_channel(
        self,
        workspace_id: str,
        handle: str,
        refresh_token: Optional[str],
        provider: ConnectedAccountProvider = ConnectedAccountProvider.MICROSOFT,
        folders: Sequence[str] = DEFAULT_FOLDERS,
    ) -> MessageChannel:
        """
        연결된 계정과 메시지 채널을 등록합니다.

        같은 워크스페이스에 같은 핸들의 계정이 있으면 그 계정을 재사용하고
        리프레시 토큰만 교체합니다.

        Args:
            workspace_id: 워크스페이스 ID
            handle: 메일 주소
            refresh_token: 리프레시 토큰 (평문, 저장 시 암호화)
            provider: 제공자
            folders: 동기화할 폴더 (Graph 폴더 ID 또는 잘 알려진 이름)

        Returns:
            생성된 메시지 채널
        """
        self.logger.info(f"채널 등록 시작: {handle}, 워크스페이스: {workspace_id}")

        encrypted_refresh_token = None
        if refresh_token:
            encrypted_refresh_token = await self.encryption_service.encrypt(refresh_token)

        connected_account = await self.connected_account_repository.get_by_handle(
            workspace_id, handle.lower()
        )
        if connected_account:
            if encrypted_refresh_token:
                await self.connected_account_repository.update_tokens(
                    connected_account.id, None, encrypted_refresh_token
                )
            self.logger.info(f"기존 연결된 계정 재사용: {connected_account.id}")
        else:
            connected_account = await self.connected_account_repository.create(
                ConnectedAccount(
                    workspace_id=workspace_id,
                    handle=handle,
                    provider=provider,
                    refresh_token=encrypted_refresh_token,
                )
            )

        message_channel = MessageChannel(
            workspace_id=workspace_id,
            connected_account_id=connected_account.id,
            handle=connected_account.handle,
        )
        message_channel.message_folders = [
            MessageFolder(message_channel_id=message_channel.id, name=name, external_id=name)
            for name in folders
        ]

        created = await self.message_channel_repository.create(message_channel)
        self.logger.info(f"채널 등록 완료: {created.id}")
        return created

    async def get_channel(self, message_channel_id: str) -> Optional[MessageChannel]:
        """메시지 채널 조회"""
        return await self.message_channel_repository.find_by_id(message_channel_id)

    async def list_channels(self, skip: int = 0, limit: int = 100) -> List[MessageChannel]:
        """메시지 채널 목록 조회"""
        return await self.message_channel_repository.list_all(skip=skip, limit=limit)
