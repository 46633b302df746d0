"""
데이터베이스 Repository 어댑터

Core 레이어의 Repository 포트를 구현하는 SQLAlchemy 기반 어댑터들입니다.
SQLite 호환성을 위해 UUID를 문자열로, Enum을 값 문자열로 저장합니다.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.domain.entities import (
    ConnectedAccount,
    ConnectedAccountProvider,
    MessageChannel,
    MessageChannelSyncStage,
    MessageChannelSyncStatus,
    MessageFolder,
    utc_now,
)
from core.domain.ports import ConnectedAccountRepositoryPort, MessageChannelRepositoryPort
from .models import ConnectedAccountModel, MessageChannelModel, MessageFolderModel


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite에서 읽은 naive 시간을 UTC로 해석합니다."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def connected_account_model_to_entity(model: ConnectedAccountModel) -> ConnectedAccount:
    """연결된 계정 모델을 엔티티로 변환합니다."""
    return ConnectedAccount(
        id=model.id,
        workspace_id=model.workspace_id,
        handle=model.handle,
        provider=ConnectedAccountProvider(model.provider),
        access_token=model.access_token,
        refresh_token=model.refresh_token,
        auth_failed_at=as_utc(model.auth_failed_at),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class ConnectedAccountRepositoryAdapter(ConnectedAccountRepositoryPort):
    """연결된 계정 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, connected_account: ConnectedAccount) -> ConnectedAccount:
        """연결된 계정을 생성합니다."""
        model = ConnectedAccountModel(
            id=connected_account.id,
            workspace_id=connected_account.workspace_id,
            handle=connected_account.handle,
            provider=connected_account.provider.value,
            access_token=connected_account.access_token,
            refresh_token=connected_account.refresh_token,
            auth_failed_at=connected_account.auth_failed_at,
            created_at=connected_account.created_at,
            updated_at=connected_account.updated_at,
        )

        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)

        return connected_account_model_to_entity(model)

    async def get_by_id(self, connected_account_id: str) -> Optional[ConnectedAccount]:
        """ID로 연결된 계정을 조회합니다."""
        model = await self.session.get(ConnectedAccountModel, connected_account_id)
        if model is None:
            return None
        return connected_account_model_to_entity(model)

    async def get_by_handle(self, workspace_id: str, handle: str) -> Optional[ConnectedAccount]:
        """워크스페이스와 핸들로 연결된 계정을 조회합니다."""
        stmt = select(ConnectedAccountModel).where(
            ConnectedAccountModel.workspace_id == workspace_id,
            ConnectedAccountModel.handle == handle.lower(),
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None
        return connected_account_model_to_entity(model)

    async def update_tokens(
        self,
        connected_account_id: str,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
    ) -> None:
        """토큰을 업데이트합니다. 새 리프레시 토큰이 저장되면 인증 실패 표시를 지웁니다."""
        model = await self.session.get(ConnectedAccountModel, connected_account_id)
        if model is None:
            raise ValueError(f"연결된 계정을 찾을 수 없습니다: {connected_account_id}")

        if access_token is not None:
            model.access_token = access_token
        if refresh_token is not None:
            model.refresh_token = refresh_token
            model.auth_failed_at = None
        model.updated_at = utc_now()

        await self.session.commit()

    async def mark_auth_failed(self, connected_account_id: str) -> None:
        """인증 실패 시간을 기록합니다."""
        model = await self.session.get(ConnectedAccountModel, connected_account_id)
        if model is None:
            raise ValueError(f"연결된 계정을 찾을 수 없습니다: {connected_account_id}")

        model.auth_failed_at = utc_now()
        model.updated_at = utc_now()

        await self.session.commit()


class MessageChannelRepositoryAdapter(MessageChannelRepositoryPort):
    """메시지 채널 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _select_channel(self, with_relations: bool = True):
        stmt = select(MessageChannelModel)
        if with_relations:
            # 세션에 이미 있는 객체도 관계를 다시 읽음
            stmt = stmt.execution_options(populate_existing=True).options(
                selectinload(MessageChannelModel.connected_account),
                selectinload(MessageChannelModel.message_folders),
            )
        return stmt

    async def find_by_id(
        self,
        message_channel_id: str,
        with_relations: bool = True,
    ) -> Optional[MessageChannel]:
        """ID로 메시지 채널을 조회합니다."""
        stmt = self._select_channel(with_relations).where(
            MessageChannelModel.id == message_channel_id
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None
        return self._model_to_entity(model, with_relations)

    async def create(self, message_channel: MessageChannel) -> MessageChannel:
        """메시지 채널과 폴더를 생성합니다."""
        model = MessageChannelModel(
            id=message_channel.id,
            workspace_id=message_channel.workspace_id,
            connected_account_id=message_channel.connected_account_id,
            handle=message_channel.handle,
            sync_stage=message_channel.sync_stage.value,
            sync_stage_started_at=message_channel.sync_stage_started_at,
            sync_status=message_channel.sync_status.value,
            throttle_failure_count=message_channel.throttle_failure_count,
            is_sync_enabled=message_channel.is_sync_enabled,
            created_at=message_channel.created_at,
            updated_at=message_channel.updated_at,
            message_folders=[
                MessageFolderModel(
                    id=folder.id,
                    message_channel_id=message_channel.id,
                    name=folder.name,
                    external_id=folder.external_id,
                    sync_cursor=folder.sync_cursor,
                )
                for folder in message_channel.message_folders
            ],
        )

        self.session.add(model)
        await self.session.commit()

        return await self.find_by_id(message_channel.id)

    async def update(self, message_channel: MessageChannel) -> MessageChannel:
        """메시지 채널의 동기화 필드를 업데이트합니다. 폴더는 update_folder로 저장합니다."""
        model = await self.session.get(MessageChannelModel, message_channel.id)
        if model is None:
            raise ValueError(f"메시지 채널을 찾을 수 없습니다: {message_channel.id}")

        model.sync_stage = message_channel.sync_stage.value
        model.sync_stage_started_at = message_channel.sync_stage_started_at
        model.sync_status = message_channel.sync_status.value
        model.throttle_failure_count = message_channel.throttle_failure_count
        model.is_sync_enabled = message_channel.is_sync_enabled
        model.updated_at = utc_now()

        await self.session.commit()
        return message_channel

    async def create_folder(self, message_folder: MessageFolder) -> MessageFolder:
        """채널에 폴더를 추가합니다."""
        self.session.add(
            MessageFolderModel(
                id=message_folder.id,
                message_channel_id=message_folder.message_channel_id,
                name=message_folder.name,
                external_id=message_folder.external_id,
                sync_cursor=message_folder.sync_cursor,
            )
        )
        await self.session.commit()
        return message_folder

    async def update_folder(self, message_folder: MessageFolder) -> MessageFolder:
        """폴더의 델타 링크를 업데이트합니다."""
        model = await self.session.get(MessageFolderModel, message_folder.id)
        if model is None:
            raise ValueError(f"메시지 폴더를 찾을 수 없습니다: {message_folder.id}")

        model.sync_cursor = message_folder.sync_cursor
        model.updated_at = utc_now()

        await self.session.commit()
        return message_folder

    async def list_by_sync_stages(
        self,
        sync_stages: Sequence[MessageChannelSyncStage],
        limit: int = 100,
    ) -> List[MessageChannel]:
        """지정한 단계에 있는 채널을 오래된 순으로 조회합니다."""
        stmt = (
            self._select_channel(with_relations=False)
            .where(
                MessageChannelModel.sync_stage.in_([stage.value for stage in sync_stages]),
                MessageChannelModel.is_sync_enabled.is_(True),
            )
            .order_by(MessageChannelModel.updated_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model, False) for model in result.scalars().all()]

    async def list_all(self, skip: int = 0, limit: int = 100) -> List[MessageChannel]:
        """모든 메시지 채널을 조회합니다."""
        stmt = (
            self._select_channel(with_relations=True)
            .order_by(desc(MessageChannelModel.created_at))
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model, True) for model in result.scalars().all()]

    def _model_to_entity(
        self,
        model: MessageChannelModel,
        with_relations: bool,
    ) -> MessageChannel:
        """모델을 엔티티로 변환합니다."""
        connected_account = None
        message_folders = []

        if with_relations:
            if model.connected_account is not None:
                connected_account = connected_account_model_to_entity(model.connected_account)
            message_folders = [
                MessageFolder(
                    id=folder.id,
                    message_channel_id=folder.message_channel_id,
                    name=folder.name,
                    external_id=folder.external_id,
                    sync_cursor=folder.sync_cursor,
                )
                for folder in model.message_folders
            ]

        return MessageChannel(
            id=model.id,
            workspace_id=model.workspace_id,
            connected_account_id=model.connected_account_id,
            handle=model.handle,
            sync_stage=MessageChannelSyncStage(model.sync_stage),
            sync_stage_started_at=as_utc(model.sync_stage_started_at),
            sync_status=MessageChannelSyncStatus(model.sync_status),
            throttle_failure_count=model.throttle_failure_count,
            is_sync_enabled=model.is_sync_enabled,
            connected_account=connected_account,
            message_folders=message_folders,
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )
