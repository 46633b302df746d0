"""
FastAPI 메시지 채널 작업 라우터

메시지 채널 상태 조회와 메시지 목록 가져오기 작업 적재를 위한 웹 인터페이스입니다.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.db.database import get_db_session
from adapters.factory import AdapterFactory, get_adapter_factory
from core.domain.entities import MessageChannel

router = APIRouter(prefix="/message-channels", tags=["message-channels"])


class MessageFolderResponse(BaseModel):
    """메시지 폴더 응답"""
    id: str
    name: str
    external_id: str
    has_sync_cursor: bool


class MessageChannelResponse(BaseModel):
    """메시지 채널 응답"""
    id: str
    workspace_id: str
    connected_account_id: str
    handle: str
    sync_stage: str
    sync_stage_started_at: Optional[datetime]
    sync_status: str
    throttle_failure_count: int
    is_sync_enabled: bool
    auth_failed_at: Optional[datetime] = None
    message_folders: List[MessageFolderResponse] = []

    @classmethod
    def from_entity(cls, channel: MessageChannel) -> "MessageChannelResponse":
        return cls(
            id=channel.id,
            workspace_id=channel.workspace_id,
            connected_account_id=channel.connected_account_id,
            handle=channel.handle,
            sync_stage=channel.sync_stage.value,
            sync_stage_started_at=channel.sync_stage_started_at,
            sync_status=channel.sync_status.value,
            throttle_failure_count=channel.throttle_failure_count,
            is_sync_enabled=channel.is_sync_enabled,
            auth_failed_at=(
                channel.connected_account.auth_failed_at if channel.connected_account else None
            ),
            message_folders=[
                MessageFolderResponse(
                    id=folder.id,
                    name=folder.name,
                    external_id=folder.external_id,
                    has_sync_cursor=folder.has_sync_cursor(),
                )
                for folder in channel.message_folders
            ],
        )


class EnqueuedJobResponse(BaseModel):
    """적재된 작업 응답"""
    job_id: str
    job_name: str
    message_channel_id: str
    workspace_id: str


def get_factory() -> AdapterFactory:
    """어댑터 팩토리 의존성"""
    return get_adapter_factory()


@router.get("/{message_channel_id}", response_model=MessageChannelResponse)
async def get_message_channel(
    message_channel_id: str,
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """메시지 채널 동기화 상태를 조회합니다."""
    repository = factory.create_message_channel_repository(session)
    channel = await repository.find_by_id(message_channel_id)

    if channel is None:
        raise HTTPException(status_code=404, detail="메시지 채널을 찾을 수 없습니다")

    return MessageChannelResponse.from_entity(channel)


@router.post(
    "/{message_channel_id}/message-list-fetch",
    response_model=EnqueuedJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enqueue_message_list_fetch(
    message_channel_id: str,
    session: AsyncSession = Depends(get_db_session),
    factory: AdapterFactory = Depends(get_factory),
):
    """메시지 목록 가져오기 작업을 큐에 넣습니다."""
    logger = factory.create_logger()

    channel = await factory.create_message_channel_repository(session).find_by_id(
        message_channel_id, with_relations=False
    )
    if channel is None:
        raise HTTPException(status_code=404, detail="메시지 채널을 찾을 수 없습니다")

    usecase = factory.create_message_list_fetch_cron_usecase(session)
    job = await usecase.enqueue_channel(channel.id, channel.workspace_id)

    logger.info(f"웹 요청으로 작업 추가: {channel.id}, 작업: {job.id}")
    return EnqueuedJobResponse(
        job_id=job.id,
        job_name=job.job_name,
        message_channel_id=channel.id,
        workspace_id=channel.workspace_id,
    )
