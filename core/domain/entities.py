"""
도메인 엔티티 정의

메시지 채널 동기화의 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """새 엔티티 ID를 생성합니다."""
    return str(uuid4())


class ConnectedAccountProvider(str, Enum):
    """연결된 계정 제공자"""
    MICROSOFT = "microsoft"
    GOOGLE = "google"


class MessageChannelSyncStage(str, Enum):
    """메시지 채널 동기화 단계"""
    FULL_MESSAGE_LIST_FETCH_PENDING = "FULL_MESSAGE_LIST_FETCH_PENDING"
    PARTIAL_MESSAGE_LIST_FETCH_PENDING = "PARTIAL_MESSAGE_LIST_FETCH_PENDING"
    MESSAGE_LIST_FETCH_ONGOING = "MESSAGE_LIST_FETCH_ONGOING"
    MESSAGES_IMPORT_PENDING = "MESSAGES_IMPORT_PENDING"
    MESSAGES_IMPORT_ONGOING = "MESSAGES_IMPORT_ONGOING"
    FAILED = "FAILED"


class MessageChannelSyncStatus(str, Enum):
    """메시지 채널 동기화 상태"""
    NOT_SYNCED = "NOT_SYNCED"
    ONGOING = "ONGOING"
    ACTIVE = "ACTIVE"
    FAILED_INSUFFICIENT_PERMISSIONS = "FAILED_INSUFFICIENT_PERMISSIONS"
    FAILED_UNKNOWN = "FAILED_UNKNOWN"


class MessageImportSyncStep(str, Enum):
    """실패 처리기에 전달되는 동기화 단계 표시"""
    FULL_OR_PARTIAL_MESSAGE_LIST_FETCH = "FULL_OR_PARTIAL_MESSAGE_LIST_FETCH"
    MESSAGES_IMPORT = "MESSAGES_IMPORT"


class QueuedJobStatus(str, Enum):
    """큐 작업 상태"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ConnectedAccount(BaseModel):
    """연결된 계정 엔티티

    메시지 채널이 참조하는 자격 증명입니다. 채널과 수명이 독립적입니다.
    """

    id: str = Field(default_factory=new_id, description="연결된 계정 ID")
    workspace_id: str = Field(..., description="워크스페이스 ID")
    handle: str = Field(..., description="계정 핸들 (이메일 주소)")
    provider: ConnectedAccountProvider = Field(
        default=ConnectedAccountProvider.MICROSOFT, description="제공자"
    )
    access_token: Optional[str] = Field(None, description="액세스 토큰")
    refresh_token: Optional[str] = Field(None, description="리프레시 토큰 (암호화된 값)")
    auth_failed_at: Optional[datetime] = Field(None, description="인증 실패 시간")
    created_at: datetime = Field(default_factory=utc_now, description="생성 시간")
    updated_at: datetime = Field(default_factory=utc_now, description="수정 시간")

    @field_validator("handle")
    @classmethod
    def validate_handle(cls, v):
        """핸들(이메일) 형식 검증"""
        if "@" not in v:
            raise ValueError("유효한 이메일 주소가 아닙니다")
        return v.lower()

    def has_refresh_token(self) -> bool:
        """리프레시 토큰 보유 여부"""
        return bool(self.refresh_token)

    def mark_auth_failed(self) -> None:
        """인증 실패로 표시"""
        self.auth_failed_at = utc_now()
        self.updated_at = utc_now()


class MessageFolder(BaseModel):
    """메시지 폴더 엔티티"""

    id: str = Field(default_factory=new_id, description="폴더 ID")
    message_channel_id: str = Field(..., description="메시지 채널 ID")
    name: str = Field(..., description="폴더 이름")
    external_id: str = Field(..., description="Graph 폴더 ID 또는 잘 알려진 폴더 이름")
    sync_cursor: Optional[str] = Field(None, description="델타 링크")

    def has_sync_cursor(self) -> bool:
        return bool(self.sync_cursor)


class MessageChannel(BaseModel):
    """메시지 채널 엔티티

    동기화 대상 메일함입니다. sync_stage는 가져오기 서비스와 실패 처리기만 변경하며,
    작업 오케스트레이터는 읽기만 합니다.
    """

    id: str = Field(default_factory=new_id, description="메시지 채널 ID")
    workspace_id: str = Field(..., description="워크스페이스 ID")
    connected_account_id: str = Field(..., description="연결된 계정 ID")
    handle: str = Field(..., description="채널 핸들 (이메일 주소)")
    sync_stage: MessageChannelSyncStage = Field(
        default=MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING,
        description="동기화 단계",
    )
    sync_stage_started_at: Optional[datetime] = Field(None, description="현재 단계 시작 시간")
    sync_status: MessageChannelSyncStatus = Field(
        default=MessageChannelSyncStatus.NOT_SYNCED, description="동기화 상태"
    )
    throttle_failure_count: int = Field(default=0, ge=0, description="연속 실패 횟수")
    is_sync_enabled: bool = Field(default=True, description="동기화 활성화 여부")
    connected_account: Optional[ConnectedAccount] = Field(None, description="연결된 계정")
    message_folders: List[MessageFolder] = Field(default_factory=list, description="메시지 폴더 목록")
    created_at: datetime = Field(default_factory=utc_now, description="생성 시간")
    updated_at: datetime = Field(default_factory=utc_now, description="수정 시간")

    def can_fetch_partially(self) -> bool:
        """모든 폴더에 델타 링크가 있어 부분 가져오기가 가능한지 확인"""
        return bool(self.message_folders) and all(
            folder.has_sync_cursor() for folder in self.message_folders
        )

    def mark_stage(self, stage: MessageChannelSyncStage, restart_clock: bool = False) -> None:
        """동기화 단계를 변경합니다."""
        self.sync_stage = stage
        if restart_clock:
            self.sync_stage_started_at = utc_now()
        self.updated_at = utc_now()


class MessageListFetchJobData(BaseModel):
    """메시지 목록 가져오기 작업 입력

    큐 페이로드의 camelCase 키(messageChannelId, workspaceId)도 허용합니다.
    """

    model_config = ConfigDict(populate_by_name=True)

    message_channel_id: str = Field(..., alias="messageChannelId", min_length=1)
    workspace_id: str = Field(..., alias="workspaceId", min_length=1)


class QueuedJob(BaseModel):
    """큐에 적재된 작업"""

    id: str = Field(default_factory=new_id, description="작업 ID")
    queue_name: str = Field(..., description="큐 이름")
    job_name: str = Field(..., description="작업 이름")
    data: Dict[str, Any] = Field(default_factory=dict, description="작업 데이터")
    status: QueuedJobStatus = Field(default=QueuedJobStatus.PENDING, description="작업 상태")
    attempts: int = Field(default=0, description="시도 횟수")
    error_message: Optional[str] = Field(None, description="오류 메시지")
    created_at: datetime = Field(default_factory=utc_now, description="생성 시간")


class MonitoringEvent(BaseModel):
    """모니터링 이벤트"""

    event_name: str = Field(..., description="이벤트 이름")
    workspace_id: str = Field(..., description="워크스페이스 ID")
    connected_account_id: Optional[str] = Field(None, description="연결된 계정 ID")
    message_channel_id: Optional[str] = Field(None, description="메시지 채널 ID")
    message: Optional[str] = Field(None, description="메시지")
    created_at: datetime = Field(default_factory=utc_now, description="발생 시간")
