"""
SQLAlchemy 데이터베이스 모델

도메인 엔티티와 매핑되는 데이터베이스 테이블 모델을 정의합니다.
SQLite 호환성을 위해 UUID는 String으로, 작업 데이터는 JSON으로 처리합니다.
시간은 UTC로 저장합니다.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    JSON,
)
from sqlalchemy.orm import declarative_base, relationship


def now_utc() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


Base = declarative_base()


class ConnectedAccountModel(Base):
    """연결된 계정 테이블 모델"""

    __tablename__ = "connected_accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    workspace_id = Column(String(36), nullable=False, index=True)
    handle = Column(String(255), nullable=False, index=True)
    provider = Column(String(50), nullable=False, default="microsoft")
    access_token = Column(Text)  # 암호화된 값
    refresh_token = Column(Text)  # 암호화된 값
    auth_failed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index("idx_connected_accounts_workspace_handle", "workspace_id", "handle", unique=True),
    )

    message_channels = relationship("MessageChannelModel", back_populates="connected_account")


class MessageChannelModel(Base):
    """메시지 채널 테이블 모델"""

    __tablename__ = "message_channels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    workspace_id = Column(String(36), nullable=False, index=True)
    connected_account_id = Column(
        String(36), ForeignKey("connected_accounts.id"), nullable=False, index=True
    )
    handle = Column(String(255), nullable=False)
    sync_stage = Column(String(50), nullable=False, index=True)  # MessageChannelSyncStage
    sync_stage_started_at = Column(DateTime(timezone=True))
    sync_status = Column(String(50), nullable=False)  # MessageChannelSyncStatus
    throttle_failure_count = Column(Integer, nullable=False, default=0)
    is_sync_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index("idx_message_channels_stage_enabled", "sync_stage", "is_sync_enabled"),
    )

    connected_account = relationship("ConnectedAccountModel", back_populates="message_channels")
    message_folders = relationship(
        "MessageFolderModel",
        back_populates="message_channel",
        cascade="all, delete-orphan",
        order_by="MessageFolderModel.name",
    )


class MessageFolderModel(Base):
    """메시지 폴더 테이블 모델"""

    __tablename__ = "message_folders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    message_channel_id = Column(
        String(36), ForeignKey("message_channels.id"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    external_id = Column(String(255), nullable=False)
    sync_cursor = Column(Text)  # 델타 링크
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    message_channel = relationship("MessageChannelModel", back_populates="message_folders")


class MessageImportCacheModel(Base):
    """가져오기 대기 메시지 ID 테이블 모델"""

    __tablename__ = "message_import_cache"

    cache_key = Column(String(255), primary_key=True)
    message_id = Column(String(255), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)


class MessageQueueJobModel(Base):
    """메시지 큐 작업 테이블 모델"""

    __tablename__ = "message_queue_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    queue_name = Column(String(100), nullable=False, index=True)
    job_name = Column(String(100), nullable=False)
    data = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)  # QueuedJobStatus
    attempts = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=now_utc, index=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index("idx_message_queue_jobs_queue_status_created", "queue_name", "status", "created_at"),
    )


class MonitoringEventModel(Base):
    """모니터링 이벤트 테이블 모델"""

    __tablename__ = "monitoring_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_name = Column(String(255), nullable=False, index=True)
    workspace_id = Column(String(36), nullable=False, index=True)
    connected_account_id = Column(String(36))
    message_channel_id = Column(String(36), index=True)
    message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=now_utc, index=True)
