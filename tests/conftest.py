# conftest.py - 공용 픽스처
# 포트 목(mock), 엔티티 생성기, 메모리 SQLite 데이터베이스를 제공합니다.

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from adapters.db.database import DatabaseAdapter
from config.adapters import TestingConfig
from core.domain.entities import (
    ConnectedAccount,
    MessageChannel,
    MessageChannelSyncStage,
    MessageFolder,
)
from core.domain.ports import (
    ConnectedAccountRefreshTokensPort,
    ConnectedAccountRepositoryPort,
    FullMessageListFetchPort,
    GraphApiClientPort,
    LoggerPort,
    MessageChannelRepositoryPort,
    MessageImportCachePort,
    MessageImportExceptionHandlerPort,
    MonitoringServicePort,
    PartialMessageListFetchPort,
)

WORKSPACE_ID = "workspace-1"
LONG_AGO = datetime(2020, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def testing_config():
    return TestingConfig()


@pytest.fixture
def mock_logger():
    return MagicMock(spec=LoggerPort)


@pytest.fixture
def make_channel():
    """메시지 채널 엔티티 생성기 (연결된 계정과 inbox 폴더 포함)"""

    def _make(
        sync_stage=MessageChannelSyncStage.PARTIAL_MESSAGE_LIST_FETCH_PENDING,
        sync_stage_started_at=LONG_AGO,
        throttle_failure_count=0,
        folder_cursors=("https://graph.microsoft.com/v1.0/delta?token=abc",),
    ):
        account = ConnectedAccount(
            id="account-1",
            workspace_id=WORKSPACE_ID,
            handle="user@example.com",
            refresh_token="encrypted-refresh-token",
        )
        channel = MessageChannel(
            id="channel-1",
            workspace_id=WORKSPACE_ID,
            connected_account_id=account.id,
            handle=account.handle,
            sync_stage=sync_stage,
            sync_stage_started_at=sync_stage_started_at,
            throttle_failure_count=throttle_failure_count,
            connected_account=account,
        )
        channel.message_folders = [
            MessageFolder(
                id=f"folder-{index}",
                message_channel_id=channel.id,
                name=f"folder{index}",
                external_id=f"folder{index}",
                sync_cursor=cursor,
            )
            for index, cursor in enumerate(folder_cursors)
        ]
        return channel

    return _make


@pytest.fixture
def mock_channel_repository():
    return MagicMock(spec=MessageChannelRepositoryPort)


@pytest.fixture
def mock_account_repository():
    return MagicMock(spec=ConnectedAccountRepositoryPort)


@pytest.fixture
def mock_import_cache():
    cache = MagicMock(spec=MessageImportCachePort)
    cache.add_message_ids = AsyncMock(side_effect=lambda key, ids: len(ids))
    cache.remove_message_ids = AsyncMock(side_effect=lambda key, ids: len(ids))
    cache.flush = AsyncMock(return_value=0)
    return cache


@pytest.fixture
def mock_graph_client():
    return MagicMock(spec=GraphApiClientPort)


@pytest.fixture
def mock_refresh_service():
    service = MagicMock(spec=ConnectedAccountRefreshTokensPort)
    service.refresh_and_save_tokens = AsyncMock(return_value="new-access-token")
    return service


@pytest.fixture
def mock_partial_fetch():
    return MagicMock(spec=PartialMessageListFetchPort)


@pytest.fixture
def mock_full_fetch():
    return MagicMock(spec=FullMessageListFetchPort)


@pytest.fixture
def mock_exception_handler():
    return MagicMock(spec=MessageImportExceptionHandlerPort)


@pytest.fixture
def mock_monitoring():
    return MagicMock(spec=MonitoringServicePort)


@pytest_asyncio.fixture
async def database(testing_config):
    """테이블이 생성된 메모리 SQLite 데이터베이스"""
    adapter = DatabaseAdapter(testing_config)
    await adapter.initialize()
    await adapter.create_tables()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def session(database):
    async with database.get_session() as db_session:
        yield db_session


def tracked_event_names(monitoring):
    """모니터링 목에 기록된 이벤트 이름 목록"""
    return [call.kwargs["event_name"] for call in monitoring.track.call_args_list]


def minutes_ago(minutes):
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)
