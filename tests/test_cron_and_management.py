from unittest.mock import MagicMock

import pytest

from adapters.db.queue_repository import DatabaseMessageQueueAdapter
from adapters.db.repositories import (
    ConnectedAccountRepositoryAdapter,
    MessageChannelRepositoryAdapter,
)
from adapters.external.encryption_service import EncryptionServiceAdapter
from conftest import WORKSPACE_ID
from core.domain.entities import MessageChannelSyncStage
from core.domain.ports import MessageQueuePort
from core.usecases.message_channel_management import MessageChannelManagementUseCase
from core.usecases.message_list_fetch import MESSAGE_LIST_FETCH_JOB
from core.usecases.message_list_fetch_cron import FETCH_PENDING_STAGES, MessageListFetchCronUseCase


@pytest.fixture
def management(session, mock_logger):
    return MessageChannelManagementUseCase(
        connected_account_repository=ConnectedAccountRepositoryAdapter(session),
        message_channel_repository=MessageChannelRepositoryAdapter(session),
        encryption_service=EncryptionServiceAdapter("test_encryption_key_32_bytes_long", mock_logger),
        logger=mock_logger,
    )


@pytest.mark.asyncio
async def test_connect_channel_encrypts_token_and_creates_folders(management, session):
    channel = await management.connect_channel(
        WORKSPACE_ID, "User@Example.com", "plain-refresh", folders=("inbox", "sentitems")
    )

    assert channel.handle == "user@example.com"
    assert channel.sync_stage == MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING
    assert sorted(folder.external_id for folder in channel.message_folders) == ["inbox", "sentitems"]
    assert channel.connected_account.refresh_token not in (None, "plain-refresh")
    assert await management.encryption_service.decrypt(
        channel.connected_account.refresh_token
    ) == "plain-refresh"


@pytest.mark.asyncio
async def test_connect_channel_reuses_account_for_same_handle(management):
    first = await management.connect_channel(WORKSPACE_ID, "user@example.com", "token-1")
    second = await management.connect_channel(WORKSPACE_ID, "user@example.com", "token-2")

    assert first.id != second.id
    assert first.connected_account_id == second.connected_account_id

    reloaded = await management.get_channel(second.id)
    assert await management.encryption_service.decrypt(
        reloaded.connected_account.refresh_token
    ) == "token-2"
    assert len(await management.list_channels()) == 2


@pytest.mark.asyncio
async def test_cron_enqueues_channels_waiting_for_list_fetch(management, session, mock_logger):
    waiting = await management.connect_channel(WORKSPACE_ID, "a@example.com", "token")
    importing = await management.connect_channel(WORKSPACE_ID, "b@example.com", "token")
    importing.mark_stage(MessageChannelSyncStage.MESSAGES_IMPORT_PENDING)
    await management.message_channel_repository.update(importing)

    queue = DatabaseMessageQueueAdapter(session, mock_logger)
    cron = MessageListFetchCronUseCase(
        management.message_channel_repository, queue, mock_logger, batch_size=10
    )

    jobs = await cron.enqueue_pending_channels()

    assert [job.data for job in jobs] == [
        {"messageChannelId": waiting.id, "workspaceId": WORKSPACE_ID}
    ]
    assert jobs[0].job_name == MESSAGE_LIST_FETCH_JOB
    claimed = await queue.get()
    assert claimed.id == jobs[0].id


@pytest.mark.asyncio
async def test_cron_skips_disabled_channels_and_respects_batch_size(
    make_channel, mock_channel_repository, mock_logger,
):
    enabled = make_channel()
    disabled = make_channel()
    disabled.is_sync_enabled = False
    mock_channel_repository.list_by_sync_stages.return_value = [enabled, disabled]
    queue = MagicMock(spec=MessageQueuePort)

    cron = MessageListFetchCronUseCase(mock_channel_repository, queue, mock_logger, batch_size=5)
    await cron.enqueue_pending_channels()

    mock_channel_repository.list_by_sync_stages.assert_awaited_once_with(
        list(FETCH_PENDING_STAGES), limit=5
    )
    queue.add.assert_awaited_once_with(
        MESSAGE_LIST_FETCH_JOB, {"messageChannelId": "channel-1", "workspaceId": WORKSPACE_ID}
    )
