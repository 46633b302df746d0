from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from adapters.db.cache_repository import DatabaseMessageImportCacheAdapter
from adapters.db.models import MessageQueueJobModel, MonitoringEventModel
from adapters.db.queue_repository import DatabaseMessageQueueAdapter
from adapters.db.repositories import (
    ConnectedAccountRepositoryAdapter,
    MessageChannelRepositoryAdapter,
)
from adapters.external.monitoring_service import MonitoringServiceAdapter
from adapters.external.queue_service import InMemoryMessageQueueAdapter
from conftest import LONG_AGO, WORKSPACE_ID
from core.domain.entities import (
    ConnectedAccount,
    MessageChannel,
    MessageChannelSyncStage,
    MessageFolder,
    QueuedJobStatus,
)


async def create_account(session, handle="user@example.com"):
    repository = ConnectedAccountRepositoryAdapter(session)
    return await repository.create(
        ConnectedAccount(workspace_id=WORKSPACE_ID, handle=handle, refresh_token="encrypted")
    )


async def create_channel(session, account, stage=MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING,
                         enabled=True, folders=("inbox",)):
    channel = MessageChannel(
        workspace_id=WORKSPACE_ID,
        connected_account_id=account.id,
        handle=account.handle,
        sync_stage=stage,
        sync_stage_started_at=LONG_AGO,
        is_sync_enabled=enabled,
    )
    channel.message_folders = [
        MessageFolder(message_channel_id=channel.id, name=name, external_id=name) for name in folders
    ]
    return await MessageChannelRepositoryAdapter(session).create(channel)


@pytest.mark.asyncio
async def test_account_lookup_by_handle_is_case_insensitive(session):
    account = await create_account(session)
    repository = ConnectedAccountRepositoryAdapter(session)

    found = await repository.get_by_handle(WORKSPACE_ID, "USER@example.com")

    assert found.id == account.id
    assert await repository.get_by_handle("other-workspace", "user@example.com") is None


@pytest.mark.asyncio
async def test_update_tokens_keeps_missing_values_and_clears_auth_failure(session):
    account = await create_account(session)
    repository = ConnectedAccountRepositoryAdapter(session)
    await repository.mark_auth_failed(account.id)

    failed = await repository.get_by_id(account.id)
    assert failed.auth_failed_at is not None
    assert failed.auth_failed_at.tzinfo is not None

    await repository.update_tokens(account.id, "new-access")
    updated = await repository.get_by_id(account.id)
    assert updated.access_token == "new-access"
    assert updated.refresh_token == "encrypted"
    assert updated.auth_failed_at is not None

    await repository.update_tokens(account.id, None, "rotated")
    rotated = await repository.get_by_id(account.id)
    assert rotated.access_token == "new-access"
    assert rotated.refresh_token == "rotated"
    assert rotated.auth_failed_at is None


@pytest.mark.asyncio
async def test_update_tokens_for_missing_account_raises(session):
    with pytest.raises(ValueError):
        await ConnectedAccountRepositoryAdapter(session).update_tokens("missing", "token")


@pytest.mark.asyncio
async def test_channel_is_loaded_with_account_and_folders(session):
    account = await create_account(session)
    created = await create_channel(session, account, folders=("inbox", "archive"))

    channel = await MessageChannelRepositoryAdapter(session).find_by_id(created.id)

    assert channel.connected_account.id == account.id
    assert [folder.name for folder in channel.message_folders] == ["archive", "inbox"]
    assert channel.sync_stage_started_at == LONG_AGO


@pytest.mark.asyncio
async def test_find_by_id_returns_none_for_unknown_channel(session):
    assert await MessageChannelRepositoryAdapter(session).find_by_id("missing") is None


@pytest.mark.asyncio
async def test_update_persists_sync_fields_and_folder_cursor(session):
    account = await create_account(session)
    channel = await create_channel(session, account)
    repository = MessageChannelRepositoryAdapter(session)

    channel.mark_stage(MessageChannelSyncStage.MESSAGES_IMPORT_PENDING, restart_clock=True)
    channel.throttle_failure_count = 2
    channel.message_folders[0].sync_cursor = "delta-1"
    await repository.update(channel)
    await repository.update_folder(channel.message_folders[0])

    reloaded = await repository.find_by_id(channel.id)
    assert reloaded.sync_stage == MessageChannelSyncStage.MESSAGES_IMPORT_PENDING
    assert reloaded.throttle_failure_count == 2
    assert reloaded.sync_stage_started_at > datetime(2021, 1, 1, tzinfo=timezone.utc)
    assert reloaded.message_folders[0].sync_cursor == "delta-1"
    assert reloaded.can_fetch_partially()


@pytest.mark.asyncio
async def test_list_by_sync_stages_skips_disabled_and_other_stages(session):
    account = await create_account(session)
    pending = await create_channel(session, account)
    await create_channel(session, account, enabled=False)
    await create_channel(session, account, stage=MessageChannelSyncStage.MESSAGES_IMPORT_PENDING)

    channels = await MessageChannelRepositoryAdapter(session).list_by_sync_stages(
        [MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING]
    )

    assert [channel.id for channel in channels] == [pending.id]
    assert channels[0].message_folders == []


@pytest.mark.asyncio
async def test_import_cache_deduplicates_and_flushes(session, mock_logger):
    cache = DatabaseMessageImportCacheAdapter(session, mock_logger)

    assert await cache.add_message_ids("key-a", ["m1", "m2", "m2"]) == 2
    assert await cache.add_message_ids("key-a", ["m2", "m3"]) == 1
    assert await cache.add_message_ids("key-b", ["m1"]) == 1
    assert await cache.count("key-a") == 3

    assert await cache.remove_message_ids("key-a", ["m1", "missing"]) == 1
    assert await cache.count("key-a") == 2

    assert await cache.flush("key-a") == 2
    assert await cache.count("key-a") == 0
    assert await cache.count("key-b") == 1


@pytest.mark.asyncio
async def test_database_queue_hands_out_each_job_once(session, mock_logger):
    queue = DatabaseMessageQueueAdapter(session, mock_logger)
    first = await queue.add("message-list-fetch", {"messageChannelId": "c1", "workspaceId": WORKSPACE_ID})
    second = await queue.add("message-list-fetch", {"messageChannelId": "c2", "workspaceId": WORKSPACE_ID})

    claimed_first = await queue.get()
    claimed_second = await queue.get()

    assert [claimed_first.id, claimed_second.id] == [first.id, second.id]
    assert claimed_first.status == QueuedJobStatus.PROCESSING
    assert claimed_first.attempts == 1
    assert claimed_first.data == {"messageChannelId": "c1", "workspaceId": WORKSPACE_ID}
    assert await queue.get() is None

    await queue.complete(first.id)
    await queue.fail(second.id, "boom")

    result = await session.execute(select(MessageQueueJobModel).execution_options(populate_existing=True))
    statuses = {model.id: (model.status, model.error_message) for model in result.scalars()}
    assert statuses == {first.id: ("completed", None), second.id: ("failed", "boom")}


@pytest.mark.asyncio
async def test_database_queue_ignores_other_queues(session, mock_logger):
    await DatabaseMessageQueueAdapter(session, mock_logger, queue_name="other").add("job", {})

    assert await DatabaseMessageQueueAdapter(session, mock_logger).get() is None


@pytest.mark.asyncio
async def test_in_memory_queue_is_first_in_first_out(mock_logger):
    queue = InMemoryMessageQueueAdapter(mock_logger)
    first = await queue.add("message-list-fetch", {"messageChannelId": "c1"})
    await queue.add("message-list-fetch", {"messageChannelId": "c2"})

    claimed = await queue.get()

    assert claimed.id == first.id
    assert claimed.status == QueuedJobStatus.PROCESSING
    assert queue.pending_count() == 1


@pytest.mark.asyncio
async def test_monitoring_events_are_logged_and_stored(session, mock_logger):
    monitoring = MonitoringServiceAdapter(mock_logger, session)

    await monitoring.track(
        event_name="message_list_fetch_job.triggered",
        workspace_id=WORKSPACE_ID,
        connected_account_id="account-1",
        message_channel_id="channel-1",
    )

    result = await session.execute(select(MonitoringEventModel))
    events = result.scalars().all()
    assert [event.event_name for event in events] == ["message_list_fetch_job.triggered"]
    assert events[0].message_channel_id == "channel-1"
    assert mock_logger.info.call_args.kwargs["event_name"] == "message_list_fetch_job.triggered"


@pytest.mark.asyncio
async def test_create_folder_adds_folder_to_existing_channel(session):
    account = await create_account(session)
    channel = await create_channel(session, account, folders=())
    repository = MessageChannelRepositoryAdapter(session)

    folder = MessageFolder(message_channel_id=channel.id, name="inbox", external_id="inbox")
    await repository.create_folder(folder)
    folder.sync_cursor = "delta-1"
    await repository.update_folder(folder)

    reloaded = await repository.find_by_id(channel.id)
    assert [(f.id, f.external_id, f.sync_cursor) for f in reloaded.message_folders] == [
        (folder.id, "inbox", "delta-1")
    ]
