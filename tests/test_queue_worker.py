import asyncio

import pytest
from sqlalchemy import select

from adapters.db.models import MessageQueueJobModel, MonitoringEventModel
from adapters.db.queue_repository import DatabaseMessageQueueAdapter
from adapters.factory import AdapterFactory
from adapters.worker.message_queue_worker import MessageQueueWorker
from config.adapters import TestingConfig
from conftest import WORKSPACE_ID
from core.usecases.message_list_fetch import CHANNEL_NOT_FOUND_EVENT, MESSAGE_LIST_FETCH_JOB


@pytest.fixture
def worker(database, testing_config):
    return MessageQueueWorker(
        database, AdapterFactory(testing_config), concurrency=1, poll_interval_seconds=0.01
    )


async def job_statuses(database):
    async with database.get_session() as session:
        result = await session.execute(select(MessageQueueJobModel))
        return {model.job_name: (model.status, model.error_message) for model in result.scalars()}


@pytest.mark.asyncio
async def test_drain_processes_every_job_and_records_outcomes(database, worker, mock_logger):
    async with database.get_session() as session:
        queue = DatabaseMessageQueueAdapter(session, mock_logger)
        await queue.add(MESSAGE_LIST_FETCH_JOB, {"messageChannelId": "missing", "workspaceId": WORKSPACE_ID})
        await queue.add("UnknownJob", {})

    processed = await worker.run(drain=True)

    assert processed == 2
    statuses = await job_statuses(database)
    assert statuses[MESSAGE_LIST_FETCH_JOB] == ("completed", None)
    assert statuses["UnknownJob"][0] == "failed"

    async with database.get_session() as session:
        result = await session.execute(select(MonitoringEventModel.event_name))
        assert CHANNEL_NOT_FOUND_EVENT in result.scalars().all()


@pytest.mark.asyncio
async def test_invalid_payload_fails_the_job(database, worker, mock_logger):
    async with database.get_session() as session:
        await DatabaseMessageQueueAdapter(session, mock_logger).add(
            MESSAGE_LIST_FETCH_JOB, {"messageChannelId": ""}
        )

    assert await worker.process_next() is True

    status, error_message = (await job_statuses(database))[MESSAGE_LIST_FETCH_JOB]
    assert status == "failed"
    assert "잘못된 작업 데이터" in error_message


@pytest.mark.asyncio
async def test_empty_queue_returns_false(worker):
    assert await worker.process_next() is False


@pytest.mark.asyncio
async def test_stop_event_ends_idle_worker(worker):
    stop_event = asyncio.Event()
    run_task = asyncio.create_task(worker.run(stop_event=stop_event))

    await asyncio.sleep(0.05)
    stop_event.set()

    assert await asyncio.wait_for(run_task, timeout=1) == 0


@pytest.mark.asyncio
async def test_memory_backend_shares_one_queue(database):
    factory = AdapterFactory(TestingConfig(queue_backend="memory"))

    async with database.get_session() as session:
        first = factory.create_message_queue(session)
        await first.add(MESSAGE_LIST_FETCH_JOB, {"messageChannelId": "missing", "workspaceId": WORKSPACE_ID})

    worker = MessageQueueWorker(database, factory, concurrency=1)
    assert await worker.run(drain=True) == 1
    assert factory.create_message_queue(None).pending_count() == 0
