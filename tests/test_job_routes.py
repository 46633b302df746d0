import httpx
import pytest
import pytest_asyncio

from adapters.db.database import get_db_session
from adapters.db.queue_repository import DatabaseMessageQueueAdapter
from adapters.db.repositories import (
    ConnectedAccountRepositoryAdapter,
    MessageChannelRepositoryAdapter,
)
from adapters.factory import AdapterFactory
from adapters.web.job_routes import get_factory
from conftest import WORKSPACE_ID
from core.domain.entities import ConnectedAccount, MessageChannel, MessageFolder
from core.usecases.message_list_fetch import MESSAGE_LIST_FETCH_JOB
from web_server import create_app


@pytest_asyncio.fixture
async def client(session, testing_config):
    app = create_app()

    async def _session_override():
        yield session

    app.dependency_overrides[get_db_session] = _session_override
    app.dependency_overrides[get_factory] = lambda: AdapterFactory(testing_config)

    # ASGITransport는 lifespan을 실행하지 않음
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest_asyncio.fixture
async def channel(session):
    account = await ConnectedAccountRepositoryAdapter(session).create(
        ConnectedAccount(workspace_id=WORKSPACE_ID, handle="user@example.com")
    )
    new_channel = MessageChannel(
        workspace_id=WORKSPACE_ID, connected_account_id=account.id, handle=account.handle
    )
    new_channel.message_folders = [
        MessageFolder(message_channel_id=new_channel.id, name="inbox", external_id="inbox")
    ]
    return await MessageChannelRepositoryAdapter(session).create(new_channel)


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "message-channel-sync"}


@pytest.mark.asyncio
async def test_get_channel_returns_sync_state(client, channel):
    response = await client.get(f"/message-channels/{channel.id}")

    assert response.status_code == 200
    body = response.json()
    assert body["sync_stage"] == "FULL_MESSAGE_LIST_FETCH_PENDING"
    assert body["sync_status"] == "NOT_SYNCED"
    assert body["message_folders"] == [
        {
            "id": channel.message_folders[0].id,
            "name": "inbox",
            "external_id": "inbox",
            "has_sync_cursor": False,
        }
    ]


@pytest.mark.asyncio
async def test_unknown_channel_is_404(client):
    assert (await client.get("/message-channels/missing")).status_code == 404
    assert (await client.post("/message-channels/missing/message-list-fetch")).status_code == 404


@pytest.mark.asyncio
async def test_enqueue_message_list_fetch(client, channel, session, mock_logger):
    response = await client.post(f"/message-channels/{channel.id}/message-list-fetch")

    assert response.status_code == 202
    body = response.json()
    assert body["job_name"] == MESSAGE_LIST_FETCH_JOB
    assert body["message_channel_id"] == channel.id

    job = await DatabaseMessageQueueAdapter(session, mock_logger).get()
    assert job.id == body["job_id"]
    assert job.data == {"messageChannelId": channel.id, "workspaceId": WORKSPACE_ID}
