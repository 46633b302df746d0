from unittest.mock import AsyncMock, MagicMock

import pytest

from core.domain.entities import ConnectedAccount, ConnectedAccountProvider
from core.domain.exceptions import (
    ConnectedAccountRefreshAccessTokenException,
    ConnectedAccountRefreshAccessTokenExceptionCode,
    GraphApiError,
    GraphApiNetworkError,
)
from core.domain.ports import EncryptionServicePort
from core.usecases.connected_account_refresh_tokens import ConnectedAccountRefreshTokensService


@pytest.fixture
def mock_encryption():
    service = MagicMock(spec=EncryptionServicePort)
    service.encrypt = AsyncMock(side_effect=lambda value: f"enc({value})")
    service.decrypt = AsyncMock(side_effect=lambda value: value.replace("enc:", ""))
    return service


@pytest.fixture
def service(mock_account_repository, mock_graph_client, mock_encryption, mock_logger):
    return ConnectedAccountRefreshTokensService(
        connected_account_repository=mock_account_repository,
        graph_api_client=mock_graph_client,
        encryption_service=mock_encryption,
        logger=mock_logger,
        client_id="client-id",
        client_secret="client-secret",
        tenant_id="tenant-id",
    )


def make_account(**overrides):
    values = dict(
        id="account-1",
        workspace_id="workspace-1",
        handle="user@example.com",
        refresh_token="enc:refresh-token",
    )
    values.update(overrides)
    return ConnectedAccount(**values)


@pytest.mark.asyncio
async def test_refresh_saves_encrypted_tokens_and_returns_plain_access_token(
    service, mock_graph_client, mock_account_repository,
):
    mock_graph_client.refresh_token.return_value = {
        "access_token": "access-2",
        "refresh_token": "refresh-2",
    }

    access_token = await service.refresh_and_save_tokens(make_account(), "workspace-1")

    assert access_token == "access-2"
    mock_graph_client.refresh_token.assert_awaited_once_with(
        client_id="client-id",
        client_secret="client-secret",
        tenant_id="tenant-id",
        refresh_token="refresh-token",
    )
    mock_account_repository.update_tokens.assert_awaited_once_with(
        "account-1", "enc(access-2)", "enc(refresh-2)"
    )


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_when_not_rotated(
    service, mock_graph_client, mock_account_repository,
):
    mock_graph_client.refresh_token.return_value = {"access_token": "access-2"}

    await service.refresh_and_save_tokens(make_account(), "workspace-1")

    mock_account_repository.update_tokens.assert_awaited_once_with("account-1", "enc(access-2)", None)


async def _refresh_error(service, account):
    with pytest.raises(ConnectedAccountRefreshAccessTokenException) as exc_info:
        await service.refresh_and_save_tokens(account, "workspace-1")
    return exc_info.value


@pytest.mark.asyncio
async def test_unsupported_provider(service, mock_graph_client):
    error = await _refresh_error(service, make_account(provider=ConnectedAccountProvider.GOOGLE))

    assert error.code == ConnectedAccountRefreshAccessTokenExceptionCode.PROVIDER_NOT_SUPPORTED
    mock_graph_client.refresh_token.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_refresh_token(service, mock_graph_client):
    error = await _refresh_error(service, make_account(refresh_token=None))

    assert error.code == ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_TOKEN_NOT_FOUND
    mock_graph_client.refresh_token.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "graph_error",
    [
        GraphApiNetworkError("connection reset"),
        GraphApiError("throttled", status_code=429),
        GraphApiError("unavailable", status_code=503),
    ],
)
async def test_transient_graph_errors_are_temporary(service, mock_graph_client, graph_error):
    mock_graph_client.refresh_token.side_effect = graph_error

    error = await _refresh_error(service, make_account())

    assert error.code == ConnectedAccountRefreshAccessTokenExceptionCode.TEMPORARY_NETWORK_ERROR
    assert error.reason == graph_error.message


@pytest.mark.asyncio
async def test_rejected_refresh_token_fails_with_description(service, mock_graph_client, mock_account_repository):
    mock_graph_client.refresh_token.side_effect = GraphApiError(
        "토큰 갱신 실패: 400",
        status_code=400,
        error_code="invalid_grant",
        error_description="AADSTS70008: The refresh token has expired",
    )

    error = await _refresh_error(service, make_account())

    assert error.code == ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_ACCESS_TOKEN_FAILED
    assert error.reason == "AADSTS70008: The refresh token has expired"
    mock_account_repository.update_tokens.assert_not_awaited()


@pytest.mark.asyncio
async def test_response_without_access_token(service, mock_graph_client):
    mock_graph_client.refresh_token.return_value = {"token_type": "Bearer"}

    error = await _refresh_error(service, make_account())

    assert error.code == ConnectedAccountRefreshAccessTokenExceptionCode.INVALID_REFRESH_TOKEN_RESPONSE
