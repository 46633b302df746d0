"""
자격 증명 갱신 유즈케이스

연결된 계정의 리프레시 토큰으로 새 액세스 토큰을 발급받아 암호화하여 저장합니다.
실패는 ConnectedAccountRefreshAccessTokenException 코드로 분류됩니다.
"""

from typing import Optional

from ..domain.entities import ConnectedAccount, ConnectedAccountProvider
from ..domain.exceptions import (
    ConnectedAccountRefreshAccessTokenException,
    ConnectedAccountRefreshAccessTokenExceptionCode,
    GraphApiError,
)
from ..domain.ports import (
    ConnectedAccountRefreshTokensPort,
    ConnectedAccountRepositoryPort,
    EncryptionServicePort,
    GraphApiClientPort,
    LoggerPort,
)

SUPPORTED_PROVIDERS = frozenset({ConnectedAccountProvider.MICROSOFT})


class ConnectedAccountRefreshTokensService(ConnectedAccountRefreshTokensPort):
    """자격 증명 갱신 서비스"""

    def __init__(
        self,
        connected_account_repository: ConnectedAccountRepositoryPort,
        graph_api_client: GraphApiClientPort,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
        client_id: str,
        client_secret: Optional[str],
        tenant_id: str,
    ):
        self.connected_account_repository = connected_account_repository
        self.graph_api_client = graph_api_client
        self.encryption_service = encryption_service
        self.logger = logger
        self.client_id = client_id
        self.client_secret = client_secret
        self.tenant_id = tenant_id

    async def refresh_and_save_tokens(
        self,
        connected_account: ConnectedAccount,
        workspace_id: str,
    ) -> str:
        """
        액세스 토큰을 갱신하고 저장합니다.

        Args:
            connected_account: 연결된 계정
            workspace_id: 워크스페이스 ID

        Returns:
            새 액세스 토큰 (평문)

        Raises:
            ConnectedAccountRefreshAccessTokenException: 갱신 실패
        """
        self.logger.debug(f"토큰 갱신 시작: {connected_account.id}, 워크스페이스: {workspace_id}")

        if connected_account.provider not in SUPPORTED_PROVIDERS:
            raise ConnectedAccountRefreshAccessTokenException(
                f"지원하지 않는 제공자입니다: {connected_account.provider.value}",
                ConnectedAccountRefreshAccessTokenExceptionCode.PROVIDER_NOT_SUPPORTED,
            )

        if not connected_account.has_refresh_token():
            raise ConnectedAccountRefreshAccessTokenException(
                f"리프레시 토큰이 없습니다: {connected_account.id}",
                ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_TOKEN_NOT_FOUND,
            )

        decrypted_refresh_token = await self.encryption_service.decrypt(
            connected_account.refresh_token
        )

        try:
            token_response = await self.graph_api_client.refresh_token(
                client_id=self.client_id,
                client_secret=self.client_secret,
                tenant_id=self.tenant_id,
                refresh_token=decrypted_refresh_token,
            )
        except GraphApiError as e:
            if e.is_transient():
                self.logger.warning(f"토큰 갱신 일시 오류: {connected_account.id}, {e.message}")
                raise ConnectedAccountRefreshAccessTokenException(
                    f"토큰 갱신 중 일시적인 오류가 발생했습니다: {connected_account.id}",
                    ConnectedAccountRefreshAccessTokenExceptionCode.TEMPORARY_NETWORK_ERROR,
                    reason=e.message,
                ) from e

            self.logger.error(f"토큰 갱신 실패: {connected_account.id}, {e.message}")
            raise ConnectedAccountRefreshAccessTokenException(
                f"토큰 갱신에 실패했습니다: {connected_account.id}",
                ConnectedAccountRefreshAccessTokenExceptionCode.REFRESH_ACCESS_TOKEN_FAILED,
                reason=e.error_description or e.error_code or e.message,
            ) from e

        access_token = token_response.get("access_token")
        if not access_token:
            raise ConnectedAccountRefreshAccessTokenException(
                f"토큰 응답에 액세스 토큰이 없습니다: {connected_account.id}",
                ConnectedAccountRefreshAccessTokenExceptionCode.INVALID_REFRESH_TOKEN_RESPONSE,
            )

        encrypted_access_token = await self.encryption_service.encrypt(access_token)

        # 제공자가 리프레시 토큰을 교체한 경우에만 저장
        encrypted_refresh_token = None
        if token_response.get("refresh_token"):
            encrypted_refresh_token = await self.encryption_service.encrypt(
                token_response["refresh_token"]
            )

        await self.connected_account_repository.update_tokens(
            connected_account.id,
            encrypted_access_token,
            encrypted_refresh_token,
        )

        self.logger.info(f"토큰 갱신 완료: {connected_account.id}")
        return access_token
