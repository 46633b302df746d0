"""
Microsoft Graph API 클라이언트 어댑터

Microsoft ID 플랫폼 토큰 갱신과 메일 폴더 델타 조회를 담당합니다.
토큰 엔드포인트 오류는 GraphApiError로, 델타 조회 오류는
MessageImportDriverException 코드로 분류하여 던집니다.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from core.domain.exceptions import (
    GraphApiError,
    GraphApiNetworkError,
    MessageImportDriverException,
    MessageImportDriverExceptionCode,
)
from core.domain.ports import GraphApiClientPort, LoggerPort

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
AUTH_BASE_URL = "https://login.microsoftonline.com"


def classify_graph_status(status_code: int) -> MessageImportDriverExceptionCode:
    """Graph 응답 상태 코드를 드라이버 예외 코드로 분류합니다."""
    if status_code in (401, 403):
        return MessageImportDriverExceptionCode.INSUFFICIENT_PERMISSIONS
    if status_code == 404:
        return MessageImportDriverExceptionCode.NOT_FOUND
    if status_code == 410:
        return MessageImportDriverExceptionCode.SYNC_CURSOR_ERROR
    if status_code == 429 or status_code >= 500:
        return MessageImportDriverExceptionCode.TEMPORARY_ERROR
    return MessageImportDriverExceptionCode.UNKNOWN


def _error_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class GraphApiClientAdapter(GraphApiClientPort):
    """Microsoft Graph API 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        timeout: float = 30.0,
        base_url: str = GRAPH_BASE_URL,
        auth_url: str = AUTH_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.base_url = base_url
        self.auth_url = auth_url
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def refresh_token(
        self,
        client_id: str,
        client_secret: Optional[str],
        tenant_id: str,
        refresh_token: str,
    ) -> dict:
        """리프레시 토큰으로 새 액세스 토큰을 발급받습니다."""
        self.logger.debug(f"토큰 갱신: client_id={client_id}, tenant_id={tenant_id}")

        url = f"{self.auth_url}/{tenant_id}/oauth2/v2.0/token"

        data = {
            "client_id": client_id,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "scope": "offline_access Mail.Read",
        }

        # 공개 클라이언트는 client_secret이 없을 수 있음
        if client_secret:
            data["client_secret"] = client_secret

        try:
            async with self._client() as client:
                response = await client.post(
                    url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.TransportError as e:
            self.logger.warning(f"토큰 엔드포인트 연결 실패: {str(e)}")
            raise GraphApiNetworkError(f"토큰 엔드포인트 연결 실패: {str(e)}") from e

        if response.status_code != 200:
            body = _error_body(response)
            error_msg = f"토큰 갱신 실패: {response.status_code}"
            self.logger.error(f"{error_msg} - {body.get('error', response.text)}")
            raise GraphApiError(
                error_msg,
                status_code=response.status_code,
                error_code=body.get("error"),
                error_description=body.get("error_description"),
            )

        self.logger.debug("토큰 갱신 성공")
        return response.json()

    async def get_message_list_delta(
        self,
        access_token: str,
        folder_external_id: Optional[str] = None,
        delta_link: Optional[str] = None,
        page_size: int = 100,
    ) -> Tuple[List[str], List[str], Optional[str]]:
        """
        폴더의 메시지 ID 델타를 모든 페이지에 걸쳐 조회합니다.

        delta_link가 있으면 그 이후 변경분만, 없으면 폴더 전체를 조회합니다.
        """
        if delta_link:
            url = delta_link
            params = None
        else:
            if not folder_external_id:
                raise ValueError("folder_external_id 또는 delta_link가 필요합니다")
            url = f"{self.base_url}/me/mailFolders/{folder_external_id}/messages/delta"
            params = {"$select": "id"}

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Prefer": f"odata.maxpagesize={page_size}",
        }

        message_ids: List[str] = []
        removed_message_ids: List[str] = []
        new_delta_link: Optional[str] = None

        async with self._client() as client:
            while url:
                page = await self._get_page(client, url, headers, params)
                params = None

                for item in page.get("value", []):
                    if "@removed" in item:
                        removed_message_ids.append(item["id"])
                    else:
                        message_ids.append(item["id"])

                url = page.get("@odata.nextLink")
                if not url:
                    new_delta_link = page.get("@odata.deltaLink")

        self.logger.debug(
            f"델타 조회 완료: 추가 {len(message_ids)}개, 삭제 {len(removed_message_ids)}개"
        )
        return message_ids, removed_message_ids, new_delta_link

    async def _get_page(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, str]],
    ) -> Dict[str, Any]:
        try:
            response = await client.get(url, headers=headers, params=params)
        except httpx.TransportError as e:
            raise MessageImportDriverException(
                f"Graph 연결 실패: {str(e)}",
                MessageImportDriverExceptionCode.TEMPORARY_ERROR,
            ) from e

        if response.status_code != 200:
            error = _error_body(response).get("error")
            if not isinstance(error, dict):
                error = {}
            code = classify_graph_status(response.status_code)
            message = (
                f"델타 조회 실패: {response.status_code} "
                f"{error.get('code', '')} {error.get('message', '')}".strip()
            )
            self.logger.warning(message)
            raise MessageImportDriverException(message, code)

        return response.json()
