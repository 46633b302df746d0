"""
모니터링 서비스 어댑터

메시지 동기화 이벤트를 로그로 남기고 monitoring_events 테이블에 저장합니다.
이벤트 저장 실패는 작업 흐름을 중단시키지 않습니다.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from adapters.db.models import MonitoringEventModel
from core.domain.entities import MonitoringEvent
from core.domain.ports import LoggerPort, MonitoringServicePort


class MonitoringServiceAdapter(MonitoringServicePort):
    """로그 + 데이터베이스 모니터링 어댑터"""

    def __init__(self, logger: LoggerPort, session: Optional[AsyncSession] = None):
        self.logger = logger
        self.session = session

    async def track(
        self,
        event_name: str,
        workspace_id: str,
        connected_account_id: Optional[str] = None,
        message_channel_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """이벤트를 기록합니다."""
        event = MonitoringEvent(
            event_name=event_name,
            workspace_id=workspace_id,
            connected_account_id=connected_account_id,
            message_channel_id=message_channel_id,
            message=message,
        )

        self.logger.info(
            f"모니터링 이벤트: {event.event_name}",
            event_name=event.event_name,
            workspace_id=event.workspace_id,
            connected_account_id=event.connected_account_id,
            message_channel_id=event.message_channel_id,
            event_message=event.message,
        )

        if self.session is None:
            return

        try:
            self.session.add(
                MonitoringEventModel(
                    event_name=event.event_name,
                    workspace_id=event.workspace_id,
                    connected_account_id=event.connected_account_id,
                    message_channel_id=event.message_channel_id,
                    message=event.message,
                    created_at=event.created_at,
                )
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            self.logger.error(f"모니터링 이벤트 저장 실패: {event.event_name}, 오류: {str(e)}")
