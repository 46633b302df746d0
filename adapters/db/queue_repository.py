"""
데이터베이스 기반 메시지 큐 어댑터

작업을 테이블에 저장하고, 조건부 UPDATE로 한 작업이 한 번만 가져가지도록 합니다.
여러 워커 프로세스가 같은 데이터베이스를 공유할 수 있습니다.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import QueuedJob, QueuedJobStatus, utc_now
from core.domain.ports import LoggerPort, MessageQueuePort
from .models import MessageQueueJobModel
from .repositories import as_utc

MESSAGING_QUEUE = "messaging-queue"

# 다른 워커와 경쟁에서 졌을 때 다음 작업을 시도하는 횟수
_MAX_CLAIM_ATTEMPTS = 5


class DatabaseMessageQueueAdapter(MessageQueuePort):
    """데이터베이스 기반 메시지 큐 어댑터"""

    def __init__(self, session: AsyncSession, logger: LoggerPort, queue_name: str = MESSAGING_QUEUE):
        self.session = session
        self.logger = logger
        self.queue_name = queue_name

    async def add(self, job_name: str, data: Dict[str, Any]) -> QueuedJob:
        """작업을 큐에 추가합니다."""
        job = QueuedJob(queue_name=self.queue_name, job_name=job_name, data=data)
        model = MessageQueueJobModel(
            id=job.id,
            queue_name=job.queue_name,
            job_name=job.job_name,
            data=job.data,
            status=job.status.value,
            attempts=job.attempts,
            created_at=job.created_at,
        )

        self.session.add(model)
        await self.session.commit()

        self.logger.debug(f"작업 추가: {job.job_name}, {job.id}")
        return job

    async def get(self) -> Optional[QueuedJob]:
        """가장 오래된 대기 작업을 가져와 처리 중으로 표시합니다."""
        for _ in range(_MAX_CLAIM_ATTEMPTS):
            stmt = (
                select(MessageQueueJobModel.id)
                .where(
                    MessageQueueJobModel.queue_name == self.queue_name,
                    MessageQueueJobModel.status == QueuedJobStatus.PENDING.value,
                )
                .order_by(MessageQueueJobModel.created_at)
                .limit(1)
            )
            result = await self.session.execute(stmt)
            job_id = result.scalar_one_or_none()

            if job_id is None:
                return None

            claim = (
                update(MessageQueueJobModel)
                .where(
                    MessageQueueJobModel.id == job_id,
                    MessageQueueJobModel.status == QueuedJobStatus.PENDING.value,
                )
                .values(
                    status=QueuedJobStatus.PROCESSING.value,
                    attempts=MessageQueueJobModel.attempts + 1,
                    updated_at=utc_now(),
                )
            )
            claimed = await self.session.execute(claim)
            await self.session.commit()

            if claimed.rowcount == 1:
                model = await self.session.get(MessageQueueJobModel, job_id, populate_existing=True)
                return self._model_to_entity(model)

            self.logger.debug(f"다른 워커가 먼저 가져간 작업: {job_id}")

        return None

    async def complete(self, job_id: str) -> None:
        """작업을 완료로 표시합니다."""
        await self._set_status(job_id, QueuedJobStatus.COMPLETED)

    async def fail(self, job_id: str, error_message: str) -> None:
        """작업을 실패로 표시합니다."""
        await self._set_status(job_id, QueuedJobStatus.FAILED, error_message)

    async def _set_status(
        self,
        job_id: str,
        status: QueuedJobStatus,
        error_message: Optional[str] = None,
    ) -> None:
        stmt = (
            update(MessageQueueJobModel)
            .where(MessageQueueJobModel.id == job_id)
            .values(status=status.value, error_message=error_message, updated_at=utc_now())
        )
        await self.session.execute(stmt)
        await self.session.commit()

    def _model_to_entity(self, model: MessageQueueJobModel) -> QueuedJob:
        return QueuedJob(
            id=model.id,
            queue_name=model.queue_name,
            job_name=model.job_name,
            data=model.data or {},
            status=QueuedJobStatus(model.status),
            attempts=model.attempts,
            error_message=model.error_message,
            created_at=as_utc(model.created_at),
        )
