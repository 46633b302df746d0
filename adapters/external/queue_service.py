"""
메모리 기반 메시지 큐 어댑터

단일 프로세스에서 워커와 예약 작업을 함께 실행할 때 사용합니다.
프로세스가 종료되면 큐 내용은 사라집니다.
"""

import asyncio
from typing import Any, Dict, Optional

from core.domain.entities import QueuedJob, QueuedJobStatus
from core.domain.ports import LoggerPort, MessageQueuePort


class InMemoryMessageQueueAdapter(MessageQueuePort):
    """메모리 기반 메시지 큐 어댑터"""

    def __init__(self, logger: LoggerPort, queue_name: str = "messaging-queue"):
        self.logger = logger
        self.queue_name = queue_name
        self._queue: "asyncio.Queue[str]" = asyncio.Queue()
        self._jobs: Dict[str, QueuedJob] = {}

    async def add(self, job_name: str, data: Dict[str, Any]) -> QueuedJob:
        """작업을 큐에 추가합니다."""
        job = QueuedJob(queue_name=self.queue_name, job_name=job_name, data=dict(data))
        self._jobs[job.id] = job
        await self._queue.put(job.id)

        self.logger.debug(f"작업 추가: {job.job_name}, {job.id}")
        return job

    async def get(self) -> Optional[QueuedJob]:
        """대기 작업을 하나 꺼냅니다. 없으면 None을 반환합니다."""
        try:
            job_id = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

        job = self._jobs[job_id]
        job.status = QueuedJobStatus.PROCESSING
        job.attempts += 1
        return job.model_copy()

    async def complete(self, job_id: str) -> None:
        """작업을 완료로 표시합니다."""
        self._jobs[job_id].status = QueuedJobStatus.COMPLETED

    async def fail(self, job_id: str, error_message: str) -> None:
        """작업을 실패로 표시합니다."""
        job = self._jobs[job_id]
        job.status = QueuedJobStatus.FAILED
        job.error_message = error_message

    def pending_count(self) -> int:
        """대기 중인 작업 수"""
        return self._queue.qsize()
