"""
메시지 큐 워커

큐에서 작업을 꺼내 메시지 목록 가져오기 유즈케이스로 전달합니다.
작업마다 데이터베이스 세션과 유즈케이스를 새로 만들고,
처리 결과에 따라 작업을 완료 또는 실패로 표시합니다.
"""

import asyncio
from typing import Optional

from pydantic import ValidationError

from adapters.db.database import DatabaseAdapter
from adapters.factory import AdapterFactory
from core.domain.entities import MessageListFetchJobData, QueuedJob
from core.domain.ports import MessageQueuePort
from core.usecases.message_list_fetch import MESSAGE_LIST_FETCH_JOB


class MessageQueueWorker:
    """메시지 큐 워커"""

    def __init__(
        self,
        database_adapter: DatabaseAdapter,
        factory: AdapterFactory,
        concurrency: int = 1,
        poll_interval_seconds: float = 1.0,
    ):
        self.database_adapter = database_adapter
        self.factory = factory
        self.concurrency = max(1, concurrency)
        self.poll_interval_seconds = poll_interval_seconds
        self.logger = factory.create_logger()
        self.processed_count = 0

    async def run(self, stop_event: Optional[asyncio.Event] = None, drain: bool = False) -> int:
        """
        워커를 실행합니다.

        Args:
            stop_event: 설정되면 현재 작업을 마치고 종료
            drain: True면 큐가 빌 때 종료

        Returns:
            처리한 작업 수
        """
        stop_event = stop_event or asyncio.Event()
        self.logger.info(f"워커 시작: 동시 처리 {self.concurrency}개")

        consumers = [
            asyncio.create_task(self._consume(index, stop_event, drain))
            for index in range(self.concurrency)
        ]
        await asyncio.gather(*consumers)

        self.logger.info(f"워커 종료: 처리한 작업 {self.processed_count}개")
        return self.processed_count

    async def _consume(self, index: int, stop_event: asyncio.Event, drain: bool) -> None:
        while not stop_event.is_set():
            processed = await self.process_next()
            if processed:
                continue
            if drain:
                return

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval_seconds)
            except asyncio.TimeoutError:
                pass

        self.logger.debug(f"소비자 {index} 종료")

    async def process_next(self) -> bool:
        """
        작업 하나를 처리합니다.

        Returns:
            처리한 작업이 있으면 True
        """
        async with self.database_adapter.get_session() as session:
            queue = self.factory.create_message_queue(session)
            job = await queue.get()
            if job is None:
                return False

            await self._process_job(job, queue, session)
            self.processed_count += 1
            return True

    async def _process_job(self, job: QueuedJob, queue: MessageQueuePort, session) -> None:
        if job.job_name != MESSAGE_LIST_FETCH_JOB:
            self.logger.error(f"알 수 없는 작업: {job.job_name}, {job.id}")
            await queue.fail(job.id, f"알 수 없는 작업: {job.job_name}")
            return

        try:
            job_data = MessageListFetchJobData.model_validate(job.data)
        except ValidationError as e:
            self.logger.error(f"잘못된 작업 데이터: {job.id}, {e.errors()}")
            await queue.fail(job.id, f"잘못된 작업 데이터: {str(e)}")
            return

        usecase = self.factory.create_message_list_fetch_usecase(session)

        try:
            await usecase.handle(job_data)
        except Exception as e:
            await session.rollback()
            self.logger.error(f"작업 처리 실패: {job.id}, 채널: {job_data.message_channel_id}, 오류: {str(e)}")
            await queue.fail(job.id, str(e))
            return

        await queue.complete(job.id)
        self.logger.debug(f"작업 완료: {job.id}")
