"""
메시지 목록 가져오기 예약 스케줄러

APScheduler의 AsyncIOScheduler로 가져오기 대기 채널 적재를 주기적으로 실행합니다.
실행이 실패하면 오류를 로그로 남기고 다음 주기를 기다립니다.
"""

from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from adapters.db.database import DatabaseAdapter
from adapters.factory import AdapterFactory

ENQUEUE_JOB_ID = "message-list-fetch-enqueue"


class MessageListFetchScheduler:
    """가져오기 대기 채널 주기 적재 스케줄러

    실행 중인 이벤트 루프 안에서 생성해야 합니다.
    """

    def __init__(
        self,
        database_adapter: DatabaseAdapter,
        factory: AdapterFactory,
        interval_seconds: int,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.database_adapter = database_adapter
        self.factory = factory
        self.interval_seconds = interval_seconds
        self.logger = factory.create_logger()
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    def register(self, run_immediately: bool = True) -> None:
        """적재 작업을 스케줄러에 등록합니다."""
        options = {}
        if run_immediately:
            options["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=ENQUEUE_JOB_ID,
            name="메시지 목록 가져오기 적재",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.interval_seconds,
            **options,
        )
        self.logger.info(f"예약 작업 등록: {ENQUEUE_JOB_ID}, 간격: {self.interval_seconds}초")

    async def run_once(self) -> int:
        """
        가져오기 대기 채널을 한 번 적재합니다.

        Returns:
            추가된 작업 수, 실패하면 0
        """
        try:
            async with self.database_adapter.get_session() as session:
                usecase = self.factory.create_message_list_fetch_cron_usecase(session)
                jobs = await usecase.enqueue_pending_channels()
        except Exception as e:
            self.logger.error(f"예약 적재 실패, 다음 주기에 재시도: {str(e)}", exc_info=e)
            return 0

        return len(jobs)

    def start(self) -> None:
        """스케줄러를 시작합니다."""
        self.register()
        self.scheduler.start()

    def shutdown(self) -> None:
        """스케줄러를 종료합니다."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.logger.info("예약 스케줄러 종료")
