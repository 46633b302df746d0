"""
메시지 목록 가져오기 예약 유즈케이스

가져오기 대기 단계에 있는 채널을 찾아 채널마다 작업을 큐에 넣습니다.
"""

from typing import List

from ..domain.entities import MessageChannelSyncStage, QueuedJob
from ..domain.ports import LoggerPort, MessageChannelRepositoryPort, MessageQueuePort
from .message_list_fetch import MESSAGE_LIST_FETCH_JOB

FETCH_PENDING_STAGES = (
    MessageChannelSyncStage.FULL_MESSAGE_LIST_FETCH_PENDING,
    MessageChannelSyncStage.PARTIAL_MESSAGE_LIST_FETCH_PENDING,
)


class MessageListFetchCronUseCase:
    """메시지 목록 가져오기 예약 유즈케이스"""

    def __init__(
        self,
        message_channel_repository: MessageChannelRepositoryPort,
        message_queue: MessageQueuePort,
        logger: LoggerPort,
        batch_size: int = 100,
    ):
        self.message_channel_repository = message_channel_repository
        self.message_queue = message_queue
        self.logger = logger
        self.batch_size = batch_size

    async def enqueue_pending_channels(self) -> List[QueuedJob]:
        """
        가져오기 대기 중인 채널마다 작업을 큐에 넣습니다.

        Returns:
            큐에 추가된 작업 목록
        """
        message_channels = await self.message_channel_repository.list_by_sync_stages(
            list(FETCH_PENDING_STAGES), limit=self.batch_size
        )

        jobs = []
        for message_channel in message_channels:
            if not message_channel.is_sync_enabled:
                continue

            job = await self.message_queue.add(
                MESSAGE_LIST_FETCH_JOB,
                {
                    "messageChannelId": message_channel.id,
                    "workspaceId": message_channel.workspace_id,
                },
            )
            jobs.append(job)

        self.logger.info(f"메시지 목록 가져오기 작업 예약: {len(jobs)}개")
        return jobs

    async def enqueue_channel(self, message_channel_id: str, workspace_id: str) -> QueuedJob:
        """채널 하나의 가져오기 작업을 큐에 넣습니다."""
        job = await self.message_queue.add(
            MESSAGE_LIST_FETCH_JOB,
            {"messageChannelId": message_channel_id, "workspaceId": workspace_id},
        )
        self.logger.info(f"메시지 목록 가져오기 작업 추가: {message_channel_id}, 작업: {job.id}")
        return job
