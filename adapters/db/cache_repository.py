"""
데이터베이스 기반 가져오기 대기 캐시 어댑터

Redis 집합 대신 데이터베이스 테이블에 (캐시 키, 메시지 ID) 쌍을 저장합니다.
같은 키에 같은 메시지 ID는 한 번만 저장됩니다.
"""

from typing import Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.ports import LoggerPort, MessageImportCachePort
from .models import MessageImportCacheModel


class DatabaseMessageImportCacheAdapter(MessageImportCachePort):
    """데이터베이스 기반 가져오기 대기 캐시 어댑터"""

    def __init__(self, session: AsyncSession, logger: LoggerPort):
        self.session = session
        self.logger = logger

    async def add_message_ids(self, cache_key: str, message_ids: Sequence[str]) -> int:
        """메시지 ID를 추가하고 새로 추가된 개수를 반환합니다."""
        unique_ids = list(dict.fromkeys(message_ids))
        if not unique_ids:
            return 0

        try:
            stmt = select(MessageImportCacheModel.message_id).where(
                MessageImportCacheModel.cache_key == cache_key,
                MessageImportCacheModel.message_id.in_(unique_ids),
            )
            result = await self.session.execute(stmt)
            existing_ids = set(result.scalars().all())

            new_ids = [message_id for message_id in unique_ids if message_id not in existing_ids]
            self.session.add_all(
                MessageImportCacheModel(cache_key=cache_key, message_id=message_id)
                for message_id in new_ids
            )
            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            self.logger.error(f"캐시 추가 실패: {cache_key}, 오류: {str(e)}")
            raise

        self.logger.debug(f"캐시 추가: {cache_key}, {len(new_ids)}개")
        return len(new_ids)

    async def remove_message_ids(self, cache_key: str, message_ids: Sequence[str]) -> int:
        """메시지 ID를 제거하고 제거된 개수를 반환합니다."""
        if not message_ids:
            return 0

        try:
            stmt = delete(MessageImportCacheModel).where(
                MessageImportCacheModel.cache_key == cache_key,
                MessageImportCacheModel.message_id.in_(list(message_ids)),
            )
            result = await self.session.execute(stmt)
            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            self.logger.error(f"캐시 제거 실패: {cache_key}, 오류: {str(e)}")
            raise

        self.logger.debug(f"캐시 제거: {cache_key}, {result.rowcount}개")
        return result.rowcount

    async def count(self, cache_key: str) -> int:
        """키에 저장된 메시지 ID 개수를 반환합니다."""
        stmt = select(func.count()).select_from(MessageImportCacheModel).where(
            MessageImportCacheModel.cache_key == cache_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def flush(self, cache_key: str) -> int:
        """키의 모든 메시지 ID를 제거합니다."""
        try:
            stmt = delete(MessageImportCacheModel).where(
                MessageImportCacheModel.cache_key == cache_key
            )
            result = await self.session.execute(stmt)
            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            self.logger.error(f"캐시 비우기 실패: {cache_key}, 오류: {str(e)}")
            raise

        self.logger.debug(f"캐시 비우기: {cache_key}, {result.rowcount}개")
        return result.rowcount
