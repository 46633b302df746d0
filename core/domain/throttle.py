"""
스로틀 판단

실패가 반복되는 채널이나 현재 단계가 아직 진행 중인 채널에 대한
동기화 시도를 건너뛸지 결정합니다. I/O와 상태 변경이 없는 순수 함수입니다.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_THROTTLE_DURATION = timedelta(minutes=1)
DEFAULT_MAX_THROTTLE_DURATION = timedelta(hours=1)

# 2 ** 32배 이상은 어떤 상한보다도 크므로 지수를 제한
_MAX_EXPONENT = 32


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_throttle_pause(
    throttle_failure_count: int,
    throttle_duration: timedelta = DEFAULT_THROTTLE_DURATION,
    max_throttle_duration: timedelta = DEFAULT_MAX_THROTTLE_DURATION,
) -> timedelta:
    """
    실패 횟수에 따른 대기 시간을 계산합니다.

    실패가 없으면 기본 시간의 절반, 이후 실패마다 두 배가 되며
    max_throttle_duration을 넘지 않습니다.
    """
    exponent = min(max(throttle_failure_count, 0), _MAX_EXPONENT) - 1
    pause = throttle_duration * (2 ** exponent)
    return min(pause, max_throttle_duration)


def compute_throttle_pause_until(
    sync_stage_started_at: datetime,
    throttle_failure_count: int,
    throttle_duration: timedelta = DEFAULT_THROTTLE_DURATION,
    max_throttle_duration: timedelta = DEFAULT_MAX_THROTTLE_DURATION,
) -> datetime:
    """스로틀이 풀리는 시각을 반환합니다."""
    pause = compute_throttle_pause(
        throttle_failure_count, throttle_duration, max_throttle_duration
    )
    return _as_utc(sync_stage_started_at) + pause


def is_throttled(
    sync_stage_started_at: Optional[datetime],
    throttle_failure_count: int,
    now: Optional[datetime] = None,
    throttle_duration: timedelta = DEFAULT_THROTTLE_DURATION,
    max_throttle_duration: timedelta = DEFAULT_MAX_THROTTLE_DURATION,
) -> bool:
    """
    채널 동기화를 이번 주기에 건너뛰어야 하는지 판단합니다.

    Args:
        sync_stage_started_at: 현재 동기화 단계 시작 시간 (naive이면 UTC로 간주)
        throttle_failure_count: 연속 실패 횟수
        now: 기준 시각 (기본값: 현재 UTC 시간)
        throttle_duration: 기본 대기 시간
        max_throttle_duration: 최대 대기 시간

    Returns:
        건너뛰어야 하면 True
    """
    if sync_stage_started_at is None:
        return False

    current = _as_utc(now) if now is not None else datetime.now(timezone.utc)
    pause_until = compute_throttle_pause_until(
        sync_stage_started_at,
        throttle_failure_count,
        throttle_duration,
        max_throttle_duration,
    )
    return pause_until > current
