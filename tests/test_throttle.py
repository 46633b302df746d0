from datetime import datetime, timedelta, timezone

import pytest

from core.domain.throttle import (
    DEFAULT_MAX_THROTTLE_DURATION,
    DEFAULT_THROTTLE_DURATION,
    compute_throttle_pause,
    compute_throttle_pause_until,
    is_throttled,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_missing_stage_start_is_never_throttled():
    assert is_throttled(None, 10, now=NOW) is False


def test_pause_doubles_per_failure_and_is_capped():
    assert compute_throttle_pause(0) == DEFAULT_THROTTLE_DURATION / 2
    assert compute_throttle_pause(1) == DEFAULT_THROTTLE_DURATION
    assert compute_throttle_pause(2) == DEFAULT_THROTTLE_DURATION * 2
    assert compute_throttle_pause(3) == DEFAULT_THROTTLE_DURATION * 4
    assert compute_throttle_pause(50) == DEFAULT_MAX_THROTTLE_DURATION


def test_negative_failure_count_behaves_like_zero():
    assert compute_throttle_pause(-3) == compute_throttle_pause(0)


def test_fresh_stage_is_throttled_and_old_stage_is_not():
    assert is_throttled(NOW - timedelta(seconds=10), 0, now=NOW) is True
    assert is_throttled(NOW - timedelta(minutes=5), 0, now=NOW) is False


def test_naive_timestamps_are_treated_as_utc():
    started = (NOW - timedelta(seconds=10)).replace(tzinfo=None)
    assert compute_throttle_pause_until(started, 1) == NOW - timedelta(seconds=10) + DEFAULT_THROTTLE_DURATION
    assert is_throttled(started, 1, now=NOW) is True


@pytest.mark.parametrize("elapsed_seconds", [0, 15, 30, 45, 60, 119, 120, 240, 900, 3599, 3600, 7200])
def test_skip_decision_is_monotonic_in_failure_count(elapsed_seconds):
    started = NOW - timedelta(seconds=elapsed_seconds)
    decisions = [is_throttled(started, count, now=NOW) for count in range(0, 12)]

    # 한 번 True가 되면 실패 횟수가 늘어도 False로 돌아가지 않음
    first_skip = decisions.index(True) if True in decisions else len(decisions)
    assert all(decisions[first_skip:])


def test_custom_durations():
    started = NOW - timedelta(seconds=5)
    assert is_throttled(
        started, 1, now=NOW,
        throttle_duration=timedelta(seconds=10),
        max_throttle_duration=timedelta(seconds=20),
    ) is True
    assert is_throttled(
        started, 5, now=NOW,
        throttle_duration=timedelta(seconds=1),
        max_throttle_duration=timedelta(seconds=10),
    ) is True
    assert is_throttled(
        NOW - timedelta(seconds=5), 5, now=NOW,
        throttle_duration=timedelta(seconds=1),
        max_throttle_duration=timedelta(seconds=3),
    ) is False
