"""
Tests for the SM-2 item scheduler.

This module covers:
1. Interval progression for remembered items
2. Same-day reset for struggled items
3. Ease factor adjustment and its 1.3 floor
4. Interval preview labels and due/overdue helpers
"""

import pytest
from datetime import datetime, timedelta, timezone

from progress_engine.exceptions import InvalidQualityError
from progress_engine.schemas import ReviewRecord
from progress_engine.sm2 import SM2Algorithm, round_half_up


def test_missing_record_uses_default(now):
    """A None record is treated as a fresh item"""
    result = SM2Algorithm.schedule(None, 5, now)

    assert result.repetitions == 1
    assert result.interval == 1
    assert result.ease_factor == pytest.approx(2.6)
    assert result.next_review_date == now + timedelta(days=1)


def test_remembered_progression_with_steady_ease(now):
    """Quality 4 keeps EF at 2.5: intervals go 1, 6, 15, then 38 (37.5 rounded up)"""
    record = None
    intervals = []
    for _ in range(4):
        record = SM2Algorithm.schedule(record, 4, now)
        intervals.append(record.interval)

    assert intervals == [1, 6, 15, 38]
    assert record.repetitions == 4
    assert record.ease_factor == pytest.approx(2.5)


def test_third_review_multiplies_by_new_ease_factor(now):
    """From the third review on, interval = round(previous interval * updated EF)"""
    record = ReviewRecord(repetitions=2, interval=6, ease_factor=2.7, next_review_date=now)

    result = SM2Algorithm.schedule(record, 5, now)

    assert result.ease_factor == pytest.approx(2.8)
    assert result.interval == 17  # round(6 * 2.8) = round(16.8)
    assert result.repetitions == 3
    assert result.next_review_date == now + timedelta(days=17)


@pytest.mark.parametrize("quality", [0, 1, 2, 3])
def test_struggled_review_resets_to_today(now, quality):
    """Quality below 4 resets repetitions and keeps the item due now"""
    record = ReviewRecord(repetitions=5, interval=40, ease_factor=2.5, next_review_date=now)

    result = SM2Algorithm.schedule(record, quality, now)

    assert result.repetitions == 0
    assert result.interval == 0
    assert result.next_review_date == now
    assert result.next_review_date.date() == now.date()


@pytest.mark.parametrize("quality,expected", [
    (5, 2.6),
    (4, 2.5),
    (3, 2.36),
    (2, 2.18),
    (1, 1.96),
    (0, 1.7),
])
def test_ease_factor_adjustment(now, quality, expected):
    record = ReviewRecord.new(now)

    result = SM2Algorithm.schedule(record, quality, now)

    assert result.ease_factor == pytest.approx(expected)


def test_ease_factor_never_below_floor(now):
    """Repeated blackouts pin the ease factor at 1.3"""
    record = None
    for _ in range(10):
        record = SM2Algorithm.schedule(record, 0, now)
        assert record.ease_factor >= 1.3

    assert record.ease_factor == pytest.approx(1.3)


def test_stored_infinite_ease_factor_schedules_from_default(now):
    record = ReviewRecord.model_validate({"repetitions": 3, "interval": 10, "easeFactor": float("inf")})

    result = SM2Algorithm.schedule(record, 5, now)

    assert result.ease_factor == pytest.approx(2.6)
    assert result.interval == 26
    assert result.next_review_date == now + timedelta(days=26)


def test_schedule_does_not_modify_input(now):
    record = ReviewRecord(repetitions=2, interval=6, ease_factor=2.5, next_review_date=now)
    before = record.model_dump()

    SM2Algorithm.schedule(record, 5, now)
    SM2Algorithm.schedule(record, 0, now)

    assert record.model_dump() == before


@pytest.mark.parametrize("quality", [-1, 6, 2.5, "4", None, True])
def test_invalid_quality_rejected(now, quality):
    with pytest.raises(InvalidQualityError):
        SM2Algorithm.schedule(None, quality, now)


def test_invalid_quality_is_value_error(now):
    with pytest.raises(ValueError):
        SM2Algorithm.schedule(None, 9, now)


def test_aware_now_is_normalized_to_utc():
    now = datetime(2024, 3, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    result = SM2Algorithm.schedule(None, 4, now)

    assert result.next_review_date == datetime(2024, 3, 16, 12, 0)
    assert result.next_review_date.tzinfo is None


def test_round_half_up():
    assert round_half_up(37.5) == 38
    assert round_half_up(2.5) == 3
    assert round_half_up(16.4) == 16


def test_preview_interval_labels(now):
    learned = ReviewRecord(repetitions=1, interval=1, ease_factor=2.5, next_review_date=now)

    assert SM2Algorithm.preview_interval(learned, 3, now) == "< 10 minutes"
    assert SM2Algorithm.preview_interval(None, 5, now) == "1 day"
    assert SM2Algorithm.preview_interval(learned, 4, now) == "6 days"


def test_preview_choices_cover_all_qualities(now):
    record = ReviewRecord(repetitions=2, interval=6, ease_factor=2.5, next_review_date=now)
    before = record.model_dump()

    choices = SM2Algorithm.preview_choices(record, now)

    assert list(choices) == [0, 1, 2, 3, 4, 5]
    assert choices[0] == "< 10 minutes"
    assert choices[4] == "15 days"
    assert record.model_dump() == before


def test_is_due_compares_calendar_days(now):
    later_today = ReviewRecord(repetitions=1, interval=1, next_review_date=now.replace(hour=23))
    tomorrow = ReviewRecord(repetitions=1, interval=1, next_review_date=now + timedelta(days=1))
    undated = ReviewRecord(repetitions=1, interval=1)

    assert SM2Algorithm.is_due(later_today, now) is True
    assert SM2Algorithm.is_due(tomorrow, now) is False
    assert SM2Algorithm.is_due(undated, now) is False
    assert SM2Algorithm.is_due(None, now) is False


def test_days_overdue(now):
    overdue = ReviewRecord(repetitions=1, interval=1, next_review_date=now - timedelta(days=2, hours=12))
    upcoming = ReviewRecord(repetitions=1, interval=1, next_review_date=now + timedelta(days=1))

    assert SM2Algorithm.days_overdue(overdue, now) == pytest.approx(2.5)
    assert SM2Algorithm.days_overdue(upcoming, now) == 0.0
    assert SM2Algorithm.days_overdue(None, now) == 0.0
