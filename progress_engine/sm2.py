import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Optional

from progress_engine.exceptions import InvalidQualityError
from progress_engine.schemas import MIN_EASE_FACTOR, ReviewRecord, normalize_instant

logger = logging.getLogger(__name__)

# Quality at or above this counts as "remembered"
PASSING_QUALITY = 4


def round_half_up(value: float) -> int:
    """Round to nearest integer with .5 going up (built-in round() rounds to even)"""
    return int(math.floor(value + 0.5))


class SM2Algorithm:
    """
    SM-2 spaced repetition algorithm for calculating review intervals.
    Based on SuperMemo 2 algorithm by Piotr Wozniak, tuned for aggressive
    learning: anything below "correct after hesitation" resurfaces the same day.
    """

    @staticmethod
    def update_ease_factor(easiness_factor: float, quality: int) -> float:
        """Standard SM-2 ease adjustment, floored at 1.3"""
        new_ef = easiness_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))

        # Ensure EF stays within bounds
        if new_ef < MIN_EASE_FACTOR:
            new_ef = MIN_EASE_FACTOR
        return new_ef

    @staticmethod
    def schedule(record: Optional[ReviewRecord], quality: int, now: datetime) -> ReviewRecord:
        """
        Apply one review to a record and return the updated record.

        Args:
            record: Current review state; None means the item was never scheduled
            quality: Response quality (0-5). 0=total blackout, 5=perfect
            now: Current instant, used as the base for the next review date

        Returns:
            New ReviewRecord; the input record is left untouched

        Raises:
            InvalidQualityError: If quality is not an integer in 0..5
        """
        if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
            raise InvalidQualityError(quality)

        now = normalize_instant(now)
        if record is None:
            record = ReviewRecord.new(now)

        new_ef = SM2Algorithm.update_ease_factor(record.ease_factor, quality)

        if quality >= PASSING_QUALITY:
            # Remembered: push into the future
            if record.repetitions == 0:
                new_interval = 1
            elif record.repetitions == 1:
                new_interval = 6
            else:
                new_interval = round_half_up(record.interval * new_ef)
            new_repetitions = record.repetitions + 1
        else:
            # Struggled or forgot: keep it due today
            new_repetitions = 0
            new_interval = 0

        next_review_date = now + timedelta(days=new_interval)

        logger.debug(
            "Scheduled review q=%d: reps %d->%d, interval %d->%d, ef %.2f->%.2f",
            quality, record.repetitions, new_repetitions,
            record.interval, new_interval, record.ease_factor, new_ef,
        )

        return ReviewRecord(
            repetitions=new_repetitions,
            interval=new_interval,
            ease_factor=new_ef,
            next_review_date=next_review_date,
        )

    @staticmethod
    def format_interval(interval: int) -> str:
        """Human-readable label for an interval in days"""
        if interval == 0:
            return "< 10 minutes"
        if interval == 1:
            return "1 day"
        return f"{interval} days"

    @staticmethod
    def preview_interval(record: Optional[ReviewRecord], quality: int, now: datetime) -> str:
        """Label the interval a review with this quality would produce, without saving anything"""
        result = SM2Algorithm.schedule(record, quality, now)
        return SM2Algorithm.format_interval(result.interval)

    @staticmethod
    def preview_choices(record: Optional[ReviewRecord], now: datetime) -> Dict[int, str]:
        """Interval labels for every quality rating, for review buttons"""
        return {quality: SM2Algorithm.preview_interval(record, quality, now) for quality in range(6)}

    @staticmethod
    def is_due(record: Optional[ReviewRecord], now: datetime) -> bool:
        """Check if a record's review date (by calendar day) has arrived"""
        if record is None or record.next_review_date is None:
            return False
        return record.next_review_date.date() <= normalize_instant(now).date()

    @staticmethod
    def days_overdue(record: Optional[ReviewRecord], now: datetime) -> float:
        """Fractional days past the review date; 0 if not overdue"""
        if record is None or record.next_review_date is None:
            return 0.0
        elapsed = normalize_instant(now) - record.next_review_date
        if elapsed <= timedelta(0):
            return 0.0
        return elapsed.total_seconds() / 86400
