"""
XP and achievements

Levels every 1000 XP, a daily check-in streak worth 50 XP per check-in, and
achievements that award their XP once when their goal is reached.
"""

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional

from progress_engine.exceptions import InvalidXPError
from progress_engine.schemas import Achievement, UserProgress, XPHistoryEntry, normalize_instant

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000
CHECK_IN_XP = 50
XP_HISTORY_LIMIT = 50


class XPUpdate(NamedTuple):
    """Outcome of an XP award"""
    progress: UserProgress
    leveled_up: bool


class CheckInUpdate(NamedTuple):
    """Outcome of a daily check-in; checked_in is False when today was already counted"""
    progress: UserProgress
    checked_in: bool
    leveled_up: bool


class AchievementUpdate(NamedTuple):
    """Outcome of an achievement change; unlocked is set only on the call that unlocks it"""
    progress: UserProgress
    unlocked: Optional[Achievement]
    leveled_up: bool


def level_for(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


class ProgressionEngine:
    """XP, level, streak and achievement updates; inputs are never modified"""

    @staticmethod
    def add_xp(progress: UserProgress, amount: int, reason: str, now: datetime) -> XPUpdate:
        """
        Award XP and recompute the level.

        Args:
            progress: Current progress of the user
            amount: XP to add, a non-negative integer
            reason: Short label stored in the XP history
            now: Instant of the award

        Returns:
            XPUpdate with the new progress and whether the level went up

        Raises:
            InvalidXPError: If amount is negative or not an int
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidXPError(amount)

        xp = progress.xp + amount
        level = level_for(xp)
        leveled_up = level > progress.level

        entry = XPHistoryEntry(amount=amount, reason=reason, timestamp=normalize_instant(now))
        history = ([entry] + list(progress.history))[:XP_HISTORY_LIMIT]

        if leveled_up:
            logger.info("Level up: %d -> %d", progress.level, level)
        logger.debug("+%d XP (%s): now %d XP", amount, reason, xp)

        return XPUpdate(progress.model_copy(update={"xp": xp, "level": level, "history": history}), leveled_up)

    @staticmethod
    def is_checked_in(progress: UserProgress, now: datetime) -> bool:
        """Whether the user already checked in on the calendar day of now"""
        if progress.last_check_in is None:
            return False
        return progress.last_check_in.date() == normalize_instant(now).date()

    @staticmethod
    def check_in(progress: UserProgress, now: datetime) -> CheckInUpdate:
        """
        Record the daily check-in.

        A check-in on the day after the previous one extends the streak, a
        longer gap (or no previous check-in) restarts it at 1, and a second
        check-in on the same day changes nothing. Each counted check-in is
        worth CHECK_IN_XP.
        """
        now = normalize_instant(now)
        if ProgressionEngine.is_checked_in(progress, now):
            return CheckInUpdate(progress, False, False)

        streak = 1
        if progress.last_check_in is not None:
            gap = abs((now.date() - progress.last_check_in.date()).days)
            if gap == 1:
                streak = progress.streak + 1

        update = ProgressionEngine.add_xp(progress, CHECK_IN_XP, f"Daily check-in (day {streak})", now)
        checked = update.progress.model_copy(update={"streak": streak, "last_check_in": now})
        logger.debug("Checked in, streak %d", streak)
        return CheckInUpdate(checked, True, update.leveled_up)

    @staticmethod
    def update_achievement(progress: UserProgress, achievement_id: str, increment: int, now: datetime) -> AchievementUpdate:
        """
        Advance an achievement's progress, clamped to [0, goal].

        Reaching the goal unlocks the achievement and awards its reward XP.
        Unknown and already unlocked achievements are left as they are.
        """
        current = progress.achievement(achievement_id)
        if current is None or current.unlocked:
            return AchievementUpdate(progress, None, False)

        value = max(0, min(current.goal, current.progress + increment))
        changed = current.model_copy(update={"progress": value})
        if value >= current.goal:
            changed = changed.model_copy(update={"unlocked_at": normalize_instant(now)})

        achievements: List[Achievement] = [
            changed if achievement.id == achievement_id else achievement
            for achievement in progress.achievements
        ]
        progress = progress.model_copy(update={"achievements": achievements})

        if not changed.unlocked:
            return AchievementUpdate(progress, None, False)

        logger.info("Achievement unlocked: %s", changed.id)
        update = ProgressionEngine.add_xp(progress, changed.reward_xp, f"Achievement: {changed.title}", now)
        return AchievementUpdate(update.progress, changed, update.leveled_up)

    @staticmethod
    def unlock_achievement(progress: UserProgress, achievement_id: str, now: datetime) -> AchievementUpdate:
        """Complete an achievement outright"""
        current = progress.achievement(achievement_id)
        if current is None:
            return AchievementUpdate(progress, None, False)
        return ProgressionEngine.update_achievement(progress, achievement_id, current.goal, now)

    @staticmethod
    def unlock_hidden_achievement(progress: UserProgress, achievement: Achievement, now: datetime) -> AchievementUpdate:
        """Add an achievement that is not part of the default set, already unlocked"""
        if progress.achievement(achievement.id) is not None:
            return AchievementUpdate(progress, None, False)

        unlocked = achievement.model_copy(update={"progress": achievement.goal, "unlocked_at": normalize_instant(now)})
        progress = progress.model_copy(update={"achievements": list(progress.achievements) + [unlocked]})

        logger.info("Hidden achievement unlocked: %s", unlocked.id)
        update = ProgressionEngine.add_xp(progress, unlocked.reward_xp, f"Hidden achievement: {unlocked.title}", now)
        return AchievementUpdate(update.progress, unlocked, update.leveled_up)
