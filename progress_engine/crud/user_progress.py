import logging
from sqlalchemy.orm import Session
from progress_engine.models import User, UserProgressRecord
from progress_engine.crud.user import get_user
from progress_engine.exceptions import UserNotFoundError
from progress_engine.progression import AchievementUpdate, CheckInUpdate, ProgressionEngine, XPUpdate
from progress_engine.schemas import Achievement, UserProgress
from datetime import datetime
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

def _get_record(db: Session, user_id: int) -> Optional[UserProgressRecord]:
    return db.query(UserProgressRecord).filter(UserProgressRecord.user_id == user_id).first()

def _load(db: Session, user_id: Optional[int]) -> Tuple[User, Optional[UserProgressRecord], UserProgress]:
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    record = _get_record(db, user.id)
    return user, record, record.to_progress() if record else UserProgress()

def _save(db: Session, user: User, record: Optional[UserProgressRecord], progress: UserProgress):
    if record is None:
        record = UserProgressRecord(user_id=user.id)
        db.add(record)
    record.apply_progress(progress)
    db.commit()
    logger.debug("Saved progress for user %d: %d XP, level %d", user.id, progress.xp, progress.level)

def get_progress(db: Session, user_id: int) -> UserProgress:
    """Get a user's progress, or a fresh level 1 record if none is stored yet"""
    record = _get_record(db, user_id)
    if record is None:
        return UserProgress()
    return record.to_progress()

def add_xp(db: Session, user_id: Optional[int], amount: int, reason: str, now: datetime) -> XPUpdate:
    """
    Award XP to a user and save it.
    
    Raises:
        UserNotFoundError: If user_id is missing or unknown
        InvalidXPError: If amount is negative or not an int
    """
    user, record, current = _load(db, user_id)
    update = ProgressionEngine.add_xp(current, amount, reason, now)
    _save(db, user, record, update.progress)
    return update

def check_in(db: Session, user_id: Optional[int], now: datetime) -> CheckInUpdate:
    """Record a user's daily check-in; nothing is written if today was already counted"""
    user, record, current = _load(db, user_id)
    update = ProgressionEngine.check_in(current, now)
    if update.checked_in:
        _save(db, user, record, update.progress)
    return update

def update_achievement_progress(
    db: Session,
    user_id: Optional[int],
    achievement_id: str,
    increment: int,
    now: datetime
) -> AchievementUpdate:
    """Advance one of a user's achievements and save it"""
    user, record, current = _load(db, user_id)
    update = ProgressionEngine.update_achievement(current, achievement_id, increment, now)
    _save(db, user, record, update.progress)
    return update

def unlock_achievement(db: Session, user_id: Optional[int], achievement_id: str, now: datetime) -> AchievementUpdate:
    """Complete one of a user's achievements and save it"""
    user, record, current = _load(db, user_id)
    update = ProgressionEngine.unlock_achievement(current, achievement_id, now)
    _save(db, user, record, update.progress)
    return update

def unlock_hidden_achievement(db: Session, user_id: Optional[int], achievement: Achievement, now: datetime) -> AchievementUpdate:
    """Give a user an extra, already unlocked achievement and save it"""
    user, record, current = _load(db, user_id)
    update = ProgressionEngine.unlock_hidden_achievement(current, achievement, now)
    _save(db, user, record, update.progress)
    return update
