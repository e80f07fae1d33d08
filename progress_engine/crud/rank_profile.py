import logging
from sqlalchemy.orm import Session
from progress_engine.models import RankProfileRecord, User
from progress_engine.crud.user import get_user
from progress_engine.exceptions import NoProfileError
from progress_engine.rank import RankEngine, RankUpdate, build_leaderboard
from progress_engine.schemas import LeaderboardEntry, MatchResult, RankProfile
from datetime import datetime
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

def _get_record(db: Session, user_id: int) -> Optional[RankProfileRecord]:
    return db.query(RankProfileRecord).filter(RankProfileRecord.user_id == user_id).first()

def get_rank_profile(db: Session, user_id: int) -> RankProfile:
    """Get a user's rank profile, or the default Iron IV profile if none is stored yet"""
    record = _get_record(db, user_id)
    if record is None:
        return RankProfile()
    return record.to_profile()

def record_match(
    db: Session,
    user_id: Optional[int],
    lp_delta: int,
    result: Union[MatchResult, str],
    now: datetime
) -> RankUpdate:
    """
    Apply a match result to a user's rank profile and save it.
    
    The profile row is created on the first match.
    
    Raises:
        NoProfileError: If user_id is missing or unknown
    """
    user = get_user(db, user_id)
    if user is None:
        raise NoProfileError(user_id)
    
    record = _get_record(db, user.id)
    current = record.to_profile() if record else RankProfile()
    
    update = RankEngine.apply_result(current, lp_delta, result, now)
    
    if record is None:
        record = RankProfileRecord(user_id=user.id)
        db.add(record)
    record.apply_profile(update.profile)
    db.commit()
    
    logger.debug("Saved rank profile for user %d: %s %d LP", user.id, RankEngine.display_name(update.profile), update.profile.lp)
    return update

def get_leaderboard(db: Session, limit: Optional[int] = None) -> List[LeaderboardEntry]:
    """Leaderboard across all users, including those who have not played yet"""
    rows = db.query(User, RankProfileRecord).outerjoin(
        RankProfileRecord, RankProfileRecord.user_id == User.id
    ).order_by(User.id).all()
    
    entries = [
        (user.id, user.name, record.to_profile() if record else RankProfile())
        for user, record in rows
    ]
    return build_leaderboard(entries, limit)
