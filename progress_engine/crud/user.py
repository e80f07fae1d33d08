from sqlalchemy.orm import Session
from progress_engine.models import User
from typing import Optional

def create_user(db: Session, name: str) -> User:
    """Create a new learner account"""
    db_user = User(name=name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def get_user(db: Session, user_id: Optional[int]) -> Optional[User]:
    """Get user by ID"""
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id).first()