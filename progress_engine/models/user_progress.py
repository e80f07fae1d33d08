from sqlalchemy import Column, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from progress_engine.database import Base
from progress_engine.schemas import UserProgress

class UserProgressRecord(Base):
    """XP, level, check-in streak and achievements per user"""
    __tablename__ = "user_progress"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    streak = Column(Integer, nullable=False, default=0)
    last_check_in = Column(DateTime, nullable=True)
    history = Column(JSON, nullable=False, default=list)  # newest first, max 50
    achievements = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    user = relationship("User", back_populates="progress")
    
    def to_progress(self) -> UserProgress:
        return UserProgress.model_validate(self)
    
    def apply_progress(self, progress: UserProgress):
        """Copy updated progress back onto the row"""
        data = progress.model_dump(mode="json")
        self.xp = data["xp"]
        self.level = data["level"]
        self.streak = data["streak"]
        self.last_check_in = progress.last_check_in
        self.history = data["history"]
        self.achievements = data["achievements"]
