from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from progress_engine.database import Base
from progress_engine.schemas import Division, RankProfile, Tier

class RankProfileRecord(Base):
    """Ranked ladder position per user; kept for the lifetime of the account"""
    __tablename__ = "rank_profiles"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    tier = Column(String, nullable=False, default=Tier.IRON.value)
    division = Column(String, nullable=False, default=Division.IV.value)
    lp = Column(Integer, nullable=False, default=0)
    total_wins = Column(Integer, nullable=False, default=0)
    total_losses = Column(Integer, nullable=False, default=0)
    season_points = Column(JSON, nullable=False, default=dict)  # {"daily": 0, "weekly": 0, "monthly": 0}
    match_history = Column(JSON, nullable=False, default=list)  # newest first, max 20
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    user = relationship("User", back_populates="rank_profile")
    
    def to_profile(self) -> RankProfile:
        return RankProfile.model_validate(self)
    
    def apply_profile(self, profile: RankProfile):
        """Copy an updated profile back onto the row"""
        data = profile.model_dump(mode="json")
        self.tier = data["tier"]
        self.division = data["division"]
        self.lp = data["lp"]
        self.total_wins = data["total_wins"]
        self.total_losses = data["total_losses"]
        self.season_points = data["season_points"]
        self.match_history = data["match_history"]
