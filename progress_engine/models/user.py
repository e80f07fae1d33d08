from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from progress_engine.database import Base

class User(Base):
    """Learner account owning knowledge nodes and a rank profile"""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    nodes = relationship("KnowledgeNodeRecord", back_populates="user", cascade="all, delete-orphan")
    rank_profile = relationship("RankProfileRecord", back_populates="user", uselist=False, cascade="all, delete-orphan")
    progress = relationship("UserProgressRecord", back_populates="user", uselist=False, cascade="all, delete-orphan")
