from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from progress_engine.database import Base

class KnowledgeNodeRecord(Base):
    """A topic node; exclusively owns its learning items"""
    __tablename__ = "knowledge_nodes"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    
    user = relationship("User", back_populates="nodes")
    items = relationship(
        "LearningItemRecord",
        back_populates="node",
        cascade="all, delete-orphan",
        order_by="LearningItemRecord.id",
    )
