from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from progress_engine.database import Base
from progress_engine.schemas import DEFAULT_EASE_FACTOR, ItemKind, ReviewRecord

class LearningItemRecord(Base):
    """A flashcard, quiz, fill-blank, spot-error or case-study item with its SM-2 state"""
    __tablename__ = "learning_items"
    
    id = Column(Integer, primary_key=True, index=True)
    node_id = Column(Integer, ForeignKey("knowledge_nodes.id"), nullable=False)
    kind = Column(String, nullable=False, default=ItemKind.FLASHCARD.value)
    content = Column(JSON, nullable=False, default=dict)  # {"front": ..., "back": ...}
    
    # SM-2 algorithm fields
    repetitions = Column(Integer, default=0)
    interval = Column(Integer, default=0)  # days until next review
    ease_factor = Column(Float, default=DEFAULT_EASE_FACTOR)
    next_review_date = Column(DateTime)
    last_reviewed = Column(DateTime)
    
    node = relationship("KnowledgeNodeRecord", back_populates="items")
    
    @property
    def record(self) -> ReviewRecord:
        """Current review state as an engine record"""
        return ReviewRecord.model_validate(self)
    
    def apply_record(self, record: ReviewRecord):
        """Copy a scheduled record back onto the row"""
        self.repetitions = record.repetitions
        self.interval = record.interval
        self.ease_factor = record.ease_factor
        self.next_review_date = record.next_review_date
