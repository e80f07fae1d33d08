import logging
from sqlalchemy.orm import Session
from progress_engine.models import KnowledgeNodeRecord, LearningItemRecord
from progress_engine.schemas import ItemKind, KnowledgeNode, ReviewRecord, normalize_instant
from progress_engine.sm2 import SM2Algorithm
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

def create_node(db: Session, user_id: int, title: str) -> KnowledgeNodeRecord:
    """Create an empty knowledge node for a user"""
    node = KnowledgeNodeRecord(user_id=user_id, title=title)
    db.add(node)
    db.commit()
    db.refresh(node)
    return node

def get_node(db: Session, node_id: int) -> Optional[KnowledgeNodeRecord]:
    """Get node by ID"""
    return db.query(KnowledgeNodeRecord).filter(KnowledgeNodeRecord.id == node_id).first()

def get_nodes(db: Session, user_id: int) -> List[KnowledgeNodeRecord]:
    """Get all nodes of a user"""
    return db.query(KnowledgeNodeRecord).filter(
        KnowledgeNodeRecord.user_id == user_id
    ).order_by(KnowledgeNodeRecord.id).all()

def add_item(
    db: Session,
    node_id: int,
    kind: ItemKind,
    content: Dict[str, Any],
    now: datetime
) -> LearningItemRecord:
    """
    Add a learning item to a node with a fresh SM-2 record.
    
    The new item is due immediately at `now`.
    """
    record = ReviewRecord.new(now)
    item = LearningItemRecord(node_id=node_id, kind=ItemKind(kind).value, content=content)
    item.apply_record(record)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item

def get_item(db: Session, item_id: int) -> Optional[LearningItemRecord]:
    """Get learning item by ID"""
    return db.query(LearningItemRecord).filter(LearningItemRecord.id == item_id).first()

def review_item(db: Session, item_id: int, quality: int, now: datetime) -> Optional[LearningItemRecord]:
    """Update SM-2 parameters after an item review"""
    item = get_item(db, item_id)
    if item:
        record = SM2Algorithm.schedule(item.record, quality, now)
        item.apply_record(record)
        item.last_reviewed = normalize_instant(now)
        db.commit()
        db.refresh(item)
        logger.debug("Item %d reviewed with quality %d, next review %s", item_id, quality, item.next_review_date)
    return item

def node_to_schema(node: KnowledgeNodeRecord) -> KnowledgeNode:
    """Convert a stored node (with its items) into the engine's node shape"""
    return KnowledgeNode.model_validate(node)
