from progress_engine.models.user import User
from progress_engine.models.knowledge_node import KnowledgeNodeRecord
from progress_engine.models.learning_item import LearningItemRecord
from progress_engine.models.rank_profile import RankProfileRecord
from progress_engine.models.user_progress import UserProgressRecord

__all__ = [
    "User",
    "KnowledgeNodeRecord",
    "LearningItemRecord",
    "RankProfileRecord",
    "UserProgressRecord",
]
