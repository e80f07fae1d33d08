from progress_engine.crud.user import create_user, get_user
from progress_engine.crud.knowledge_node import (
    create_node,
    get_node,
    get_nodes,
    add_item,
    get_item,
    review_item,
    node_to_schema,
)
from progress_engine.crud.rank_profile import (
    get_rank_profile,
    record_match,
    get_leaderboard,
)
from progress_engine.crud.user_progress import (
    get_progress,
    add_xp,
    check_in,
    update_achievement_progress,
    unlock_achievement,
    unlock_hidden_achievement,
)

__all__ = [
    "create_user",
    "get_user",
    "create_node",
    "get_node",
    "get_nodes",
    "add_item",
    "get_item",
    "review_item",
    "node_to_schema",
    "get_rank_profile",
    "record_match",
    "get_leaderboard",
    "get_progress",
    "add_xp",
    "check_in",
    "update_achievement_progress",
    "unlock_achievement",
    "unlock_hidden_achievement",
]
