import enum
import logging
import math
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


def normalize_instant(value):
    """
    Normalize an instant to a naive UTC datetime.

    Aware datetimes are converted to UTC, naive ones are assumed to already be UTC
    and plain dates are taken at midnight.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    raise TypeError(f"Expected a datetime or date, got {type(value).__name__}")


def coerce_int(value: Any, default: int = 0, minimum: Optional[int] = None) -> int:
    """Read a stored integer, falling back to default for null or malformed values"""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        logger.debug("Replacing non-finite integer %r with %s", value, default)
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.debug("Replacing malformed integer %r with %s", value, default)
        return default
    if minimum is not None and number < minimum:
        logger.debug("Clamping %r to %s", value, minimum)
        return minimum
    return number


def coerce_instant(value: Any) -> Optional[datetime]:
    """Read a stored instant, falling back to None for null or unparseable values"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Dropping unparseable instant %r", value)
            return None
    if isinstance(value, (datetime, date)):
        return normalize_instant(value)
    logger.debug("Dropping instant of unexpected type %r", value)
    return None


def coerce_entries(model, value: Any) -> list:
    """Validate a stored list entry by entry, dropping the ones that do not fit"""
    if not isinstance(value, (list, tuple)):
        if value is not None:
            logger.debug("Replacing malformed %s list %r with []", model.__name__, value)
        return []
    entries = []
    for entry in value:
        if isinstance(entry, model):
            entries.append(entry)
            continue
        try:
            entries.append(model.model_validate(entry))
        except ValidationError:
            logger.debug("Dropping malformed %s %r", model.__name__, entry)
    return entries


class ReviewRecord(BaseModel):
    """SM-2 review state for a single learnable item"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    repetitions: int = 0  # successful reviews in a row
    interval: int = 0  # days until next review
    ease_factor: float = Field(
        default=DEFAULT_EASE_FACTOR,
        validation_alias=AliasChoices("ease_factor", "easeFactor", "efactor"),
        serialization_alias="easeFactor",
    )
    next_review_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("next_review_date", "nextReviewDate"),
        serialization_alias="nextReviewDate",
    )

    @classmethod
    def new(cls, now: datetime) -> "ReviewRecord":
        """Default record for an item that has never been reviewed"""
        return cls(
            repetitions=0,
            interval=0,
            ease_factor=DEFAULT_EASE_FACTOR,
            next_review_date=normalize_instant(now),
        )

    @field_validator("repetitions", "interval", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        return coerce_int(value, minimum=0)

    @field_validator("ease_factor", mode="before")
    @classmethod
    def _coerce_ease_factor(cls, value: Any) -> float:
        if value is None or isinstance(value, bool):
            return DEFAULT_EASE_FACTOR
        try:
            ef = float(value)
        except (TypeError, ValueError):
            logger.debug("Replacing malformed ease factor %r with default", value)
            return DEFAULT_EASE_FACTOR
        if not math.isfinite(ef):
            logger.debug("Replacing non-finite ease factor %r with default", value)
            return DEFAULT_EASE_FACTOR
        if ef < MIN_EASE_FACTOR:
            logger.debug("Raising ease factor %r to floor %s", value, MIN_EASE_FACTOR)
            return MIN_EASE_FACTOR
        return ef

    @field_validator("next_review_date", mode="before")
    @classmethod
    def _coerce_review_date(cls, value: Any) -> Optional[datetime]:
        return coerce_instant(value)


class ItemKind(str, enum.Enum):
    """Shapes a learnable item can take inside a knowledge node"""
    FLASHCARD = "flashcard"
    QUIZ = "quiz"
    FILL_BLANK = "fill_blank"
    SPOT_ERROR = "spot_error"
    CASE_STUDY = "case_study"


# Per-kind arrays of the older node payload
LEGACY_ITEM_KEYS = {
    "flashcards": ItemKind.FLASHCARD,
    "quiz": ItemKind.QUIZ,
    "fillInBlanks": ItemKind.FILL_BLANK,
    "spotErrors": ItemKind.SPOT_ERROR,
    "caseStudies": ItemKind.CASE_STUDY,
}


class LearningItem(BaseModel):
    """One learnable item; the engine only looks at its review record"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    kind: ItemKind = ItemKind.FLASHCARD
    content: Dict[str, Any] = Field(default_factory=dict)
    record: Optional[ReviewRecord] = None


class KnowledgeNode(BaseModel):
    """A node owning a uniform collection of learning items"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    title: str = ""
    items: List[Optional[LearningItem]] = Field(default_factory=list)

    def records(self) -> Iterator[ReviewRecord]:
        """Yield the review records of all items, skipping missing ones"""
        for item in self.items:
            if item is not None and item.record is not None:
                yield item.record

    @classmethod
    def from_legacy(cls, data: Optional[Dict[str, Any]], title: str = "", node_id: Optional[int] = None) -> "KnowledgeNode":
        """
        Build a node from the per-kind array payload.

        Args:
            data: Dict with optional flashcards/quiz/fillInBlanks/spotErrors/caseStudies
                lists, each item carrying its review state under "sm2"
            title: Node title
            node_id: Optional node ID

        Returns:
            KnowledgeNode with all items flattened into one collection
        """
        items = []
        for key, kind in LEGACY_ITEM_KEYS.items():
            for raw in (data or {}).get(key) or []:
                if not isinstance(raw, dict):
                    continue
                content = {k: v for k, v in raw.items() if k != "sm2"}
                sm2 = raw.get("sm2")
                record = ReviewRecord.model_validate(sm2) if isinstance(sm2, dict) else None
                items.append(LearningItem(kind=kind, content=content, record=record))
        return cls(id=node_id, title=title, items=items)


class NodeStatus(str, enum.Enum):
    """Aggregate status label for a node"""
    DUE = "due"
    WEAK = "weak"
    FUTURE = "future"
    LEARNING = "learning"


class GlobalStats(BaseModel):
    """Due/weak/new item counts across all of a user's nodes"""
    due: int = 0
    weak: int = 0
    new: int = 0


class Tier(str, enum.Enum):
    """Ranked ladder tiers, lowest first"""
    IRON = "Iron"
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    DIAMOND = "Diamond"
    MASTER = "Master"
    CHALLENGER = "Challenger"


class Division(str, enum.Enum):
    """Divisions within a tier, lowest first"""
    IV = "IV"
    III = "III"
    II = "II"
    I = "I"  # noqa: E741


class MatchResult(str, enum.Enum):
    VICTORY = "Victory"
    DEFEAT = "Defeat"


class SeasonPoints(BaseModel):
    """Cumulative positive LP earned per period"""
    daily: int = 0
    weekly: int = 0
    monthly: int = 0

    @field_validator("daily", "weekly", "monthly", mode="before")
    @classmethod
    def _coerce_points(cls, value: Any) -> int:
        return coerce_int(value, minimum=0)


class MatchHistoryEntry(BaseModel):
    """One ranked match outcome"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    result: MatchResult
    lp_change: int = Field(
        default=0,
        validation_alias=AliasChoices("lp_change", "lpChange"),
        serialization_alias="lpChange",
    )
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return normalize_instant(value)


class RankProfile(BaseModel):
    """Ranked ladder position and history of one user"""
    model_config = ConfigDict(from_attributes=True)

    tier: Tier = Tier.IRON
    division: Division = Division.IV
    lp: int = 0
    total_wins: int = Field(default=0, validation_alias=AliasChoices("total_wins", "totalWins"), serialization_alias="totalWins")
    total_losses: int = Field(default=0, validation_alias=AliasChoices("total_losses", "totalLosses"), serialization_alias="totalLosses")
    season_points: SeasonPoints = Field(
        default_factory=SeasonPoints,
        validation_alias=AliasChoices("season_points", "seasonPoints"),
        serialization_alias="seasonPoints",
    )
    match_history: List[MatchHistoryEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("match_history", "matchHistory"),
        serialization_alias="matchHistory",
    )

    @field_validator("tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> Tier:
        try:
            return Tier(value)
        except ValueError:
            logger.debug("Unknown tier %r, using %s", value, Tier.IRON.value)
            return Tier.IRON

    @field_validator("division", mode="before")
    @classmethod
    def _coerce_division(cls, value: Any) -> Division:
        try:
            return Division(value)
        except ValueError:
            logger.debug("Unknown division %r, using %s", value, Division.IV.value)
            return Division.IV

    @field_validator("lp", "total_wins", "total_losses", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        return coerce_int(value, minimum=0)

    @field_validator("season_points", mode="before")
    @classmethod
    def _coerce_season_points(cls, value: Any) -> Any:
        if isinstance(value, (SeasonPoints, dict)):
            return value
        if value is not None:
            logger.debug("Replacing malformed season points %r with defaults", value)
        return SeasonPoints()

    @field_validator("match_history", mode="before")
    @classmethod
    def _coerce_history(cls, value: Any) -> List[MatchHistoryEntry]:
        return coerce_entries(MatchHistoryEntry, value)


class MatchResultInput(BaseModel):
    """Match outcome submitted by a caller"""
    lp_delta: int = Field(validation_alias=AliasChoices("lp_delta", "lpDelta"), serialization_alias="lpDelta")
    result: MatchResult


class LeaderboardEntry(BaseModel):
    """One leaderboard row"""
    user_id: int
    name: str
    tier: Tier
    division: Division
    lp: int
    score: int
    rank: int = 0


class XPHistoryEntry(BaseModel):
    """One XP award"""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    amount: int
    reason: str = ""
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return normalize_instant(value)


class Achievement(BaseModel):
    """A goal with a progress counter that awards XP once when reached"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str = ""
    description: str = ""
    icon: str = ""
    category: str = "General"
    progress: int = 0
    goal: int = 1
    reward_xp: int = Field(default=0, validation_alias=AliasChoices("reward_xp", "rewardXP"), serialization_alias="rewardXP")
    unlocked_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("unlocked_at", "unlockedAt"),
        serialization_alias="unlockedAt",
    )
    is_ai_generated: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_ai_generated", "isAiGenerated"),
        serialization_alias="isAiGenerated",
    )

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None

    @field_validator("progress", "reward_xp", mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> int:
        return coerce_int(value, minimum=0)

    @field_validator("goal", mode="before")
    @classmethod
    def _coerce_goal(cls, value: Any) -> int:
        return coerce_int(value, default=1, minimum=1)

    @field_validator("unlocked_at", mode="before")
    @classmethod
    def _coerce_unlocked_at(cls, value: Any) -> Optional[datetime]:
        return coerce_instant(value)


# Every progress record carries these; ones missing from stored data are added back on load
DEFAULT_ACHIEVEMENTS = [
    Achievement(id="first_node", title="Pioneer", description="Create your first knowledge node",
                icon="explore", category="Alchemy", goal=1, reward_xp=100),
    Achievement(id="tutor_master", title="Young Philosopher", description="Discuss with the tutor 5 times",
                icon="psychology_alt", category="Tutor", goal=5, reward_xp=250),
    Achievement(id="graph_connector", title="Network Architect", description="Create 20 links in the graph",
                icon="hub", category="Graph", goal=20, reward_xp=300),
    Achievement(id="pomodoro_pro", title="Focus Master", description="Complete 10 pomodoro sessions",
                icon="timer", category="General", goal=10, reward_xp=500),
    Achievement(id="sharer", title="Torch Bearer", description="Publish 3 lessons to the library",
                icon="public", category="Social", goal=3, reward_xp=400),
    Achievement(id="video_learner", title="Video Scholar", description="Distill knowledge from a video",
                icon="smart_display", category="Alchemy", goal=1, reward_xp=150),
    Achievement(id="drive_keeper", title="Librarian", description="Store 5 documents in the drive",
                icon="folder", category="Drive", goal=5, reward_xp=200),
    Achievement(id="rank_warrior", title="Warrior", description="Win 3 ranked matches",
                icon="swords", category="Social", goal=3, reward_xp=450),
]


def default_achievements() -> List[Achievement]:
    return [achievement.model_copy() for achievement in DEFAULT_ACHIEVEMENTS]


class UserProgress(BaseModel):
    """XP, level, daily streak and achievements of one user"""
    model_config = ConfigDict(from_attributes=True)

    xp: int = 0
    level: int = 1
    streak: int = 0
    last_check_in: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("last_check_in", "lastCheckIn"),
        serialization_alias="lastCheckIn",
    )
    history: List[XPHistoryEntry] = Field(default_factory=list)  # newest first
    achievements: List[Achievement] = Field(default_factory=default_achievements)

    @field_validator("xp", "streak", mode="before")
    @classmethod
    def _coerce_counter(cls, value: Any) -> int:
        return coerce_int(value, minimum=0)

    @field_validator("level", mode="before")
    @classmethod
    def _coerce_level(cls, value: Any) -> int:
        return coerce_int(value, default=1, minimum=1)

    @field_validator("last_check_in", mode="before")
    @classmethod
    def _coerce_last_check_in(cls, value: Any) -> Optional[datetime]:
        return coerce_instant(value)

    @field_validator("history", mode="before")
    @classmethod
    def _coerce_history(cls, value: Any) -> List[XPHistoryEntry]:
        return coerce_entries(XPHistoryEntry, value)

    @field_validator("achievements", mode="before")
    @classmethod
    def _coerce_achievements(cls, value: Any) -> List[Achievement]:
        achievements = coerce_entries(Achievement, value)
        known = {achievement.id for achievement in achievements}
        achievements.extend(seed.model_copy() for seed in DEFAULT_ACHIEVEMENTS if seed.id not in known)
        return achievements

    def achievement(self, achievement_id: str) -> Optional[Achievement]:
        for achievement in self.achievements:
            if achievement.id == achievement_id:
                return achievement
        return None
