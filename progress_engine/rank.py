"""
Ranked ladder

League-style progression over (tier, division, lp): 8 tiers of 4 divisions,
100 LP per division, promotion and demotion by at most one step per match,
plus leaderboard scoring.
"""

import logging
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Tuple, Union

from progress_engine.config import settings
from progress_engine.exceptions import NoProfileError
from progress_engine.schemas import (
    Division,
    LeaderboardEntry,
    MatchHistoryEntry,
    MatchResult,
    RankProfile,
    SeasonPoints,
    Tier,
    normalize_instant,
)

logger = logging.getLogger(__name__)

TIERS: List[Tier] = list(Tier)
DIVISIONS: List[Division] = list(Division)

LP_PER_DIVISION = 100
DEMOTION_LP = 75
CHALLENGER_LP_CAP = 2000
MATCH_HISTORY_LIMIT = 20

TIER_WEIGHTS = {tier: 1000 * (index + 1) for index, tier in enumerate(TIERS)}
DIVISION_WEIGHTS = {division: 100 * index for index, division in enumerate(DIVISIONS)}


class RankUpdate(NamedTuple):
    """Outcome of applying one match result"""
    profile: RankProfile
    promoted: bool
    demoted: bool


class RankEngine:
    """State machine for ranked ladder progression"""

    @staticmethod
    def apply_result(
        profile: Optional[RankProfile],
        lp_delta: int,
        result: Union[MatchResult, str],
        now: datetime,
    ) -> RankUpdate:
        """
        Apply a match result to a rank profile.

        Args:
            profile: Current profile of the player
            lp_delta: LP gained (positive) or lost (negative)
            result: "Victory" or "Defeat"
            now: Instant the match finished

        Returns:
            RankUpdate with the new profile and promotion/demotion flags

        Raises:
            NoProfileError: If there is no profile to update
        """
        if profile is None:
            raise NoProfileError()
        if isinstance(lp_delta, bool) or not isinstance(lp_delta, int):
            raise TypeError(f"lp_delta must be an int, got {type(lp_delta).__name__}")
        result = MatchResult(result)
        now = normalize_instant(now)

        tier = profile.tier
        division = profile.division
        lp = profile.lp + lp_delta
        promoted = False
        demoted = False

        total_wins = profile.total_wins
        total_losses = profile.total_losses
        if result == MatchResult.VICTORY:
            total_wins += 1
        else:
            total_losses += 1

        # Season points only ever accumulate
        season_points = profile.season_points
        if lp_delta > 0:
            season_points = SeasonPoints(
                daily=season_points.daily + lp_delta,
                weekly=season_points.weekly + lp_delta,
                monthly=season_points.monthly + lp_delta,
            )

        if lp >= LP_PER_DIVISION:
            tier_index = TIERS.index(tier)
            division_index = DIVISIONS.index(division)

            if division_index < len(DIVISIONS) - 1:
                division = DIVISIONS[division_index + 1]
                lp -= LP_PER_DIVISION
                promoted = True
            elif tier_index < len(TIERS) - 1:
                tier = TIERS[tier_index + 1]
                division = DIVISIONS[0]
                lp -= LP_PER_DIVISION
                promoted = True
            else:
                lp = min(lp, CHALLENGER_LP_CAP)

        if lp < 0:
            tier_index = TIERS.index(tier)
            division_index = DIVISIONS.index(division)

            if division_index > 0:
                division = DIVISIONS[division_index - 1]
                lp = DEMOTION_LP
                demoted = True
            elif tier_index > 0:
                tier = TIERS[tier_index - 1]
                division = DIVISIONS[-1]
                lp = DEMOTION_LP
                demoted = True
            else:
                lp = 0

        entry = MatchHistoryEntry(result=result, lp_change=lp_delta, timestamp=now)
        match_history = [entry] + list(profile.match_history)
        match_history = match_history[:MATCH_HISTORY_LIMIT]

        new_profile = RankProfile(
            tier=tier,
            division=division,
            lp=lp,
            total_wins=total_wins,
            total_losses=total_losses,
            season_points=season_points,
            match_history=match_history,
        )

        if promoted:
            logger.info("Promoted %s -> %s", RankEngine.display_name(profile), RankEngine.display_name(new_profile))
        elif demoted:
            logger.info("Demoted %s -> %s", RankEngine.display_name(profile), RankEngine.display_name(new_profile))
        logger.debug("%s %+d LP: now %s %d LP", result.value, lp_delta, RankEngine.display_name(new_profile), lp)

        return RankUpdate(new_profile, promoted, demoted)

    @staticmethod
    def display_name(profile: RankProfile) -> str:
        return f"{profile.tier.value} {profile.division.value}"


def leaderboard_score(profile: RankProfile) -> int:
    """Single sortable score: tier weight + division weight + LP"""
    return TIER_WEIGHTS[profile.tier] + DIVISION_WEIGHTS[profile.division] + profile.lp


def build_leaderboard(
    entries: Iterable[Tuple[int, str, RankProfile]],
    limit: Optional[int] = None,
) -> List[LeaderboardEntry]:
    """
    Rank players by leaderboard score.

    Args:
        entries: (user_id, name, profile) tuples
        limit: Maximum rows to return (defaults to settings.leaderboard_size)

    Returns:
        Rows sorted by descending score with 1-based ranks; ties keep input order
    """
    if limit is None:
        limit = settings.leaderboard_size

    rows = [
        LeaderboardEntry(
            user_id=user_id,
            name=name,
            tier=profile.tier,
            division=profile.division,
            lp=profile.lp,
            score=leaderboard_score(profile),
        )
        for user_id, name, profile in entries
    ]
    # ties keep input order
    rows = sorted(rows, key=lambda row: row.score, reverse=True)

    ranked = [row.model_copy(update={"rank": index + 1}) for index, row in enumerate(rows)]
    return ranked[:limit]
