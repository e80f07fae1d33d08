"""
Read-side projections over review records.

All functions take the current instant explicitly and never mutate their input.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Union

from progress_engine.schemas import (
    DEFAULT_EASE_FACTOR,
    GlobalStats,
    KnowledgeNode,
    NodeStatus,
    ReviewRecord,
    normalize_instant,
)
from progress_engine.sm2 import SM2Algorithm, round_half_up

logger = logging.getLogger(__name__)

# A due record is struggling below this ease or repetition count
STRUGGLE_MIN_REPETITIONS = 3
WEAK_RATIO = 0.5

# Overdue decay
MASTERY_FLOOR = 5
DECAY_PER_DAY = 10


def _present(records: Iterable[Optional[ReviewRecord]]) -> List[ReviewRecord]:
    return [record for record in records if record is not None]


def classify(records: Iterable[Optional[ReviewRecord]], now: datetime) -> NodeStatus:
    """
    Derive a single status label for a group of records.

    Args:
        records: Review records of one node; None entries are ignored
        now: Current instant

    Returns:
        WEAK if most due records are struggling, DUE if anything is due,
        FUTURE if nothing is due yet
    """
    records = _present(records)
    if not records:
        return NodeStatus.FUTURE

    due = [record for record in records if SM2Algorithm.is_due(record, now)]
    if not due:
        return NodeStatus.FUTURE

    struggling = sum(
        1 for record in due
        if record.ease_factor < DEFAULT_EASE_FACTOR or record.repetitions < STRUGGLE_MIN_REPETITIONS
    )

    if struggling > len(due) * WEAK_RATIO:
        return NodeStatus.WEAK
    if len(due) > 0:
        return NodeStatus.DUE

    return NodeStatus.LEARNING


def record_mastery(record: ReviewRecord, now: datetime) -> float:
    """Score one record from its interval, minus 10 points per day overdue (never below 5)"""
    if record.interval > 21:
        base = 100
    elif record.interval > 7:
        base = 70
    elif record.interval >= 1:
        base = 30
    else:
        base = 10  # just learned or new

    days_overdue = SM2Algorithm.days_overdue(record, now)
    if days_overdue <= 0:
        return float(base)

    decay = min(base - MASTERY_FLOOR, days_overdue * DECAY_PER_DAY)
    return base - max(0, decay)


def mastery(records: Iterable[Optional[ReviewRecord]], now: datetime) -> int:
    """
    Confidence score (0-100) for a group of records, decaying while overdue.

    Args:
        records: Review records of one node; None entries are ignored
        now: Current instant

    Returns:
        Rounded average of per-record scores, 0 for an empty group
    """
    records = _present(records)
    if not records:
        return 0

    total = sum(record_mastery(record, now) for record in records)
    return round_half_up(total / len(records))


def classify_node(node: KnowledgeNode, now: datetime) -> NodeStatus:
    return classify(node.records(), now)


def node_mastery(node: KnowledgeNode, now: datetime) -> int:
    return mastery(node.records(), now)


def global_stats(
    nodes: Iterable[Union[KnowledgeNode, Iterable[Optional[ReviewRecord]], None]],
    now: datetime,
) -> GlobalStats:
    """
    Tally due, weak and new records across all of a user's nodes.

    New records (never successfully reviewed) count only as new. Other records
    count as due when their review day has arrived and, independently, as weak
    when their ease factor has dropped below the default.
    """
    now = normalize_instant(now)
    due = weak = new = 0

    for node in nodes:
        if node is None:
            continue
        records = node.records() if isinstance(node, KnowledgeNode) else node
        for record in _present(records):
            if record.repetitions == 0:
                new += 1
                continue
            if SM2Algorithm.is_due(record, now):
                due += 1
            if record.ease_factor < DEFAULT_EASE_FACTOR:
                weak += 1

    logger.debug("Global stats: due=%d weak=%d new=%d", due, weak, new)
    return GlobalStats(due=due, weak=weak, new=new)
