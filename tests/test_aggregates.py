"""
Tests for node status, mastery and global stats projections.
"""

import pytest
from datetime import timedelta

from progress_engine.aggregates import (
    classify,
    classify_node,
    global_stats,
    mastery,
    node_mastery,
    record_mastery,
)
from progress_engine.schemas import ItemKind, KnowledgeNode, LearningItem, NodeStatus, ReviewRecord


def make_record(now, repetitions=3, interval=10, ease_factor=2.5, days_from_now=0.0):
    return ReviewRecord(
        repetitions=repetitions,
        interval=interval,
        ease_factor=ease_factor,
        next_review_date=now + timedelta(days=days_from_now),
    )


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

def test_classify_empty_is_future(now):
    assert classify([], now) == NodeStatus.FUTURE


def test_classify_all_future_is_future(now):
    records = [make_record(now, days_from_now=1), make_record(now, days_from_now=10)]

    assert classify(records, now) == NodeStatus.FUTURE


def test_classify_mostly_struggling_is_weak(now):
    records = [
        make_record(now, repetitions=0, interval=0),
        make_record(now, repetitions=5, ease_factor=2.0, days_from_now=-2),
        make_record(now, repetitions=5, ease_factor=2.6),
    ]

    assert classify(records, now) == NodeStatus.WEAK


def test_classify_healthy_due_is_due(now):
    records = [
        make_record(now, repetitions=4, ease_factor=2.6, days_from_now=-1),
        make_record(now, repetitions=3, ease_factor=2.5),
        make_record(now, repetitions=0, days_from_now=3),  # not due, ignored for the ratio
    ]

    assert classify(records, now) == NodeStatus.DUE


def test_classify_half_struggling_is_not_weak(now):
    """Exactly 50% struggling does not exceed the threshold"""
    records = [
        make_record(now, repetitions=1),
        make_record(now, repetitions=4),
    ]

    assert classify(records, now) == NodeStatus.DUE


def test_classify_uses_calendar_day(now):
    """A record due later today already counts as due"""
    records = [make_record(now, repetitions=4, days_from_now=0.4)]

    assert classify(records, now) == NodeStatus.DUE


def test_classify_skips_missing_and_undated_records(now):
    records = [None, ReviewRecord(repetitions=0), None]

    assert classify(records, now) == NodeStatus.FUTURE


# ---------------------------------------------------------------------------
# mastery
# ---------------------------------------------------------------------------

def test_mastery_empty_is_zero(now):
    assert mastery([], now) == 0
    assert mastery([None], now) == 0


@pytest.mark.parametrize("interval,expected", [
    (30, 100),
    (22, 100),
    (21, 70),
    (8, 70),
    (7, 30),
    (1, 30),
    (0, 10),
])
def test_mastery_base_score_from_interval(now, interval, expected):
    record = make_record(now, interval=interval, days_from_now=1)

    assert mastery([record], now) == expected


def test_mastery_decays_ten_points_per_day_overdue(now):
    record = make_record(now, interval=30, days_from_now=-2)

    assert mastery([record], now) == 80


def test_mastery_partial_day_decay(now):
    record = make_record(now, interval=30, days_from_now=-0.5)

    assert record_mastery(record, now) == pytest.approx(95)


def test_mastery_decay_floors_at_five(now):
    long_overdue = make_record(now, interval=30, days_from_now=-40)
    new_overdue = make_record(now, repetitions=0, interval=0, days_from_now=-3)

    assert mastery([long_overdue], now) == 5
    assert mastery([new_overdue], now) == 5


def test_mastery_non_increasing_with_overdue_days(now):
    for interval in (0, 3, 10, 30):
        scores = [
            mastery([make_record(now, interval=interval, days_from_now=-days)], now)
            for days in range(0, 30)
        ]
        assert scores == sorted(scores, reverse=True)
        assert min(scores) >= 0


def test_mastery_average_rounds_half_up(now):
    fresh = make_record(now, interval=30, days_from_now=5)  # 100
    stale = make_record(now, interval=30, days_from_now=-30)  # 5

    assert mastery([fresh, stale], now) == 53


def test_mastery_record_without_date_does_not_decay(now):
    assert mastery([ReviewRecord(interval=10)], now) == 70


# ---------------------------------------------------------------------------
# node wrappers
# ---------------------------------------------------------------------------

def test_node_wrappers_use_all_item_kinds(now):
    node = KnowledgeNode(
        title="Photosynthesis",
        items=[
            LearningItem(kind=ItemKind.FLASHCARD, record=make_record(now, repetitions=0, interval=0)),
            LearningItem(kind=ItemKind.QUIZ, record=make_record(now, repetitions=1, interval=1)),
            LearningItem(kind=ItemKind.CASE_STUDY, record=None),
            None,
        ],
    )

    assert classify_node(node, now) == NodeStatus.WEAK
    assert node_mastery(node, now) == 20


def test_node_without_items(now):
    node = KnowledgeNode(title="Empty")

    assert classify_node(node, now) == NodeStatus.FUTURE
    assert node_mastery(node, now) == 0


# ---------------------------------------------------------------------------
# global_stats
# ---------------------------------------------------------------------------

def test_global_stats_buckets(now):
    node_a = KnowledgeNode(items=[
        # new: counted only as new even though due and low ease
        LearningItem(record=make_record(now, repetitions=0, ease_factor=1.5, days_from_now=-1)),
        # due and weak
        LearningItem(record=make_record(now, repetitions=2, ease_factor=2.1, days_from_now=-1)),
    ])
    node_b = KnowledgeNode(items=[
        # weak only
        LearningItem(record=make_record(now, repetitions=2, ease_factor=2.0, days_from_now=3)),
        # due only
        LearningItem(record=make_record(now, repetitions=4, ease_factor=2.7)),
        # nothing
        LearningItem(record=make_record(now, repetitions=4, ease_factor=2.7, days_from_now=5)),
        LearningItem(record=None),
    ])

    stats = global_stats([node_a, node_b], now)

    assert stats.due == 2
    assert stats.weak == 2
    assert stats.new == 1


def test_global_stats_accepts_plain_record_groups(now):
    groups = [
        [make_record(now, repetitions=0), None],
        None,
        [make_record(now, repetitions=3, days_from_now=-1)],
    ]

    stats = global_stats(groups, now)

    assert stats.model_dump() == {"due": 1, "weak": 0, "new": 1}


def test_global_stats_empty(now):
    assert global_stats([], now).model_dump() == {"due": 0, "weak": 0, "new": 0}
