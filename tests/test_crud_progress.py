"""
Tests for storing XP, check-in streaks and achievements.
"""

import pytest
from datetime import timedelta

from progress_engine.crud import (
    add_xp,
    check_in,
    create_user,
    get_progress,
    get_user,
    unlock_achievement,
    unlock_hidden_achievement,
    update_achievement_progress,
)
from progress_engine.exceptions import InvalidXPError, UserNotFoundError
from progress_engine.schemas import Achievement


@pytest.fixture
def user(db):
    return create_user(db, "Ana")


def test_default_progress_is_not_saved(db, user):
    progress = get_progress(db, user.id)

    assert progress.xp == 0
    assert progress.level == 1
    assert get_user(db, user.id).progress is None


def test_add_xp_persists(db, user, now):
    add_xp(db, user.id, 700, "Finished lesson", now)
    update = add_xp(db, user.id, 400, "Finished playlist", now + timedelta(minutes=1))

    assert update.leveled_up is True
    stored = get_progress(db, user.id)
    assert stored.xp == 1100
    assert stored.level == 2
    assert [entry.reason for entry in stored.history] == ["Finished playlist", "Finished lesson"]


def test_invalid_xp_leaves_row_alone(db, user, now):
    add_xp(db, user.id, 10, "Warm up", now)

    with pytest.raises(InvalidXPError):
        add_xp(db, user.id, -5, "Oops", now)

    assert get_progress(db, user.id).xp == 10


def test_check_in_streak_persists(db, user, now):
    check_in(db, user.id, now)
    check_in(db, user.id, now + timedelta(days=1))
    repeat = check_in(db, user.id, now + timedelta(days=1, hours=2))

    assert repeat.checked_in is False
    stored = get_progress(db, user.id)
    assert stored.streak == 2
    assert stored.xp == 100
    assert stored.last_check_in == now + timedelta(days=1)


def test_achievements_persist(db, user, now):
    update_achievement_progress(db, user.id, "drive_keeper", 4, now)
    update = update_achievement_progress(db, user.id, "drive_keeper", 1, now)

    assert update.unlocked.id == "drive_keeper"
    stored = get_progress(db, user.id)
    assert stored.achievement("drive_keeper").unlocked_at == now
    assert stored.xp == 200

    unlock_achievement(db, user.id, "video_learner", now)
    assert get_progress(db, user.id).xp == 350


def test_hidden_achievement_persists(db, user, now):
    hidden = Achievement(id="marathon", title="Marathon", goal=1, reward_xp=75, is_ai_generated=True)

    unlock_hidden_achievement(db, user.id, hidden, now)

    stored = get_progress(db, user.id).achievement("marathon")
    assert stored.is_ai_generated is True
    assert stored.unlocked


@pytest.mark.parametrize("user_id", [None, 404])
def test_progress_updates_need_a_user(db, now, user_id):
    with pytest.raises(UserNotFoundError):
        add_xp(db, user_id, 10, "Nobody", now)
    with pytest.raises(UserNotFoundError):
        check_in(db, user_id, now)
