"""Goal manager behavior and persistence tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from quest.errors import SaveFileError
from quest.goals import (
    ChecklistGoal,
    Difficulty,
    EternalGoal,
    NegativeGoal,
    ProgressGoal,
    SimpleGoal,
)
from quest.manager import GoalManager
from quest.rewards import Friend


class FakeClock:
    """Controllable clock for day-sensitive behavior."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.now += timedelta(days=days, hours=hours)


def build_manager(start: datetime | None = None) -> tuple[GoalManager, FakeClock]:
    clock = FakeClock(start or datetime(2026, 6, 1, 8, 0, tzinfo=UTC))
    return GoalManager(clock=clock), clock


def test_checklist_end_to_end_score() -> None:
    manager, _ = build_manager()
    goal = ChecklistGoal(
        name="Temple", points=10, difficulty=Difficulty.MEDIUM, target_count=3, bonus_points=50
    )
    manager.add_goal(goal)

    results = [manager.record_progress(0) for _ in range(3)]

    assert [r.points for r in results] == [20, 40, 160]
    assert manager.engine.score == 220
    assert manager.engine.experience == 220
    assert goal.is_complete
    assert results[-1].completed
    assert "Goal Starter (Complete 1 goal)" in results[-1].achievements


def test_invalid_index_is_reported_without_changes() -> None:
    manager, _ = build_manager()
    manager.add_goal(SimpleGoal(name="Read", points=10))

    for index in (-1, 1, 5):
        result = manager.record_progress(index)
        assert not result.success
        assert "Invalid goal number" in result.message

    assert manager.engine.score == 0
    assert manager.engine.streak_days == 0
    assert not manager.goals[0].is_complete


def test_first_goal_grants_newbie_once() -> None:
    manager, _ = build_manager()
    assert manager.add_goal(SimpleGoal(name="A", points=1)) == ["Newbie (Created first goal)"]
    assert manager.add_goal(SimpleGoal(name="B", points=1)) == []


def test_add_goal_registers_tags() -> None:
    manager, _ = build_manager()
    manager.add_goal(SimpleGoal(name="Run", points=1, tags=["fitness", "outdoors"]))
    assert manager.engine.category_points == {"fitness": 0, "outdoors": 0}


def test_negative_goal_lowers_score_but_grants_experience() -> None:
    manager, _ = build_manager()
    manager.add_goal(NegativeGoal(name="Soda", points=10, difficulty=Difficulty.HARD, tags=["health"]))
    manager.record_progress(0)
    manager.record_progress(0)

    assert manager.engine.score == -30 + -60
    assert manager.engine.experience == 90
    assert manager.engine.category_points["health"] == -90
    assert manager.engine.last_points["Soda"] == -60


def test_progress_goal_needs_amount() -> None:
    manager, _ = build_manager()
    manager.add_goal(ProgressGoal(name="Pages", points=100, target_progress=200, unit="pages"))

    missing = manager.record_progress(0)
    assert not missing.success
    assert manager.engine.score == 0

    result = manager.record_progress(0, amount=50)
    assert result.success
    assert result.points == 25
    assert manager.goals[0].current_progress == 50


def test_level_up_reported_in_result() -> None:
    manager, _ = build_manager()
    manager.add_goal(EternalGoal(name="Study", points=200, difficulty=Difficulty.LEGENDARY))
    result = manager.record_progress(0)
    assert result.points == 1000
    assert result.level_up is not None
    assert manager.engine.level == 2
    assert manager.engine.experience == 0
    assert [r.name for r in result.claimable_rewards] == ["Custom Title", "Profile Badge"]


def test_streak_follows_calendar_days() -> None:
    manager, clock = build_manager()
    manager.add_goal(EternalGoal(name="Walk", points=5))
    for _ in range(3):
        manager.record_progress(0)
        clock.advance(days=1)
    assert manager.engine.streak_days == 3
    assert "Consistent (3-day streak)" in manager.engine.achievements

    clock.advance(days=1)
    manager.record_progress(0)
    assert manager.engine.streak_days == 1


def test_productive_day_after_three_quick_completions() -> None:
    manager, clock = build_manager()
    for name in ("A", "B", "C"):
        manager.add_goal(SimpleGoal(name=name, points=5, created_at=clock.now))
    clock.advance(hours=2)

    manager.record_progress(0)
    second = manager.record_progress(1)
    third = manager.record_progress(2)

    assert "Productive Day (Completed 3 goals in one day)" not in second.achievements
    assert "Productive Day (Completed 3 goals in one day)" in third.achievements


def test_recent_activity_covers_last_week() -> None:
    manager, clock = build_manager()
    manager.add_goal(EternalGoal(name="Walk", points=5))
    manager.record_progress(0)
    clock.advance(days=8)
    manager.record_progress(0)

    activity = manager.recent_activity()
    assert activity == [(clock.now.date(), 5)]


def test_display_numbers_follow_insertion_order() -> None:
    manager, _ = build_manager()
    for name in ("A", "B", "C"):
        manager.add_goal(SimpleGoal(name=name, points=1))
    manager.record_progress(1)

    assert [(n, g.name) for n, g in manager.active_goals()] == [(1, "A"), (3, "C")]
    assert [(n, g.name) for n, g in manager.completed_goals()] == [(2, "B")]


def test_statistics_groups_points_by_type() -> None:
    manager, _ = build_manager()
    manager.add_goal(SimpleGoal(name="A", points=10))
    manager.add_goal(NegativeGoal(name="B", points=4))
    manager.record_progress(0)
    manager.record_progress(1)

    stats = manager.statistics()
    assert stats["goals"] == 2
    assert stats["completed"] == 1
    assert stats["completion_rate"] == 0.5
    assert stats["points_by_type"] == {"Simple": 10, "Negative": -4}


def test_friends_leaderboard_and_social_achievement() -> None:
    manager, _ = build_manager()
    granted = []
    for name, score in (("Ann", 10), ("Bo", 300), ("Cy", 50)):
        granted += manager.add_friend(Friend(name=name, score=score, level=1))
    assert [f.name for f in manager.leaderboard()] == ["Bo", "Cy", "Ann"]
    assert granted == ["Social Butterfly (Added 3 friends)"]


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    manager, clock = build_manager()
    manager.add_goal(SimpleGoal(name="Read", points=10, tags=["books"], created_at=clock.now))
    manager.add_goal(
        ChecklistGoal(name="Gym", points=10, target_count=2, bonus_points=5, created_at=clock.now)
    )
    manager.add_goal(ProgressGoal(name="Run", points=40, target_progress=10, unit="km", created_at=clock.now))
    manager.record_progress(0)
    manager.record_progress(1)
    manager.record_progress(2, amount=4)
    manager.engine.score += 1000
    manager.claim_reward("Custom Title")

    save_path = tmp_path / "save" / "goals.txt"
    manager.save(save_path)

    loaded, _ = build_manager()
    assert loaded.load(save_path) is True
    assert loaded.engine.score == manager.engine.score
    assert loaded.engine.level == manager.engine.level
    assert loaded.engine.experience == manager.engine.experience
    assert loaded.engine.streak_days == manager.engine.streak_days
    assert loaded.engine.last_activity == manager.engine.last_activity
    assert loaded.engine.achievements == manager.engine.achievements
    assert loaded.engine.is_claimed("Custom Title")
    assert [g.points_earned() for g in loaded.goals] == [g.points_earned() for g in manager.goals]
    assert [g.is_complete for g in loaded.goals] == [True, False, False]
    assert loaded.engine.category_points == {"books": 0}


def test_load_missing_file_keeps_defaults(tmp_path: Path) -> None:
    manager, _ = build_manager()
    assert manager.load(tmp_path / "absent.txt") is False
    assert manager.goals == []
    assert manager.engine.level == 1


def test_load_malformed_file_installs_nothing(tmp_path: Path) -> None:
    manager, _ = build_manager()
    manager.add_goal(SimpleGoal(name="Keep", points=1))
    manager.engine.score = 42

    bad = tmp_path / "bad.txt"
    bad.write_text("5\n1\n0\n0\n\n\n\nSimpleGoal|Broken|\n", encoding="utf-8")

    with pytest.raises(SaveFileError):
        manager.load(bad)
    assert [g.name for g in manager.goals] == ["Keep"]
    assert manager.engine.score == 42


def test_evening_and_next_morning_extend_streak_in_local_time(tmp_path: Path) -> None:
    mountain = timezone(timedelta(hours=-7))
    manager, clock = build_manager(datetime(2026, 6, 1, 20, 0, tzinfo=mountain))
    manager.add_goal(EternalGoal(name="Stretch", points=5, created_at=clock.now))
    manager.record_progress(0)
    clock.advance(hours=12)
    manager.record_progress(0)
    assert manager.engine.streak_days == 2

    save_path = tmp_path / "goals.txt"
    manager.save(save_path)
    loaded, _ = build_manager(clock.now)
    loaded.load(save_path)
    assert loaded.engine.last_activity.utcoffset() == timedelta(hours=-7)
    assert loaded.engine.last_activity == clock.now
