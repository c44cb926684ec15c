"""Goal collection owner and entry point for the CLI."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from quest import codec
from quest.goals import Goal, ProgressGoal, local_now
from quest.rewards import Friend, Reward
from quest.scoring import LevelUp, ScoreEngine, ScoringPolicy

logger = logging.getLogger("eq.manager")


@dataclass
class ProgressResult:
    """What one progress record did, for the caller to report."""

    success: bool
    message: str = ""
    goal: Goal | None = None
    points: int = 0
    completed: bool = False
    level_up: LevelUp | None = None
    achievements: list[str] = field(default_factory=list)
    claimable_rewards: list[Reward] = field(default_factory=list)


class GoalManager:
    """Owns the goals of one session and the gamification state derived from them."""

    def __init__(
        self,
        policy: ScoringPolicy | None = None,
        clock: Callable[[], datetime] = local_now,
        friends: Iterable[Friend] | None = None,
    ) -> None:
        self.clock = clock
        self.goals: list[Goal] = []
        self.engine = ScoreEngine(policy=policy, clock=clock)
        self.friends: list[Friend] = list(friends or [])

    # ==================== Goals ====================

    def add_goal(self, goal: Goal) -> list[str]:
        """Append a goal; returns achievements granted by the addition."""
        self.goals.append(goal)
        self.engine.register_tags(goal.tags)
        logger.info("Goal added: %s (%s)", goal.name, goal.kind)
        return self.engine.check_first_goal(len(self.goals))

    def record_progress(self, index: int, amount: int | None = None) -> ProgressResult:
        """Record one occurrence of progress on the goal at ``index`` (0-based)."""
        if not 0 <= index < len(self.goals):
            logger.warning("Invalid goal index %d (have %d goals)", index, len(self.goals))
            return ProgressResult(success=False, message=f"Invalid goal number: {index + 1}")

        goal = self.goals[index]
        now = self.clock()
        was_complete = goal.is_complete
        if isinstance(goal, ProgressGoal):
            if amount is None:
                return ProgressResult(
                    success=False,
                    message=f"Goal '{goal.name}' needs an amount in {goal.unit or 'units'}",
                    goal=goal,
                )
            goal.record_progress(at=now, amount=amount)
        else:
            goal.record_progress(at=now)

        engine = self.engine
        engine.update_streak(now)
        points = goal.points_earned()
        engine.apply_points(goal, points, now)

        result = ProgressResult(success=True, goal=goal, points=points)
        result.level_up = engine.check_level_up()
        result.achievements = engine.check_achievements(self.goals)
        result.claimable_rewards = engine.claimable_rewards()
        if goal.is_complete:
            result.completed = not was_complete
            result.achievements += engine.check_completion_achievements(self.goals)
        result.message = f"You earned {points} points!"
        logger.info("Progress on %s: %+d points, score %d", goal.name, points, engine.score)
        return result

    def active_goals(self) -> list[tuple[int, Goal]]:
        """Incomplete goals with their 1-based display numbers."""
        return [(i + 1, g) for i, g in enumerate(self.goals) if not g.is_complete]

    def completed_goals(self) -> list[tuple[int, Goal]]:
        return [(i + 1, g) for i, g in enumerate(self.goals) if g.is_complete]

    # ==================== Rewards & Friends ====================

    def available_rewards(self) -> list[Reward]:
        return self.engine.available_rewards()

    def claimable_rewards(self) -> list[Reward]:
        return self.engine.claimable_rewards()

    def claim_reward(self, name: str) -> Reward:
        return self.engine.claim_reward(name)

    def add_friend(self, friend: Friend) -> list[str]:
        self.friends.append(friend)
        logger.info("Friend added: %s", friend.name)
        return self.engine.check_friends(len(self.friends))

    def leaderboard(self) -> list[Friend]:
        return sorted(self.friends, key=lambda f: f.score, reverse=True)

    # ==================== Reporting ====================

    def score_snapshot(self) -> dict[str, Any]:
        engine = self.engine
        return {
            "score": engine.score,
            "level": engine.level,
            "experience": engine.experience,
            "experience_needed": engine.experience_for_next_level(),
            "streak_days": engine.streak_days,
            "achievements": list(engine.achievements),
            "claimed_rewards": [r.model_dump() for r in engine.claimed_rewards],
        }

    def category_progress(self) -> list[tuple[str, int]]:
        return sorted(self.engine.category_points.items(), key=lambda kv: kv[1], reverse=True)

    def recent_activity(self, days: int = 7) -> list[tuple[date, int]]:
        """Per-day point totals for the last ``days`` days, oldest first."""
        cutoff = self.clock().date() - timedelta(days=days)
        return sorted((d, p) for d, p in self.engine.daily_points.items() if d > cutoff)

    def statistics(self) -> dict[str, Any]:
        total = len(self.goals)
        completed = sum(1 for goal in self.goals if goal.is_complete)
        by_type: dict[str, int] = {}
        for goal in self.goals:
            by_type[goal.label] = by_type.get(goal.label, 0) + goal.points_earned()
        return {
            "goals": total,
            "completed": completed,
            "completion_rate": completed / total if total else 0.0,
            "points_by_type": by_type,
            "recent_activity": self.recent_activity(),
        }

    # ==================== Persistence ====================

    def to_state(self) -> codec.SavedState:
        engine = self.engine
        return codec.SavedState(
            score=engine.score,
            level=engine.level,
            experience=engine.experience,
            streak_days=engine.streak_days,
            last_activity=engine.last_activity,
            achievements=engine.achievements,
            claimed_rewards=engine.claimed_rewards,
            goals=self.goals,
        )

    def save(self, path: Path) -> None:
        text = codec.dump_state(self.to_state())
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            fh.write(text)
        logger.info("Saved %d goals to %s", len(self.goals), path)

    def load(self, path: Path) -> bool:
        """Replace session state from ``path``; returns False when there is no file."""
        if not path.exists():
            logger.info("No save file at %s, starting fresh", path)
            return False
        with path.open("r", encoding="utf-8") as fh:
            state = codec.parse_state(fh.read())

        self.goals = list(state.goals)
        self.engine.restore(
            score=state.score,
            level=state.level,
            experience=state.experience,
            streak_days=state.streak_days,
            last_activity=state.last_activity,
            achievements=state.achievements,
            claimed_rewards=state.claimed_rewards,
        )
        self.engine.category_points = {}
        self.engine.daily_points = {}
        self.engine.last_points = {}
        for goal in self.goals:
            self.engine.register_tags(goal.tags)
        logger.info("Loaded %d goals from %s", len(self.goals), path)
        return True
