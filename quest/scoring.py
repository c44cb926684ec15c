"""Session gamification: experience, levels, streaks, achievements and rewards."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from quest.errors import RewardError
from quest.goals import Difficulty, Goal, local_now
from quest.rewards import DEFAULT_REWARDS, Reward

logger = logging.getLogger("eq.scoring")

SCORE_ACHIEVEMENTS = (
    (1000, "Point Collector", "Earn 1,000 points"),
    (5000, "Point Master", "Earn 5,000 points"),
    (10000, "Point Legend", "Earn 10,000 points"),
)
COMPLETION_ACHIEVEMENTS = (
    (1, "Goal Starter", "Complete 1 goal"),
    (5, "Goal Achiever", "Complete 5 goals"),
    (10, "Goal Master", "Complete 10 goals"),
)
STREAK_ACHIEVEMENTS = (
    (3, "Consistent", "3-day streak"),
    (7, "Dedicated", "7-day streak"),
    (30, "Unstoppable", "30-day streak"),
)
CATEGORY_ACHIEVEMENTS = (
    (500, "Enthusiast", "Earn 500 points in {tag}"),
    (2000, "Expert", "Earn 2,000 points in {tag}"),
)
DIFFICULTY_ACHIEVEMENTS = (
    (Difficulty.HARD, "Challenge Seeker", "Complete a Hard goal"),
    (Difficulty.EPIC, "Epic Adventurer", "Complete an Epic goal"),
)
FIRST_GOAL = ("Newbie", "Created first goal")
PRODUCTIVE_DAY = ("Productive Day", "Completed 3 goals in one day")
PRODUCTIVE_DAY_GOALS = 3
SOCIAL_BUTTERFLY = ("Social Butterfly", "Added 3 friends")
SOCIAL_BUTTERFLY_FRIENDS = 3


def achievement_key(name: str, description: str) -> str:
    """Full descriptive string an achievement is stored under."""
    return f"{name} ({description})"


class ScoringPolicy(BaseModel):
    """Tunable leveling and reward parameters."""

    level_base_experience: int = Field(default=1000, gt=0)
    level_growth: float = Field(default=1.2, gt=0)
    reward_level_interval: int = Field(default=5, gt=0)
    reward_cost_per_level: int = 100
    boost_marker: str = "Boost"
    boost_experience: int = 200
    rewards: list[Reward] = Field(default_factory=lambda: list(DEFAULT_REWARDS))


@dataclass
class LevelUp:
    """Outcome of a level increment."""

    level: int
    reward: Reward | None = None


class ScoreEngine:
    """Tracks score, experience, level, streak, achievements and rewards."""

    def __init__(
        self,
        policy: ScoringPolicy | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.policy = policy or ScoringPolicy()
        self.clock = clock
        self.score = 0
        self.level = 1
        self.experience = 0
        self.streak_days = 0
        self.last_activity: datetime | None = None
        self.achievements: list[str] = []
        self.category_points: dict[str, int] = {}
        self.daily_points: dict[date, int] = {}
        self.last_points: dict[str, int] = {}
        self.claimed_rewards: list[Reward] = []
        self._claimed_names: set[str] = set()
        self.catalog: list[Reward] = list(self.policy.rewards)

    # ==================== Experience & Level ====================

    def experience_for_next_level(self) -> int:
        policy = self.policy
        return round(policy.level_base_experience * policy.level_growth ** (self.level - 1))

    def level_reward(self, level: int) -> Reward:
        return Reward(name=f"Level {level} Champion", cost=level * self.policy.reward_cost_per_level)

    def check_level_up(self) -> LevelUp | None:
        """Advance at most one level, carrying leftover experience over."""
        needed = self.experience_for_next_level()
        if self.experience < needed:
            return None
        self.level += 1
        self.experience -= needed
        result = LevelUp(level=self.level)
        logger.info("Level up: now level %d", self.level)
        if self.level % self.policy.reward_level_interval == 0:
            result.reward = self.level_reward(self.level)
            self.catalog.append(result.reward)
            logger.info("Reward unlocked: %s (%d)", result.reward.name, result.reward.cost)
        return result

    # ==================== Events ====================

    def update_streak(self, now: datetime) -> int:
        today = now.date()
        if self.last_activity is None:
            self.streak_days = 1
        else:
            last_day = self.last_activity.astimezone(now.tzinfo).date()
            if last_day == today - timedelta(days=1):
                self.streak_days += 1
            elif last_day != today:
                self.streak_days = 1
        self.last_activity = now
        return self.streak_days

    def register_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            self.category_points.setdefault(tag, 0)

    def apply_points(self, goal: Goal, points: int, now: datetime) -> None:
        """Credit one progress event to score, experience and the running totals."""
        self.score += points
        self.experience += abs(points)
        today = now.date()
        self.daily_points[today] = self.daily_points.get(today, 0) + points
        for tag in goal.tags:
            self.category_points[tag] = self.category_points.get(tag, 0) + points
        self.last_points[goal.name] = points

    # ==================== Achievements ====================

    def grant(self, name: str, description: str) -> str | None:
        """Grant an achievement once; returns its key only when newly granted."""
        key = achievement_key(name, description)
        if key in self.achievements:
            return None
        self.achievements.append(key)
        logger.info("Achievement unlocked: %s", key)
        return key

    def _check(self, rules: Iterable[tuple[str, str, bool]]) -> list[str]:
        granted = []
        for name, description, condition in rules:
            if condition:
                key = self.grant(name, description)
                if key:
                    granted.append(key)
        return granted

    def check_achievements(self, goals: Sequence[Goal]) -> list[str]:
        completed = [goal for goal in goals if goal.is_complete]
        rules: list[tuple[str, str, bool]] = []
        rules += [(n, d, self.score >= t) for t, n, d in SCORE_ACHIEVEMENTS]
        rules += [(n, d, len(completed) >= t) for t, n, d in COMPLETION_ACHIEVEMENTS]
        rules += [(n, d, self.streak_days >= t) for t, n, d in STREAK_ACHIEVEMENTS]
        for tag, points in self.category_points.items():
            rules += [
                (f"{tag} {n}", d.format(tag=tag), points >= t)
                for t, n, d in CATEGORY_ACHIEVEMENTS
            ]
        rules += [
            (n, d, any(goal.difficulty >= level for goal in completed))
            for level, n, d in DIFFICULTY_ACHIEVEMENTS
        ]
        return self._check(rules)

    def check_completion_achievements(self, goals: Sequence[Goal]) -> list[str]:
        quick = [
            goal
            for goal in goals
            if goal.is_complete and goal.time_to_complete < timedelta(days=1)
        ]
        return self._check([(*PRODUCTIVE_DAY, len(quick) >= PRODUCTIVE_DAY_GOALS)])

    def check_first_goal(self, goal_count: int) -> list[str]:
        return self._check([(*FIRST_GOAL, goal_count == 1)])

    def check_friends(self, friend_count: int) -> list[str]:
        return self._check([(*SOCIAL_BUTTERFLY, friend_count >= SOCIAL_BUTTERFLY_FRIENDS)])

    # ==================== Rewards ====================

    def is_claimed(self, name: str) -> bool:
        return name in self._claimed_names

    def available_rewards(self) -> list[Reward]:
        return [reward for reward in self.catalog if not self.is_claimed(reward.name)]

    def claimable_rewards(self) -> list[Reward]:
        return [reward for reward in self.available_rewards() if self.score >= reward.cost]

    def claim_reward(self, name: str) -> Reward:
        """Spend score on a catalog reward."""
        reward = next((r for r in self.catalog if r.name == name), None)
        if reward is None:
            raise RewardError(f"No reward named {name!r}")
        if self.is_claimed(name):
            raise RewardError(f"Reward {name!r} already claimed")
        if self.score < reward.cost:
            raise RewardError(
                f"Not enough points for {name!r}: need {reward.cost}, have {self.score}"
            )
        self.score -= reward.cost
        self.claimed_rewards.append(reward)
        self._claimed_names.add(reward.name)
        logger.info("Reward claimed: %s, score now %d", reward.name, self.score)
        if self.policy.boost_marker and self.policy.boost_marker in reward.name:
            self.experience += self.policy.boost_experience
            self.check_level_up()
        return reward

    # ==================== Persistence ====================

    def restore(
        self,
        *,
        score: int,
        level: int,
        experience: int,
        streak_days: int,
        last_activity: datetime | None,
        achievements: Sequence[str],
        claimed_rewards: Sequence[Reward],
    ) -> None:
        """Install loaded state; the reward catalog is rebuilt from the level reached."""
        self.score = score
        self.level = level
        self.experience = experience
        self.streak_days = streak_days
        self.last_activity = last_activity
        self.achievements = list(dict.fromkeys(achievements))
        self.claimed_rewards = list(claimed_rewards)
        self._claimed_names = {reward.name for reward in claimed_rewards}

        interval = self.policy.reward_level_interval
        self.catalog = list(self.policy.rewards)
        self.catalog += [self.level_reward(lvl) for lvl in range(interval, level + 1, interval)]
        known = {reward.name for reward in self.catalog}
        self.catalog += [r for r in self.claimed_rewards if r.name not in known]
