"""Goal variants and their scoring rules."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime, timedelta
from enum import IntEnum
from statistics import fmean
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, Field, field_validator

ETERNAL_STREAK_THRESHOLD = 3
ETERNAL_STREAK_BONUS = 50


def local_now() -> datetime:
    """Return an aware datetime in the local timezone for event timestamps."""
    return datetime.now().astimezone()


class Difficulty(IntEnum):
    """Closed difficulty scale; the ordinal doubles as the point multiplier."""

    EASY = 1
    MEDIUM = 2
    HARD = 3
    EPIC = 4
    LEGENDARY = 5

    @property
    def multiplier(self) -> int:
        return int(self.value)

    @property
    def stars(self) -> str:
        return "★" * self.value


def progress_bar(ratio: float, width: int) -> str:
    """Render a fixed-width bar for a completion ratio."""
    filled = max(0, min(width, int(ratio * width)))
    return f"[{'=' * filled}{' ' * (width - filled)}]"


class Goal(BaseModel):
    """Fields and behaviour shared by every goal variant."""

    kind: str
    name: str
    description: str = ""
    points: int = Field(ge=0)
    difficulty: Difficulty = Difficulty.EASY
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=local_now)
    is_complete: bool = False
    completed_at: datetime | None = None

    label: ClassVar[str] = "Goal"

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        cleaned: list[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    @property
    def multiplier(self) -> int:
        return self.difficulty.multiplier

    @property
    def time_to_complete(self) -> timedelta:
        if self.completed_at is None:
            return timedelta(0)
        return self.completed_at - self.created_at

    def complete(self, at: datetime | None = None) -> None:
        """Mark complete; the completion timestamp is only ever set once."""
        if self.is_complete:
            return
        self.is_complete = True
        self.completed_at = at or local_now()

    @abstractmethod
    def record_progress(self, at: datetime | None = None) -> None:
        """Register one occurrence of progress."""

    @abstractmethod
    def points_earned(self) -> int:
        """Points for the current state. Pure."""

    @abstractmethod
    def progress_text(self) -> str:
        """Human readable status line."""

    def status_marker(self) -> str:
        return "[✓]" if self.is_complete else "[ ]"

    def display_text(self) -> str:
        tags = f"Tags: {', '.join(self.tags)}" if self.tags else ""
        return (
            f"{self.status_marker()} {self.name} ({self.description}) {self.difficulty.stars}\n"
            f"   {tags}\n"
            f"   {self.progress_text()}"
        )


class SimpleGoal(Goal):
    """One-shot goal, worth its points once complete."""

    kind: Literal["SimpleGoal"] = "SimpleGoal"
    label: ClassVar[str] = "Simple"

    def record_progress(self, at: datetime | None = None) -> None:
        self.complete(at)

    def points_earned(self) -> int:
        return self.points * self.multiplier if self.is_complete else 0

    def progress_text(self) -> str:
        if not self.is_complete or self.completed_at is None:
            return "Not completed"
        return (
            f"Completed on {self.completed_at:%Y-%m-%d} "
            f"(Took {self.time_to_complete.days} days)"
        )


class EternalGoal(Goal):
    """Repeatable goal that never completes."""

    kind: Literal["EternalGoal"] = "EternalGoal"
    times_completed: int = 0
    last_completed: datetime | None = None
    label: ClassVar[str] = "Eternal"

    def record_progress(self, at: datetime | None = None) -> None:
        self.times_completed += 1
        self.last_completed = at or local_now()

    def points_earned(self) -> int:
        # Unlocks on the occurrence count alone; calendar days are not checked.
        bonus = ETERNAL_STREAK_BONUS if self.times_completed >= ETERNAL_STREAK_THRESHOLD else 0
        return self.points * self.multiplier + bonus

    def progress_text(self) -> str:
        if self.times_completed and self.last_completed is not None:
            last = f"Last: {self.last_completed:%Y-%m-%d}"
        else:
            last = "Never completed"
        return f"Completed {self.times_completed} times. {last}"


class ChecklistGoal(Goal):
    """Goal repeated until a target count, paying a bonus on completion."""

    kind: Literal["ChecklistGoal"] = "ChecklistGoal"
    target_count: int = Field(gt=0)
    bonus_points: int = 0
    times_completed: int = 0
    completion_dates: list[datetime] = Field(default_factory=list)
    label: ClassVar[str] = "Checklist"

    def record_progress(self, at: datetime | None = None) -> None:
        at = at or local_now()
        self.times_completed += 1
        self.completion_dates.append(at)
        if self.times_completed >= self.target_count:
            self.complete(at)

    def points_earned(self) -> int:
        earned = self.times_completed * self.points * self.multiplier
        if self.is_complete:
            earned += self.bonus_points * self.multiplier
        return earned

    def average_days_between(self) -> float | None:
        if len(self.completion_dates) < 2:
            return None
        gaps = [
            (later - earlier).total_seconds() / 86400.0
            for earlier, later in zip(self.completion_dates, self.completion_dates[1:])
        ]
        return fmean(gaps)

    def progress_text(self) -> str:
        text = f"Completed {self.times_completed}/{self.target_count} times"
        if self.completion_dates:
            text += f". Last: {self.completion_dates[-1]:%Y-%m-%d}"
            average = self.average_days_between()
            if average is not None:
                text += f". Avg: {average:.1f} days between"
        return text

    def display_text(self) -> str:
        ratio = self.times_completed / self.target_count
        return f"{super().display_text()}\n   Progress: {progress_bar(ratio, 20)} {ratio:.0%}"


class NegativeGoal(Goal):
    """Habit to avoid; each occurrence costs points."""

    kind: Literal["NegativeGoal"] = "NegativeGoal"
    times_recorded: int = 0
    label: ClassVar[str] = "Negative"

    def record_progress(self, at: datetime | None = None) -> None:
        self.times_recorded += 1

    @property
    def cost_per_occurrence(self) -> int:
        return self.points * self.multiplier

    def points_earned(self) -> int:
        return -(self.cost_per_occurrence * self.times_recorded)

    def progress_text(self) -> str:
        return (
            f"Recorded {self.times_recorded} times. "
            f"Each occurrence loses {self.cost_per_occurrence} points"
        )

    def status_marker(self) -> str:
        return "[⚠]"


class ProgressGoal(Goal):
    """Goal measured in units against a numeric target."""

    kind: Literal["ProgressGoal"] = "ProgressGoal"
    target_progress: int = Field(gt=0)
    unit: str = ""
    current_progress: int = 0
    label: ClassVar[str] = "Progress"

    @property
    def ratio(self) -> float:
        return self.current_progress / self.target_progress

    def record_progress(self, at: datetime | None = None, amount: int = 0) -> None:
        self.current_progress += amount
        if self.current_progress >= self.target_progress:
            self.complete(at)

    def points_earned(self) -> int:
        # Recomputed from the current ratio, capped at the full value.
        reached = min(self.current_progress, self.target_progress)
        return (self.points * reached * self.multiplier) // self.target_progress

    def progress_text(self) -> str:
        return (
            f"Progress: {self.current_progress}/{self.target_progress} {self.unit} "
            f"({self.ratio:.0%})"
        )

    def display_text(self) -> str:
        return f"{super().display_text()}\n   {progress_bar(self.ratio, 30)} {self.ratio:.0%}"


AnyGoal = Annotated[
    Union[SimpleGoal, EternalGoal, ChecklistGoal, NegativeGoal, ProgressGoal],
    Field(discriminator="kind"),
]

