"""Typer command handlers."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path

import typer
from pydantic import ValidationError

from core.orchestrator import Orchestrator, RuntimeBundle
from quest import codec
from quest.errors import QuestError
from quest.goals import (
    ChecklistGoal,
    Difficulty,
    EternalGoal,
    Goal,
    NegativeGoal,
    ProgressGoal,
    SimpleGoal,
)
from quest.manager import GoalManager, ProgressResult
from quest.rewards import Friend


class GoalKind(str, Enum):
    simple = "simple"
    eternal = "eternal"
    checklist = "checklist"
    negative = "negative"
    progress = "progress"


def _runtime(root: Path | None = None, save_file: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root, save_file=save_file).build()
    return bundle


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn core errors into a message and a non-zero exit."""
    try:
        yield
    except QuestError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc


def build_goal(
    kind: GoalKind,
    name: str,
    description: str,
    points: int,
    difficulty: int,
    tags: str,
    target: int | None = None,
    bonus: int = 0,
    unit: str = "",
) -> Goal:
    """Construct a goal from already validated CLI input."""
    common = {
        "name": name,
        "description": description,
        "points": points,
        "difficulty": Difficulty(difficulty),
        "tags": tags.split(","),
    }
    if kind in (GoalKind.checklist, GoalKind.progress) and target is None:
        raise typer.BadParameter(f"{kind.value} goals need --target")
    if kind is GoalKind.simple:
        return SimpleGoal(**common)
    if kind is GoalKind.eternal:
        return EternalGoal(**common)
    if kind is GoalKind.checklist:
        return ChecklistGoal(**common, target_count=target, bonus_points=bonus)
    if kind is GoalKind.negative:
        return NegativeGoal(**common)
    return ProgressGoal(**common, target_progress=target, unit=unit)


# ==================== Output ====================


def show_goals(manager: GoalManager) -> None:
    if not manager.goals:
        typer.echo("No goals yet. Create some to get started!")
        return
    typer.echo("=== Active Goals ===")
    for number, goal in manager.active_goals():
        typer.echo(f"{number}. {goal.display_text()}")
    typer.echo("\n=== Completed Goals ===")
    for number, goal in manager.completed_goals():
        typer.echo(f"{number}. {goal.display_text()}")


def show_progress(result: ProgressResult) -> None:
    if not result.success:
        typer.secho(result.message, fg=typer.colors.YELLOW, err=True)
        return
    typer.echo(result.message)
    if result.completed and result.goal is not None:
        typer.echo(f"Congratulations! You completed the goal: {result.goal.name}")
    if result.level_up is not None:
        typer.echo(f"LEVEL UP! You are now level {result.level_up.level}")
        if result.level_up.reward is not None:
            reward = result.level_up.reward
            typer.echo(f"New reward unlocked: {reward.name} (Cost: {reward.cost} points)")
    for achievement in result.achievements:
        typer.echo(f"Achievement Unlocked: {achievement}")
    for reward in result.claimable_rewards:
        typer.echo(f"You can claim a reward: {reward.name} (Cost: {reward.cost})")


SESSION_TOTALS_NOTE = (
    "Category and daily totals are not saved; they cover this run only. "
    "Use the 'session' command to build them up."
)


def show_score(manager: GoalManager, one_shot: bool = False) -> None:
    snap = manager.score_snapshot()
    typer.echo(f"Current Score: {snap['score']} points")
    typer.echo(f"Level: {snap['level']} (EXP: {snap['experience']}/{snap['experience_needed']})")
    typer.echo(f"Current Streak: {snap['streak_days']} days")
    if snap["achievements"]:
        typer.echo("\nAchievements Earned:")
        for achievement in snap["achievements"]:
            typer.echo(f"- {achievement}")
    if snap["claimed_rewards"]:
        typer.echo("\nRewards Claimed:")
        for reward in snap["claimed_rewards"]:
            typer.echo(f"- {reward['name']} (Cost: {reward['cost']})")
    categories = manager.category_progress()
    if categories:
        typer.echo("\nCategory Progress:")
        for tag, points in categories:
            typer.echo(f"- {tag}: {points} points")
    if one_shot:
        typer.echo(f"\n{SESSION_TOTALS_NOTE}")


def show_statistics(manager: GoalManager, one_shot: bool = False) -> None:
    stats = manager.statistics()
    typer.echo(
        f"Goals: {stats['goals']} (Completed: {stats['completed']}, "
        f"Rate: {stats['completion_rate']:.0%})"
    )
    typer.echo("\nPoints by Goal Type:")
    for label, points in stats["points_by_type"].items():
        typer.echo(f"- {label}: {points} points")
    if stats["recent_activity"]:
        typer.echo("\nRecent Activity:")
        for day, points in stats["recent_activity"]:
            typer.echo(f"- {day:%Y-%m-%d}: {points} points")
    if one_shot:
        typer.echo(f"\n{SESSION_TOTALS_NOTE}")


def show_rewards(manager: GoalManager) -> None:
    typer.echo(f"Reward Shop (Current Points: {manager.engine.score})")
    for index, reward in enumerate(manager.available_rewards(), start=1):
        typer.echo(f"{index}. {reward.name} - {reward.cost} points")


def show_friends(manager: GoalManager) -> None:
    board = manager.leaderboard()
    if not board:
        typer.echo("You haven't added any friends yet.")
        return
    for friend in board:
        typer.echo(f"- {friend.name}: {friend.score} points (Level {friend.level})")


# ==================== Commands ====================


def goals_add(root: Path | None, save_file: Path | None, **fields: object) -> None:
    """Add a goal and save."""
    with reporting_errors():
        bundle = _runtime(root, save_file)
        goal = build_goal(**fields)
        granted = bundle.manager.add_goal(goal)
        bundle.save()
    typer.echo(f"Added goal: {goal.name}")
    for achievement in granted:
        typer.echo(f"Achievement Unlocked: {achievement}")


def goals_list(root: Path | None, save_file: Path | None) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
    show_goals(bundle.manager)


def goals_record(
    root: Path | None, save_file: Path | None, number: int, amount: int | None
) -> None:
    """Record progress on the goal with the given display number and save."""
    with reporting_errors():
        bundle = _runtime(root, save_file)
        result = bundle.manager.record_progress(number - 1, amount=amount)
        if result.success:
            bundle.save()
    show_progress(result)
    if not result.success:
        raise typer.Exit(code=1)


def score(root: Path | None, save_file: Path | None) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
    show_score(bundle.manager, one_shot=True)


def stats(root: Path | None, save_file: Path | None) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
    show_statistics(bundle.manager, one_shot=True)


def rewards_list(root: Path | None, save_file: Path | None) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
    show_rewards(bundle.manager)


def rewards_claim(root: Path | None, save_file: Path | None, name: str) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
        reward = bundle.manager.claim_reward(name)
        bundle.save()
    typer.echo(f"Reward claimed: {reward.name}! New score: {bundle.manager.engine.score}")


def friends_list(root: Path | None, save_file: Path | None) -> None:
    with reporting_errors():
        bundle = _runtime(root, save_file)
    show_friends(bundle.manager)


def config_show(root: Path | None, save_file: Path | None) -> None:
    """Show effective runtime config."""
    with reporting_errors():
        bundle = _runtime(root, save_file)
    payload = {**bundle.config, "save_path": str(bundle.save_path)}
    typer.echo(json.dumps(payload, indent=2))


# ==================== Interactive session ====================

MENU = (
    "1. Create New Goal",
    "2. Record Goal Progress",
    "3. View Goals",
    "4. View Score & Achievements",
    "5. View Statistics",
    "6. Reward Shop",
    "7. Friends",
    "8. Save Progress",
    "9. Exit",
)


def _prompt_text(label: str, default: str | None = None, extra: str = "") -> str:
    """Prompt until the answer can be written to a save line."""
    while True:
        value = typer.prompt(label, default=default)
        if not codec.has_reserved(value, extra):
            return value
        typer.secho(f"'{codec.DELIMITER}'{extra} and line breaks are not allowed.", fg=typer.colors.YELLOW)


def _prompt_int(label: str, minimum: int | None = None, maximum: int | None = None) -> int:
    while True:
        value = typer.prompt(label, type=int)
        if (minimum is None or value >= minimum) and (maximum is None or value <= maximum):
            return value
        bounds = f"at least {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        typer.secho(f"Enter a number {bounds}.", fg=typer.colors.YELLOW)


def _prompt_goal() -> Goal:
    kinds = [k.value for k in GoalKind]
    raw_kind = ""
    while raw_kind not in kinds:
        raw_kind = typer.prompt(f"Goal type ({'/'.join(kinds)})").strip().lower()
    kind = GoalKind(raw_kind)
    name = _prompt_text("Goal name")
    description = _prompt_text("Goal description", default="")
    points = _prompt_int("Points", minimum=0)
    difficulty = _prompt_int("Difficulty (1 Easy .. 5 Legendary)", minimum=1, maximum=5)
    tags = _prompt_text("Tags (comma separated)", default="")
    target = None
    bonus = 0
    unit = ""
    if kind is GoalKind.checklist:
        target = _prompt_int("Target count", minimum=1)
        bonus = _prompt_int("Bonus points", minimum=0)
    elif kind is GoalKind.progress:
        target = _prompt_int("Target progress", minimum=1)
        unit = _prompt_text("Progress unit (e.g. miles, pages)", default="")
    return build_goal(kind, name, description, points, difficulty, tags, target, bonus, unit)


def _save(bundle: RuntimeBundle) -> bool:
    try:
        bundle.save()
    except (QuestError, OSError) as exc:
        typer.secho(f"Could not save: {exc}", fg=typer.colors.RED, err=True)
        return False
    return True


def _run_choice(choice: str, bundle: RuntimeBundle) -> bool:
    """Handle one menu choice; returns False when the session should end."""
    manager = bundle.manager
    if choice == "1":
        for achievement in manager.add_goal(_prompt_goal()):
            typer.echo(f"Achievement Unlocked: {achievement}")
        typer.echo("Goal added successfully!")
    elif choice == "2":
        show_goals(manager)
        number = typer.prompt("Goal number", type=int)
        amount = None
        if 0 < number <= len(manager.goals) and isinstance(manager.goals[number - 1], ProgressGoal):
            amount = typer.prompt("Progress amount", type=int)
        show_progress(manager.record_progress(number - 1, amount=amount))
    elif choice == "3":
        show_goals(manager)
    elif choice == "4":
        show_score(manager)
    elif choice == "5":
        show_statistics(manager)
    elif choice == "6":
        show_rewards(manager)
        name = typer.prompt("Reward name to claim (blank to cancel)", default="")
        if name:
            reward = manager.claim_reward(name)
            typer.echo(f"Reward claimed: {reward.name}! New score: {manager.engine.score}")
    elif choice == "7":
        show_friends(manager)
        if typer.confirm("Add a friend?", default=False):
            friend = Friend(
                name=typer.prompt("Friend's name"),
                score=typer.prompt("Friend's score", type=int),
                level=_prompt_int("Friend's level", minimum=1),
            )
            for achievement in manager.add_friend(friend):
                typer.echo(f"Achievement Unlocked: {achievement}")
    elif choice == "8":
        if _save(bundle):
            typer.echo("Progress saved successfully!")
    elif choice == "9":
        if typer.confirm("Save before exiting?", default=True):
            _save(bundle)
        typer.echo("Goodbye!")
        return False
    else:
        typer.echo("Invalid choice. Please try again.")
    return True


def session(root: Path | None, save_file: Path | None) -> None:
    """Interactive menu loop over one in-memory session."""
    with reporting_errors():
        bundle = _runtime(root, save_file)
    typer.echo("=== Eternal Quest ===")
    running = True
    while running:
        typer.echo("\n" + "\n".join(MENU))
        choice = typer.prompt("Select an option").strip()
        try:
            running = _run_choice(choice, bundle)
        except (QuestError, ValidationError) as exc:
            # A refused action leaves the session and its unsaved state intact.
            typer.secho(f"Error: {exc}", fg=typer.colors.YELLOW, err=True)
