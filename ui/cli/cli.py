"""CLI entrypoint for eternal-quest."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Eternal Quest: gamified goal tracker")
goals_app = typer.Typer(help="Goal commands")
rewards_app = typer.Typer(help="Reward shop commands")
friends_app = typer.Typer(help="Friend leaderboard commands")
config_app = typer.Typer(help="Configuration commands")


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(None, help="Directory holding config/ (default: cwd)"),
    save_file: Optional[Path] = typer.Option(None, "--save-file", help="Save file path"),
) -> None:
    """Shared runtime options."""
    ctx.obj = {"root": root, "save_file": save_file}


@app.command("session")
def session_cmd(ctx: typer.Context) -> None:
    """Interactive menu session."""
    commands.session(**ctx.obj)


@app.command("score")
def score_cmd(ctx: typer.Context) -> None:
    """Show score, level, streak, achievements and category totals."""
    commands.score(**ctx.obj)


@app.command("stats")
def stats_cmd(ctx: typer.Context) -> None:
    """Show goal statistics."""
    commands.stats(**ctx.obj)


@goals_app.command("add")
def goals_add_cmd(
    ctx: typer.Context,
    kind: commands.GoalKind = typer.Argument(..., help="Goal kind"),
    name: str = typer.Argument(..., help="Goal name"),
    description: str = typer.Option("", help="Goal description"),
    points: int = typer.Option(..., min=0, help="Base points"),
    difficulty: int = typer.Option(1, min=1, max=5, help="1 Easy .. 5 Legendary"),
    tags: str = typer.Option("", help="Comma separated tags"),
    target: Optional[int] = typer.Option(None, min=1, help="Target count or progress amount"),
    bonus: int = typer.Option(0, min=0, help="Checklist completion bonus"),
    unit: str = typer.Option("", help="Progress unit label"),
) -> None:
    """Add a new goal."""
    commands.goals_add(
        **ctx.obj,
        kind=kind,
        name=name,
        description=description,
        points=points,
        difficulty=difficulty,
        tags=tags,
        target=target,
        bonus=bonus,
        unit=unit,
    )


@goals_app.command("list")
def goals_list_cmd(ctx: typer.Context) -> None:
    """List goals grouped by completion."""
    commands.goals_list(**ctx.obj)


@goals_app.command("record")
def goals_record_cmd(
    ctx: typer.Context,
    number: int = typer.Argument(..., help="Goal number as shown by 'goals list'"),
    amount: Optional[int] = typer.Option(None, help="Amount for progress goals"),
) -> None:
    """Record progress on a goal."""
    commands.goals_record(**ctx.obj, number=number, amount=amount)


@rewards_app.command("list")
def rewards_list_cmd(ctx: typer.Context) -> None:
    """List unclaimed rewards."""
    commands.rewards_list(**ctx.obj)


@rewards_app.command("claim")
def rewards_claim_cmd(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    """Claim a reward by name."""
    commands.rewards_claim(**ctx.obj, name=name)


@friends_app.command("list")
def friends_list_cmd(ctx: typer.Context) -> None:
    """Show the friend leaderboard."""
    commands.friends_list(**ctx.obj)


@config_app.command("show")
def config_show_cmd(ctx: typer.Context) -> None:
    """Show effective configuration."""
    commands.config_show(**ctx.obj)


app.add_typer(goals_app, name="goals")
app.add_typer(rewards_app, name="rewards")
app.add_typer(friends_app, name="friends")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
