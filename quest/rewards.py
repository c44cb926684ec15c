"""Reward and leaderboard models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Reward(BaseModel):
    """Reward purchasable with score points. Identified by name."""

    name: str
    cost: int = Field(ge=0)


class Friend(BaseModel):
    """Passive leaderboard entry."""

    name: str
    score: int = 0
    level: int = 1


DEFAULT_REWARDS: tuple[Reward, ...] = (
    Reward(name="Custom Title", cost=500),
    Reward(name="Profile Badge", cost=1000),
    Reward(name="EXP Boost", cost=1500),
    Reward(name="Special Theme", cost=2000),
)
