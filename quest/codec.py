"""Pipe-delimited save file codec.

A save file holds seven header lines followed by one line per goal:

    score
    level
    experience
    streak
    last activity (ISO 8601, empty when there was none)
    achievements joined with "|"
    claimed rewards as "name,cost" joined with "|"
    <goal line>...

Every goal line starts with the same nine fields

    kind|name|description|points|isComplete|difficulty|tag,tag|created|completed

followed by fields specific to the goal kind. Counters are rebuilt on decode by
replaying ``record_progress`` so that derived state such as completion matches
what live recording would have produced; the persisted completion flag is
applied afterwards and wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import BaseModel, Field, ValidationError

from quest.errors import QuestError, SaveFileError, UnknownGoalKindError
from quest.goals import (
    AnyGoal,
    ChecklistGoal,
    Difficulty,
    EternalGoal,
    Goal,
    NegativeGoal,
    ProgressGoal,
    SimpleGoal,
)
from quest.rewards import Reward

logger = logging.getLogger("eq.codec")

DELIMITER = "|"
LIST_DELIMITER = ","
HEADER_LINES = 7
COMMON_FIELDS = 9


class SavedState(BaseModel):
    """Everything a save file carries, parsed in full before it is installed."""

    score: int = 0
    level: int = 1
    experience: int = 0
    streak_days: int = 0
    last_activity: datetime | None = None
    achievements: list[str] = Field(default_factory=list)
    claimed_rewards: list[Reward] = Field(default_factory=list)
    goals: list[AnyGoal] = Field(default_factory=list)


# ---------------------------------------------------------------- primitives


def format_timestamp(value: datetime | None) -> str:
    return "" if value is None else value.isoformat()


def parse_timestamp(raw: str) -> datetime | None:
    raw = raw.strip()
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise SaveFileError(f"invalid timestamp {raw!r}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def parse_int(raw: str, field: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise SaveFileError(f"invalid {field} {raw!r}") from exc


def parse_count(raw: str, field: str) -> int:
    value = parse_int(raw, field)
    if value < 0:
        raise SaveFileError(f"negative {field} {value}")
    return value


def parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise SaveFileError(f"invalid completion flag {raw!r}")


def has_reserved(value: str, extra: str = "") -> bool:
    """True when ``value`` holds the field delimiter or a line break of any kind."""
    if any(ch in value for ch in DELIMITER + extra):
        return True
    # splitlines() drops every line boundary str knows about, not only "\n" and "\r".
    return "".join(value.splitlines()) != value


def _check_text(value: str, field: str, extra: str = "") -> str:
    if has_reserved(value, extra):
        raise QuestError(f"{field} {value!r} contains a reserved character")
    return value


# ---------------------------------------------------------------- encoding


def encode(goal: Goal) -> str:
    """Serialize one goal to a single line."""
    fields = [
        goal.kind,
        _check_text(goal.name, "name"),
        _check_text(goal.description, "description"),
        str(goal.points),
        str(goal.is_complete),
        str(int(goal.difficulty)),
        LIST_DELIMITER.join(_check_text(tag, "tag", LIST_DELIMITER) for tag in goal.tags),
        format_timestamp(goal.created_at),
        format_timestamp(goal.completed_at),
    ]
    if isinstance(goal, EternalGoal):
        fields += [str(goal.times_completed), format_timestamp(goal.last_completed)]
    elif isinstance(goal, ChecklistGoal):
        fields += [
            str(goal.times_completed),
            str(goal.target_count),
            str(goal.bonus_points),
            LIST_DELIMITER.join(format_timestamp(ts) for ts in goal.completion_dates),
        ]
    elif isinstance(goal, NegativeGoal):
        fields += [str(goal.times_recorded)]
    elif isinstance(goal, ProgressGoal):
        fields += [
            str(goal.current_progress),
            str(goal.target_progress),
            _check_text(goal.unit, "unit"),
        ]
    return DELIMITER.join(fields)


# ---------------------------------------------------------------- decoding


def _common(parts: list[str]) -> dict[str, object]:
    ordinal = parse_int(parts[5], "difficulty")
    try:
        difficulty = Difficulty(ordinal)
    except ValueError as exc:
        raise SaveFileError(f"difficulty {ordinal} out of range") from exc
    created_at = parse_timestamp(parts[7])
    if created_at is None:
        raise SaveFileError("missing creation timestamp")
    return {
        "name": parts[1],
        "description": parts[2],
        "points": parse_int(parts[3], "points"),
        "difficulty": difficulty,
        "tags": [tag for tag in parts[6].split(LIST_DELIMITER) if tag],
        "created_at": created_at,
    }


def _decode_simple(common: dict[str, object], extra: list[str]) -> SimpleGoal:
    return SimpleGoal(**common)


def _decode_eternal(common: dict[str, object], extra: list[str]) -> EternalGoal:
    times = parse_count(extra[0], "times completed")
    last = parse_timestamp(extra[1]) or common["created_at"]
    goal = EternalGoal(**common)
    for _ in range(times):
        goal.record_progress(at=last)
    return goal


def _decode_checklist(common: dict[str, object], extra: list[str]) -> ChecklistGoal:
    times = parse_count(extra[0], "times completed")
    goal = ChecklistGoal(
        **common,
        target_count=parse_int(extra[1], "target count"),
        bonus_points=parse_count(extra[2], "bonus points"),
    )
    dates = [parse_timestamp(raw) for raw in extra[3].split(LIST_DELIMITER) if raw.strip()]
    if len(dates) != times:
        raise SaveFileError(f"{times} completions recorded but {len(dates)} timestamps stored")
    for at in dates:
        goal.record_progress(at=at)
    return goal


def _decode_negative(common: dict[str, object], extra: list[str]) -> NegativeGoal:
    goal = NegativeGoal(**common)
    for _ in range(parse_count(extra[0], "times recorded")):
        goal.record_progress()
    return goal


def _decode_progress(common: dict[str, object], extra: list[str]) -> ProgressGoal:
    current = parse_int(extra[0], "current progress")
    goal = ProgressGoal(
        **common,
        target_progress=parse_int(extra[1], "target progress"),
        unit=extra[2],
    )
    if current:
        goal.record_progress(at=common["created_at"], amount=current)
    return goal


Decoder = Callable[[dict[str, object], list[str]], Goal]

DECODERS: dict[str, tuple[int, Decoder]] = {
    "SimpleGoal": (0, _decode_simple),
    "EternalGoal": (2, _decode_eternal),
    "ChecklistGoal": (4, _decode_checklist),
    "NegativeGoal": (1, _decode_negative),
    "ProgressGoal": (3, _decode_progress),
}


def decode(line: str) -> Goal:
    """Rebuild a goal from one save line."""
    parts = line.rstrip("\r\n").split(DELIMITER)
    kind = parts[0]
    if kind not in DECODERS:
        raise UnknownGoalKindError(f"unknown goal kind {kind!r}")
    extra_count, decoder = DECODERS[kind]
    expected = COMMON_FIELDS + extra_count
    if len(parts) != expected:
        raise SaveFileError(f"{kind} needs {expected} fields, found {len(parts)}")

    is_complete = parse_bool(parts[4])
    completed_at = parse_timestamp(parts[8])
    try:
        goal = decoder(_common(parts), parts[COMMON_FIELDS:])
    except ValidationError as exc:
        raise SaveFileError(f"invalid {kind}: {exc.errors()[0]['msg']}") from exc

    # The persisted completion state overrides whatever replay produced.
    replayed_at = goal.completed_at
    goal.is_complete = is_complete
    if is_complete:
        goal.completed_at = completed_at or replayed_at or goal.created_at
    else:
        goal.completed_at = None
    return goal


# ---------------------------------------------------------------- whole file


def dump_state(state: SavedState) -> str:
    """Render the full save file text."""
    lines = [
        str(state.score),
        str(state.level),
        str(state.experience),
        str(state.streak_days),
        format_timestamp(state.last_activity),
        DELIMITER.join(_check_text(a, "achievement") for a in state.achievements),
        DELIMITER.join(
            f"{_check_text(r.name, 'reward', LIST_DELIMITER)}{LIST_DELIMITER}{r.cost}"
            for r in state.claimed_rewards
        ),
    ]
    lines += [encode(goal) for goal in state.goals]
    return "\n".join(lines) + "\n"


def _parse_reward(raw: str) -> Reward:
    name, sep, cost = raw.rpartition(LIST_DELIMITER)
    if not sep or not name:
        raise SaveFileError(f"invalid reward entry {raw!r}")
    try:
        return Reward(name=name, cost=parse_int(cost, "reward cost"))
    except ValidationError as exc:
        raise SaveFileError(f"invalid reward {raw!r}: {exc.errors()[0]['msg']}") from exc


def split_lines(text: str) -> list[str]:
    """Split on "\\n" only, tolerating "\\r\\n" endings and one trailing newline."""
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def parse_state(text: str) -> SavedState:
    """Parse a complete save file, or raise without returning partial state."""
    lines = split_lines(text)
    if len(lines) < HEADER_LINES:
        raise SaveFileError(f"expected {HEADER_LINES} header lines, found {len(lines)}")

    def at_line(number: int, parse: Callable[[], object]) -> object:
        try:
            return parse()
        except SaveFileError as exc:
            if exc.line_number is not None:
                raise
            raise type(exc)(str(exc), line_number=number) from exc

    score = at_line(1, lambda: parse_int(lines[0], "score"))
    level = at_line(2, lambda: parse_int(lines[1], "level"))
    experience = at_line(3, lambda: parse_int(lines[2], "experience"))
    streak = at_line(4, lambda: parse_int(lines[3], "streak"))
    last_activity = at_line(5, lambda: parse_timestamp(lines[4]))
    achievements = [a for a in lines[5].split(DELIMITER) if a]
    rewards = at_line(
        7, lambda: [_parse_reward(raw) for raw in lines[6].split(DELIMITER) if raw]
    )

    goals: list[Goal] = []
    for number, line in enumerate(lines[HEADER_LINES:], start=HEADER_LINES + 1):
        if not line.strip():
            continue
        goals.append(at_line(number, lambda line=line: decode(line)))

    logger.debug("Parsed save file with %d goals", len(goals))
    return SavedState(
        score=score,
        level=level,
        experience=experience,
        streak_days=streak,
        last_activity=last_activity,
        achievements=achievements,
        claimed_rewards=rewards,
        goals=goals,
    )
