"""CLI command tests."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from ui.cli.cli import app

runner = CliRunner()


def invoke(root: Path, *args: str):
    return runner.invoke(app, ["--root", str(root), *args])


def test_add_and_record_simple_goal(tmp_path: Path) -> None:
    added = invoke(
        tmp_path, "goals", "add", "simple", "Read", "--points", "10", "--difficulty", "2",
        "--tags", "books",
    )
    assert added.exit_code == 0
    assert "Added goal: Read" in added.output
    assert "Newbie" in added.output

    recorded = invoke(tmp_path, "goals", "record", "1")
    assert recorded.exit_code == 0
    assert "You earned 20 points!" in recorded.output
    assert "Congratulations! You completed the goal: Read" in recorded.output

    listed = invoke(tmp_path, "goals", "list")
    assert "=== Completed Goals ===\n1. [✓] Read" in listed.output

    save_lines = (tmp_path / "goals_save.txt").read_text(encoding="utf-8").splitlines()
    assert save_lines[0] == "20"
    assert save_lines[7].startswith("SimpleGoal|Read||10|True|2|books|")


def test_progress_goal_records_amount(tmp_path: Path) -> None:
    invoke(
        tmp_path, "goals", "add", "progress", "Run", "--points", "30", "--target", "10",
        "--unit", "km",
    )
    result = invoke(tmp_path, "goals", "record", "1", "--amount", "5")
    assert result.exit_code == 0
    assert "You earned 15 points!" in result.output

    score = invoke(tmp_path, "score")
    assert "Current Score: 15 points" in score.output


def test_invalid_goal_number_exits_nonzero(tmp_path: Path) -> None:
    result = invoke(tmp_path, "goals", "record", "3")
    assert result.exit_code == 1


def test_checklist_requires_target(tmp_path: Path) -> None:
    result = invoke(tmp_path, "goals", "add", "checklist", "Gym", "--points", "5")
    assert result.exit_code != 0
    assert not (tmp_path / "goals_save.txt").exists()


def test_claim_without_points_fails(tmp_path: Path) -> None:
    result = invoke(tmp_path, "rewards", "claim", "Custom Title")
    assert result.exit_code == 1


def test_corrupt_save_file_is_reported(tmp_path: Path) -> None:
    (tmp_path / "goals_save.txt").write_text("not a number\n", encoding="utf-8")
    result = invoke(tmp_path, "score")
    assert result.exit_code == 1


def test_rewards_list_shows_catalog(tmp_path: Path) -> None:
    result = invoke(tmp_path, "rewards", "list")
    assert result.exit_code == 0
    assert "1. Custom Title - 500 points" in result.output
    assert "4. Special Theme - 2000 points" in result.output


def run_session(root: Path, *answers: str):
    return runner.invoke(app, ["--root", str(root), "session"], input="\n".join(answers) + "\n")


def test_session_create_record_and_save(tmp_path: Path) -> None:
    result = run_session(
        tmp_path,
        "1", "simple", "Read", "", "10", "2", "books",
        "2", "1",
        "4",
        "8",
        "9", "n",
    )
    assert result.exit_code == 0
    assert "Goal added successfully!" in result.output
    assert "You earned 20 points!" in result.output
    assert "Current Score: 20 points" in result.output
    assert "- books: 20 points" in result.output
    assert "Progress saved successfully!" in result.output
    assert "Goodbye!" in result.output

    save_lines = (tmp_path / "goals_save.txt").read_text(encoding="utf-8").splitlines()
    assert save_lines[0] == "20"
    assert save_lines[7].startswith("SimpleGoal|Read||10|True|2|books|")


def test_session_reprompts_for_out_of_range_numbers(tmp_path: Path) -> None:
    result = run_session(
        tmp_path,
        "1", "checklist", "Gym", "", "-5", "5", "9", "1", "", "0", "3", "10",
        "9", "y",
    )
    assert result.exit_code == 0
    assert "Enter a number at least 0." in result.output
    assert "Enter a number between 1 and 5." in result.output
    assert "Enter a number at least 1." in result.output

    save_lines = (tmp_path / "goals_save.txt").read_text(encoding="utf-8").splitlines()
    assert save_lines[7].startswith("ChecklistGoal|Gym||5|False|1||")
    assert save_lines[7].endswith("|0|3|10|")


def test_session_reprompts_for_reserved_characters(tmp_path: Path) -> None:
    result = run_session(
        tmp_path,
        "1", "progress", "Run|Walk", "Run", "", "5", "1", "", "10", "km|mi", "km",
        "9", "y",
    )
    assert result.exit_code == 0
    assert result.output.count("'|' and line breaks are not allowed.") == 2

    save_lines = (tmp_path / "goals_save.txt").read_text(encoding="utf-8").splitlines()
    assert save_lines[7].startswith("ProgressGoal|Run||5|False|1||")
    assert save_lines[7].endswith("|0|10|km")


def test_session_keeps_running_after_refused_claim(tmp_path: Path) -> None:
    result = run_session(tmp_path, "6", "Profile Badge", "3", "9", "n")
    assert result.exit_code == 0
    assert "No goals yet." in result.output
    assert "Goodbye!" in result.output
    assert not (tmp_path / "goals_save.txt").exists()


def test_one_shot_reports_mention_session_only_totals(tmp_path: Path) -> None:
    invoke(tmp_path, "goals", "add", "simple", "Read", "--points", "10", "--tags", "books")
    invoke(tmp_path, "goals", "record", "1")

    score = invoke(tmp_path, "score")
    assert "- books: 0 points" in score.output
    assert "Category and daily totals are not saved" in score.output

    stats = invoke(tmp_path, "stats")
    assert "Category and daily totals are not saved" in stats.output

    session = run_session(tmp_path, "4", "9", "n")
    assert "Category and daily totals are not saved" not in session.output
