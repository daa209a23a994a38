"""Tests for the tt command line."""

from datetime import datetime
from pathlib import Path

import pytest
from click.testing import CliRunner

from timetrack.cli import main
from timetrack.database import load_database
from timetrack.types import NO_TAG, Position, Timestamp


def _ts(text: str) -> int:
    """Local-time timestamp for 'YYYY-MM-DD HH:MM'."""
    return int(datetime.strptime(text, "%Y-%m-%d %H:%M").astimezone().timestamp())


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def database_path(temp_timetrack_dir: Path, runner: CliRunner) -> Path:
    """Initialized, empty database at the default location."""
    result = runner.invoke(main, ["init"])
    assert result.exit_code == 0, result.output
    return temp_timetrack_dir / "database.json"


@pytest.fixture
def workday(database_path: Path, runner: CliRunner) -> Path:
    """A tag 'w' and three checkpoints on 2024-03-15."""
    for args in (
        ["add-tag", "-s", "w", "-l", "Work"],
        ["add", "write report", "w", "-t", "2024-03-15 09:00"],
        ["add", "lunch", "-t", "2024-03-15 11:00"],
        ["add", "review", "w", "-t", "2024-03-15 12:00"],
    ):
        result = runner.invoke(main, args)
        assert result.exit_code == 0, result.output
    return database_path


def _load(path: Path):
    return load_database(path).unwrap()


class TestInit:
    """Tests for tt init."""

    def test_creates_database(self, database_path: Path):
        assert database_path.exists()
        assert len(_load(database_path).store) == 0

    def test_refuses_existing(self, database_path: Path, runner: CliRunner):
        result = runner.invoke(main, ["init"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_commands_fail_without_database(self, temp_timetrack_dir: Path, runner: CliRunner):
        result = runner.invoke(main, ["add", "hello"])

        assert result.exit_code == 1
        assert "does not exist" in result.output


class TestAdd:
    """Tests for tt add."""

    def test_add_with_time_and_tag(self, workday: Path):
        db = _load(workday)

        checkpoint = db.store.get(Timestamp(_ts("2024-03-15 09:00")))
        assert checkpoint.message == "write report"
        assert db.tag_name(checkpoint) == "w"
        assert db.store.get(Timestamp(_ts("2024-03-15 11:00"))).tag_id == NO_TAG

    def test_add_now(self, database_path: Path, runner: CliRunner):
        result = runner.invoke(main, ["add", "started"])

        assert result.exit_code == 0
        assert "Added checkpoint" in result.output
        assert _load(database_path).store.get(Position(0)).message == "started"

    def test_add_unknown_tag(self, database_path: Path, runner: CliRunner):
        result = runner.invoke(main, ["add", "x", "nope"])

        assert result.exit_code == 1
        assert "Could not find tag: nope" in result.output
        assert len(_load(database_path).store) == 0

    def test_add_bad_time(self, database_path: Path, runner: CliRunner):
        result = runner.invoke(main, ["add", "x", "-t", "teatime"])

        assert result.exit_code == 1
        assert "Could not parse date/time" in result.output


class TestPrintAndRemove:
    """Tests for tt print and tt rm."""

    def test_print_latest(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["print"])

        assert result.exit_code == 0
        assert "review" in result.output
        assert str(_ts("2024-03-15 12:00")) in result.output

    def test_print_by_timestamp(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["print", f"@{_ts('2024-03-15 09:00')}"])

        assert result.exit_code == 0
        assert "write report" in result.output
        assert "w - Work" in result.output
        assert "2.0" in result.output

    def test_print_out_of_range(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["print", "3"])

        assert result.exit_code == 1
        assert "Could not find checkpoint: 3" in result.output

    def test_print_invalid_identifier(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["print", "latest"])

        assert result.exit_code == 1
        assert "Invalid position or timestamp" in result.output

    def test_rm_shifts_positions(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["rm", "0"])
        assert result.exit_code == 0
        assert "review" in result.output

        result = runner.invoke(main, ["print", "0"])
        assert "lunch" in result.output
        assert len(_load(workday).store) == 2

    def test_rm_missing(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["rm", "9"])

        assert result.exit_code == 1
        assert len(_load(workday).store) == 3


class TestLog:
    """Tests for tt log."""

    def test_totals_skip_untagged_and_open(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-e", "2024-03-15"])

        assert result.exit_code == 0, result.output
        assert "write report" in result.output
        assert "Total duration: 2.0" in result.output

    def test_totals_only(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-e", "2024-03-15", "-v"])

        assert "write report" not in result.output
        assert "Total duration: 2.0" in result.output

    def test_daily_totals(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-e", "2024-03-15", "-vv"])

        assert "2024-03-15 Fri" in result.output
        assert "Duration: 2.0" in result.output
        assert "write report" not in result.output

    def test_filter(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-e", "2024-03-15", "-f", "w"])

        assert result.exit_code == 0
        assert "lunch" not in result.output
        assert "Only including checkpoints tagged: w" in result.output

    def test_filter_unknown_tag(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-f", "zzz"])

        assert result.exit_code == 1

    def test_default_window_is_today(self, database_path: Path, runner: CliRunner):
        runner.invoke(main, ["add", "just now"])
        today = datetime.now().strftime("%Y-%m-%d")

        result = runner.invoke(main, ["log"])

        assert result.exit_code == 0, result.output
        assert f"{today} 00:00 and {today} 23:59" in result.output
        assert "just now" in result.output

    def test_range_and_start_conflict(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["log", "3", "-s", "2024-03-15"])

        assert result.exit_code == 1
        assert "Can't combine" in result.output


class TestEdit:
    """Tests for tt edit."""

    def test_edit_message_and_tag(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["edit", "1", "-m", "long lunch", "--tag", "w"])

        assert result.exit_code == 0, result.output
        checkpoint = _load(workday).store.get(Timestamp(_ts("2024-03-15 11:00")))
        assert checkpoint.message == "long lunch"
        assert checkpoint.tag_id != NO_TAG

    def test_clear_message_and_tag(self, workday: Path, runner: CliRunner):
        runner.invoke(main, ["edit", "0", "--no-message", "--no-tag"])

        checkpoint = _load(workday).store.get(Position(0))
        assert checkpoint.message == ""
        assert checkpoint.tag_id == NO_TAG

    def test_edit_time_keeps_day(self, workday: Path, runner: CliRunner):
        """HH:MM moves the checkpoint within its own day."""
        result = runner.invoke(main, ["edit", "2", "-t", "10:00", "-m", "short report"])

        assert result.exit_code == 0, result.output
        db = _load(workday)
        assert _ts("2024-03-15 09:00") not in db.store
        assert db.store.get(Timestamp(_ts("2024-03-15 10:00"))).message == "short report"

    def test_edit_time_past_other_checkpoints(self, workday: Path, runner: CliRunner):
        """Edits after a move apply to the moved checkpoint, not its old position."""
        runner.invoke(main, ["edit", "2", "-t", "13:00", "--no-tag"])

        db = _load(workday)
        assert db.store.get(Position(0)).message == "write report"
        assert db.store.get(Position(0)).tag_id == NO_TAG
        assert db.store.get(Position(1)).tag_id != NO_TAG

    def test_conflicting_flags(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["edit", "0", "-m", "x", "--no-message"])

        assert result.exit_code == 1

    def test_nothing_to_change(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["edit", "0"])

        assert result.exit_code == 0
        assert "Nothing to change" in result.output


class TestTags:
    """Tests for tt tags, tt add-tag and tt rm-tag."""

    def test_list(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["tags"])

        assert result.exit_code == 0
        assert "Work" in result.output

    def test_list_empty(self, database_path: Path, runner: CliRunner):
        result = runner.invoke(main, ["tags"])

        assert "No tags found" in result.output

    def test_duplicate_short_name(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["add-tag", "-s", "w", "-l", "Weekend"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert len(_load(workday).registry) == 1

    @pytest.mark.parametrize("short_name", ["", "deep work"])
    def test_add_tag_rejects_unusable_short_name(self, database_path: Path, runner: CliRunner, short_name):
        result = runner.invoke(main, ["add-tag", "-s", short_name, "-l", "Deep work"])

        assert result.exit_code == 1
        assert "Invalid tag short name" in result.output
        assert len(_load(database_path).registry) == 0

    def test_rm_tag_leaves_checkpoints_untagged(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["rm-tag", "-s", "w"])
        assert result.exit_code == 0

        db = _load(workday)
        assert len(db.store) == 3
        assert len(db.dangling_references()) == 2

        result = runner.invoke(main, ["tags"])
        assert "reference removed tags" in result.output

        result = runner.invoke(main, ["log", "-s", "2024-03-15", "-e", "2024-03-15"])
        assert "Total duration: 0.0" in result.output

    def test_rm_unknown_tag(self, workday: Path, runner: CliRunner):
        result = runner.invoke(main, ["rm-tag", "-s", "zzz"])

        assert result.exit_code == 1


class TestConfigCommands:
    """Tests for tt config."""

    def test_show(self, temp_timetrack_dir: Path, runner: CliRunner):
        result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "database_path" in result.output

    def test_set_database_path(self, temp_timetrack_dir: Path, runner: CliRunner, tmp_path: Path):
        target = tmp_path / "other.json"

        result = runner.invoke(main, ["config", "set", "database-path", str(target)])
        assert result.exit_code == 0

        runner.invoke(main, ["init"])
        assert target.exists()

    def test_set_unknown_key(self, temp_timetrack_dir: Path, runner: CliRunner):
        result = runner.invoke(main, ["config", "set", "colour", "blue"])

        assert result.exit_code == 1
        assert "Unknown config key" in result.output
