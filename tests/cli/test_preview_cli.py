"""Tests for the preview and slots CLI commands."""

import json

import pytest
import typer
from typer.testing import CliRunner

from app.scheduling.models import Weekday
from cli.cli import app, build_rule, parse_day_change, parse_offset, parse_period

runner = CliRunner()


@pytest.fixture
def snapshot(tmp_path):
    path = tmp_path / "students.json"
    path.write_text(
        json.dumps(
            {
                "students": [
                    {
                        "id": "x",
                        "name": "Xavi",
                        "sessions": [
                            {"id": "a", "date": "2024-03-04", "time": "16:00"},
                            {"id": "b", "date": "2024-03-06", "time": "16:00"},
                        ],
                    },
                    {
                        "id": "y",
                        "name": "Yara",
                        "sessions": [{"id": "y1", "date": "2024-03-06", "time": "17:00"}],
                    },
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


class TestPreviewCommand:
    def test_prints_buckets(self, snapshot):
        result = runner.invoke(
            app,
            ["preview", "--snapshot", str(snapshot), "--student-id", "x", "--period", "2024-03-01:2024-03-31", "--offset=+1:00"],
        )
        assert result.exit_code == 0, result.output
        assert "Safe" in result.output
        assert "Conflicts" in result.output
        assert "1 safe, 0 warning(s), 1 conflict(s)" in result.output

    def test_month_option(self, snapshot):
        result = runner.invoke(
            app,
            ["preview", "-s", str(snapshot), "--student-id", "x", "--month", "2024-03", "--at", "10:00"],
        )
        assert result.exit_code == 0, result.output
        assert "2 safe" in result.output

    def test_no_matching_sessions(self, snapshot):
        result = runner.invoke(
            app,
            ["preview", "-s", str(snapshot), "--student-id", "x", "--period", "2024-05-01:2024-05-31", "--at", "10:00"],
        )
        assert result.exit_code == 0
        assert "No sessions match" in result.output

    def test_configuration_error_exits_nonzero(self, snapshot):
        result = runner.invoke(
            app,
            ["preview", "-s", str(snapshot), "--student-id", "x", "--period", "2024-03-01:2024-03-31", "--offset=+0:00"],
        )
        assert result.exit_code == 1
        assert "Offset must be at least one minute" in result.output

    def test_missing_period_exits_nonzero(self, snapshot):
        result = runner.invoke(app, ["preview", "-s", str(snapshot), "--student-id", "x", "--at", "10:00"])
        assert result.exit_code == 1
        assert "Select at least one period" in result.output

    def test_two_rules_is_usage_error(self, snapshot):
        result = runner.invoke(
            app,
            ["preview", "-s", str(snapshot), "--student-id", "x", "--month", "2024-03", "--at", "10:00", "--offset=+1:00"],
        )
        assert result.exit_code == 2


def test_slots_command(snapshot):
    result = runner.invoke(app, ["slots", "-s", str(snapshot), "--date", "2024-03-04"])
    assert result.exit_code == 0, result.output
    assert "8:00 AM" in result.output
    assert "Before: 2:30 PM" in result.output


class TestParsers:
    """Tests for option parsing helpers."""

    def test_parse_offset(self):
        rule = parse_offset("-1:30")
        assert rule.direction == -1
        assert rule.total_minutes == 90
        assert parse_offset("0:45").signed_minutes == 45

    def test_parse_offset_invalid(self):
        with pytest.raises(typer.BadParameter):
            parse_offset("90")

    def test_parse_day_change(self):
        rule = parse_day_change("mon@16:00->friday@13:00")
        assert rule.from_weekday == Weekday.MONDAY
        assert rule.to_weekday == Weekday.FRIDAY
        assert rule.to_time == "13:00"

    def test_parse_day_change_unknown_day(self):
        with pytest.raises(typer.BadParameter):
            parse_day_change("funday@16:00->fri@13:00")

    def test_parse_period(self):
        period = parse_period("2024-03-01:2024-03-07")
        assert period.label == "2024-03-01 to 2024-03-07"

    def test_parse_period_inverted(self):
        with pytest.raises(typer.BadParameter):
            parse_period("2024-03-07:2024-03-01")

    def test_build_rule_requires_exactly_one(self):
        with pytest.raises(typer.BadParameter):
            build_rule(None, None, None)
        assert build_rule(None, "9:00", None).time == "09:00"
