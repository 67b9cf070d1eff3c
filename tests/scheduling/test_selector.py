"""Tests for session selection."""

from datetime import date

from app.scheduling.models import DayChangeRule, OffsetRule, SessionStatus, Weekday
from app.scheduling.periods import PeriodResolver, custom_period
from app.scheduling.selector import select_sessions, select_vacation_sessions

MARCH = PeriodResolver([custom_period(date(2024, 3, 1), date(2024, 3, 31))])
PLUS_HOUR = OffsetRule(hours=1)


class TestSelectSessions:
    """Tests for picking the sessions a rule applies to."""

    def test_only_scheduled_sessions(self, make_student):
        student = make_student(
            "x",
            [
                ("a", date(2024, 3, 4), "16:00"),
                ("b", date(2024, 3, 5), "16:00"),
                ("c", date(2024, 3, 6), "16:00"),
                ("d", date(2024, 3, 7), "16:00"),
            ],
            status={
                "b": SessionStatus.COMPLETED,
                "c": SessionStatus.CANCELLED,
                "d": SessionStatus.VACATION,
            },
        )
        assert [s.id for s in select_sessions(student, MARCH, PLUS_HOUR)] == ["a"]

    def test_outside_periods_skipped(self, make_student):
        student = make_student("x", [("a", date(2024, 2, 28), "16:00"), ("b", date(2024, 3, 1), "16:00")])
        assert [s.id for s in select_sessions(student, MARCH, PLUS_HOUR)] == ["b"]

    def test_not_before_skips_past_sessions(self, make_student):
        student = make_student("x", [("a", date(2024, 3, 4), "16:00"), ("b", date(2024, 3, 11), "16:00")])
        selected = select_sessions(student, MARCH, PLUS_HOUR, not_before=date(2024, 3, 5))
        assert [s.id for s in selected] == ["b"]

    def test_ordered_by_date_then_time(self, make_student):
        student = make_student(
            "x",
            [
                ("late", date(2024, 3, 5), "18:00"),
                ("early", date(2024, 3, 5), "09:00"),
                ("first", date(2024, 3, 4), "20:00"),
            ],
        )
        assert [s.id for s in select_sessions(student, MARCH, PLUS_HOUR)] == ["first", "early", "late"]

    def test_no_eligible_sessions_is_empty(self, make_student):
        assert select_sessions(make_student("x"), MARCH, PLUS_HOUR) == []


class TestDayChangeSelection:
    """Tests for the weekday and time filter of day-change rules."""

    RULE = DayChangeRule(from_weekday=Weekday.MONDAY, from_time="16:00", to_weekday=Weekday.FRIDAY, to_time="13:00")

    def test_weekday_and_time_within_tolerance(self, make_student):
        student = make_student(
            "x",
            [
                ("exact", date(2024, 3, 4), "16:00"),
                ("drift", date(2024, 3, 11), "16:20"),
                ("too_far", date(2024, 3, 18), "17:00"),
                ("tuesday", date(2024, 3, 5), "16:00"),
            ],
        )
        assert [s.id for s in select_sessions(student, MARCH, self.RULE)] == ["exact", "drift"]

    def test_tolerance_is_configurable(self, make_student):
        student = make_student("x", [("a", date(2024, 3, 4), "16:20")])
        assert select_sessions(student, MARCH, self.RULE, tolerance_minutes=10) == []

    def test_student_default_time_matches(self, make_student):
        student = make_student("x", [("a", date(2024, 3, 4), None)], default_session_time="16:00")
        assert [s.id for s in select_sessions(student, MARCH, self.RULE)] == ["a"]


class TestVacationSelection:
    def test_all_students_in_period_ordered_by_date(self, make_student):
        students = [
            make_student("x", [("x1", date(2024, 3, 8), "16:00"), ("x2", date(2024, 4, 2), "16:00")]),
            make_student(
                "y",
                [("y1", date(2024, 3, 4), "10:00"), ("y2", date(2024, 3, 6), "10:00")],
                status={"y2": SessionStatus.CANCELLED},
            ),
        ]
        selected = select_vacation_sessions(students, MARCH)
        assert [(student.id, session.id) for student, session in selected] == [("y", "y1"), ("x", "x1")]
