"""Tests for conflict detection across students.

Every session occupies a fixed 60 minutes for overlap purposes.
"""

from datetime import date

from app.scheduling.conflicts import ConflictDetector, gap_between, intervals_overlap
from app.scheduling.models import ConflictKind, ConflictSeverity, SessionStatus

DAY = date(2024, 3, 4)


def _check(detector: ConflictDetector, new_time: str, new_date: date = DAY):
    return detector.check("x", "x1", new_date, new_time)


class TestIntervalHelpers:
    def test_overlap_cases(self):
        assert intervals_overlap(960, 1020, 990, 1050)
        assert intervals_overlap(960, 1020, 930, 990)
        assert intervals_overlap(900, 1100, 960, 1020)
        assert not intervals_overlap(960, 1020, 1020, 1080)
        assert not intervals_overlap(960, 1020, 900, 960)

    def test_gap(self):
        assert gap_between(960, 1020, 1030, 1090) == 10
        assert gap_between(960, 1020, 895, 955) == 5


class TestConflictClassification:
    """Tests for error / warning / none classification."""

    def test_empty_day_is_clear(self, make_student):
        detector = ConflictDetector([make_student("x", [("x1", DAY, "16:00")])])
        info = _check(detector, "17:00")
        assert info.severity == ConflictSeverity.NONE
        assert info.details == []

    def test_exact_start_is_error(self, make_student):
        y = make_student("y", [("y1", DAY, "16:00")], name="Yara")
        detector = ConflictDetector([make_student("x", [("x1", DAY, "14:00")]), y])
        info = _check(detector, "16:00")
        assert info.severity == ConflictSeverity.ERROR
        assert info.session.id == "y1"
        assert info.student.id == "y"
        assert info.details[0].kind == ConflictKind.EXACT
        assert info.details[0].message == "Conflicts with Yara's session at the same time"

    def test_partial_overlap_is_error(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", DAY, "16:30")])])
        info = _check(detector, "16:00")
        assert info.severity == ConflictSeverity.ERROR
        assert info.details[0].kind == ConflictKind.PARTIAL

    def test_back_to_back_is_clear(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", DAY, "17:00"), ("y2", DAY, "15:00")])])
        assert _check(detector, "16:00").severity == ConflictSeverity.NONE

    def test_small_gap_is_warning(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", DAY, "17:10")], name="Yara")])
        info = _check(detector, "16:00")
        assert info.severity == ConflictSeverity.WARNING
        assert info.gap_minutes == 10
        assert info.details[0].kind == ConflictKind.CLOSE
        assert info.details[0].message == "Only 10 min gap to Yara's session"

    def test_gap_equal_to_threshold_is_clear(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", DAY, "17:15")])])
        assert _check(detector, "16:00").severity == ConflictSeverity.NONE

    def test_warning_threshold_is_configurable(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", DAY, "17:15")])], warning_gap_minutes=20)
        assert _check(detector, "16:00").severity == ConflictSeverity.WARNING

    def test_other_dates_ignored(self, make_student):
        detector = ConflictDetector([make_student("y", [("y1", date(2024, 3, 5), "16:00")])])
        assert _check(detector, "16:00").severity == ConflictSeverity.NONE

    def test_own_session_is_skipped(self, make_student):
        detector = ConflictDetector([make_student("x", [("x1", DAY, "16:00")])])
        assert _check(detector, "16:00").severity == ConflictSeverity.NONE

    def test_inactive_sessions_free_their_slot(self, make_student):
        y = make_student(
            "y",
            [("y1", DAY, "16:00"), ("y2", DAY, "16:30")],
            status={"y1": SessionStatus.CANCELLED, "y2": SessionStatus.VACATION},
        )
        assert _check(ConflictDetector([y]), "16:00").severity == ConflictSeverity.NONE

    def test_completed_sessions_still_occupy_their_slot(self, make_student):
        y = make_student("y", [("y1", DAY, "16:00")], status={"y1": SessionStatus.COMPLETED})
        assert _check(ConflictDetector([y]), "16:00").severity == ConflictSeverity.ERROR

    def test_student_default_time_is_used_for_others(self, make_student):
        y = make_student("y", [("y1", DAY, None)], default_session_time="16:30")
        assert _check(ConflictDetector([y]), "16:00").severity == ConflictSeverity.ERROR


class TestConflictPrecedence:
    """Tests for how several collisions combine."""

    def test_error_beats_earlier_warning(self, make_student):
        """An exact overlap wins over a closer-listed 10 minute neighbour."""
        near = make_student("near", [("n1", DAY, "17:10")])
        clash = make_student("clash", [("c1", DAY, "16:00")])
        info = _check(ConflictDetector([near, clash]), "16:00")
        assert info.severity == ConflictSeverity.ERROR
        assert info.session.id == "c1"
        assert info.gap_minutes is None
        assert {detail.session.id for detail in info.details} == {"n1", "c1"}

    def test_first_overlap_is_reference(self, make_student):
        y = make_student("y", [("y1", DAY, "16:00"), ("y2", DAY, "16:30")])
        info = _check(ConflictDetector([y]), "16:00")
        assert info.session.id == "y1"
        assert [detail.kind for detail in info.details] == [ConflictKind.EXACT, ConflictKind.PARTIAL]

    def test_warning_keeps_closest_neighbour(self, make_student):
        y = make_student("y", [("far", DAY, "17:10"), ("close", DAY, "14:55")])
        info = _check(ConflictDetector([y]), "16:00")
        assert info.severity == ConflictSeverity.WARNING
        assert info.session.id == "close"
        assert info.gap_minutes == 5


class TestSameStudentAndRelocation:
    def test_same_student_overlap_is_error_by_default(self, make_student):
        x = make_student("x", [("x1", DAY, "14:00"), ("x2", DAY, "16:00")])
        info = _check(ConflictDetector([x]), "16:00")
        assert info.severity == ConflictSeverity.ERROR
        assert info.session.id == "x2"

    def test_same_student_can_be_excluded(self, make_student):
        x = make_student("x", [("x1", DAY, "14:00"), ("x2", DAY, "16:00")])
        info = _check(ConflictDetector([x], include_same_student=False), "16:00")
        assert info.severity == ConflictSeverity.NONE

    def test_relocated_session_vacates_its_slot(self, make_student):
        y = make_student("y", [("y1", DAY, "16:00")])
        detector = ConflictDetector([y], relocated={"y1": (date(2024, 3, 5), "16:00")})
        assert _check(detector, "16:00").severity == ConflictSeverity.NONE
        assert _check(detector, "16:00", date(2024, 3, 5)).severity == ConflictSeverity.ERROR

    def test_sessions_on(self, make_student):
        y = make_student("y", [("y1", DAY, "16:30"), ("y2", date(2024, 3, 5), "10:00")])
        assert [(student.id, session.id, start) for student, session, start in ConflictDetector([y]).sessions_on(DAY)] == [
            ("y", "y1", 990)
        ]
