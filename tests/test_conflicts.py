"""Tests for interval overlap detection."""
from datetime import datetime

from clinic_scheduler import models
from clinic_scheduler.services.conflicts import find_overlapping, overlaps


def t(hh, mm=0):
    return datetime(2030, 1, 7, hh, mm)


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps(t(10), t(10, 30), t(10, 15), t(10, 45)) is True
        assert overlaps(t(10, 15), t(10, 45), t(10), t(10, 30)) is True

    def test_containment(self):
        assert overlaps(t(9), t(12), t(10), t(10, 30)) is True
        assert overlaps(t(10), t(10, 30), t(9), t(12)) is True

    def test_identical_intervals(self):
        assert overlaps(t(10), t(10, 30), t(10), t(10, 30)) is True

    def test_adjacent_intervals_do_not_overlap(self):
        """Half-open intervals: touching at an endpoint is not a conflict."""
        assert overlaps(t(10), t(10, 30), t(10, 30), t(11)) is False
        assert overlaps(t(10, 30), t(11), t(10), t(10, 30)) is False

    def test_disjoint(self):
        assert overlaps(t(9), t(9, 30), t(14), t(15)) is False


class TestFindOverlapping:
    def test_filters_by_duration(self):
        long_one = models.Appointment(id=1, duration=90)
        long_one.move_to(t(9))
        short_one = models.Appointment(id=2, duration=15)
        short_one.move_to(t(9, 30))

        clashes = find_overlapping(t(10), t(10, 30), [long_one, short_one])

        assert [a.id for a in clashes] == [1]
