"""Tests for day slot generation."""
from datetime import date, datetime, time, timedelta

import pytest

from clinic_scheduler import models
from clinic_scheduler.exceptions import NotFoundError, ValidationError
from clinic_scheduler.services.availability import SlotReason, build_day_slots, get_day_availability

from conftest import at, future_weekday

DAY = date(2030, 1, 7)  # lunes
LONG_AGO = datetime(2000, 1, 1)


def times(slots):
    return [s.time for s in slots]


class TestBuildDaySlots:
    def test_standard_day_has_fourteen_free_slots(self):
        slots = build_day_slots(DAY, time(9), time(17), 30, [], LONG_AGO)

        free = [s.time for s in slots if s.available]
        assert free == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
            "13:00", "13:30", "14:00", "14:30", "15:00", "15:30", "16:00", "16:30",
        ]
        lunch = [s for s in slots if s.reason == SlotReason.LUNCH]
        assert times(lunch) == ["12:00", "12:30"]

    def test_starts_step_by_service_duration(self):
        slots = build_day_slots(DAY, time(9), time(17), 40, [], LONG_AGO)

        gaps = {b.start - a.start for a, b in zip(slots, slots[1:])}
        assert gaps == {timedelta(minutes=40)}

    def test_last_slot_may_end_exactly_at_work_end(self):
        slots = build_day_slots(DAY, time(9), time(17), 60, [], LONG_AGO)

        assert slots[-1].time == "16:00"
        assert slots[-1].end == at(DAY, 17)

    def test_trailing_partial_slot_is_dropped(self):
        slots = build_day_slots(DAY, time(9), time(17), 50, [], LONG_AGO)

        assert slots[-1].time == "15:40"
        assert all(s.end <= at(DAY, 17) for s in slots)
        assert len(slots) == 9

    def test_slot_straddling_lunch_is_unavailable(self):
        slots = {s.time: s for s in build_day_slots(DAY, time(9), time(17), 45, [], LONG_AGO)}

        assert slots["11:15"].available is True  # 11:15-12:00 termina justo al empezar la comida
        assert slots["12:00"].reason == SlotReason.LUNCH
        assert slots["12:45"].reason == SlotReason.LUNCH  # 12:45-13:30 cruza el fin de la comida
        assert slots["13:30"].available is True

    def test_past_slots(self):
        now = at(DAY, 10, 10)
        slots = {s.time: s for s in build_day_slots(DAY, time(9), time(17), 30, [], now)}

        assert slots["10:00"].reason == SlotReason.PAST
        assert slots["10:30"].available is True

    def test_booked_takes_precedence(self):
        booked = [(at(DAY, 12), at(DAY, 12, 30))]
        slots = {s.time: s for s in build_day_slots(DAY, time(9), time(17), 30, booked, at(DAY, 15))}

        slot = slots["12:00"]
        assert slot.reason == SlotReason.BOOKED
        assert (slot.is_booked, slot.is_past, slot.is_lunch_break) == (True, True, True)
        assert slots["12:30"].reason == SlotReason.PAST

    def test_non_positive_duration_is_rejected(self):
        with pytest.raises(ValidationError):
            build_day_slots(DAY, time(9), time(17), 0, [], LONG_AGO)


class TestGetDayAvailability:
    def test_unavailable_weekday(self, db, clinic):
        saturday = future_weekday(5)

        result = get_day_availability(db, clinic["doctor"], clinic["service"], saturday)

        assert result.slots == []
        assert result.fully_booked is True
        assert result.reason == SlotReason.DOCTOR_UNAVAILABLE
        assert "SATURDAY" in result.message

    def test_booked_slot_leaves_neighbours_free(self, db, clinic, book):
        monday = future_weekday(0)
        book(clinic["doctor"], clinic["patients"][0], clinic["service"], at(monday, 10))

        result = get_day_availability(db, clinic["doctor"], clinic["service"], monday)
        slots = {s.time: s for s in result.slots}

        assert slots["10:00"].available is False
        assert slots["10:00"].reason == SlotReason.BOOKED
        assert slots["09:30"].available is True
        assert slots["10:30"].available is True
        assert result.fully_booked is False

    def test_longer_service_blocks_overlapping_slots(self, db, clinic, book):
        monday = future_weekday(0)
        book(clinic["doctor"], clinic["patients"][0], clinic["long_service"], at(monday, 10), duration=60)

        result = get_day_availability(db, clinic["doctor"], clinic["service"], monday)
        booked = [s.time for s in result.slots if s.reason == SlotReason.BOOKED]

        assert booked == ["10:00", "10:30"]

    def test_cancelled_and_other_doctor_appointments_ignored(self, db, clinic, book):
        monday = future_weekday(0)
        book(clinic["doctor"], clinic["patients"][0], clinic["service"], at(monday, 10),
             status=models.AppointmentStatus.CANCELLED)
        book(clinic["other_doctor"], clinic["patients"][1], clinic["service"], at(monday, 11))

        result = get_day_availability(db, clinic["doctor"], clinic["service"], monday)

        assert sum(1 for s in result.slots if s.available) == 14

    def test_no_available_slot_overlaps_a_booking(self, db, clinic, book):
        monday = future_weekday(0)
        for patient_id, (hh, mm) in zip(clinic["patients"], [(9, 15), (13, 0), (16, 30)]):
            book(clinic["doctor"], patient_id, clinic["service"], at(monday, hh, mm))

        result = get_day_availability(db, clinic["doctor"], clinic["service"], monday)
        free = [s for s in result.slots if s.available]

        for s in free:
            for hh, mm in [(9, 15), (13, 0), (16, 30)]:
                start = at(monday, hh, mm)
                assert not (s.start < start + timedelta(minutes=30) and start < s.end)

    def test_fully_booked_in_the_past(self, db, clinic):
        monday = future_weekday(0)
        evening = at(monday, 18)

        result = get_day_availability(db, clinic["doctor"], clinic["service"], monday, now=evening)

        assert result.slots
        assert result.fully_booked is True

    def test_repeated_queries_are_identical(self, db, clinic, book):
        monday = future_weekday(0)
        book(clinic["doctor"], clinic["patients"][0], clinic["service"], at(monday, 14))
        now = at(monday, 8)

        first = get_day_availability(db, clinic["doctor"], clinic["service"], monday, now=now)
        second = get_day_availability(db, clinic["doctor"], clinic["service"], monday, now=now)

        assert first.slots == second.slots
        assert first.fully_booked == second.fully_booked

    def test_unknown_doctor_or_service(self, db, clinic):
        monday = future_weekday(0)
        with pytest.raises(NotFoundError):
            get_day_availability(db, 9999, clinic["service"], monday)
        with pytest.raises(NotFoundError):
            get_day_availability(db, clinic["doctor"], 9999, monday)

    def test_default_hours_when_doctor_has_none(self, db, clinic):
        doctor = models.Doctor(name="Sin horario")
        doctor.available_days = [models.Weekday.MONDAY]
        db.add(doctor)
        db.commit()

        result = get_day_availability(db, doctor.id, clinic["service"], future_weekday(0))

        assert result.slots[0].time == "09:00"
        assert result.slots[-1].time == "16:30"

    def test_inverted_schedule_is_rejected(self, db, clinic):
        doctor = models.Doctor(name="Horario al revés", available_from=time(17), available_to=time(9))
        doctor.available_days = [models.Weekday.MONDAY]
        db.add(doctor)
        db.commit()

        with pytest.raises(ValidationError):
            get_day_availability(db, doctor.id, clinic["service"], future_weekday(0))

    def test_stored_start_after_default_end_is_rejected(self, db, clinic):
        doctor = models.Doctor(name="Sólo entrada", available_from=time(18))
        doctor.available_days = [models.Weekday.MONDAY]
        db.add(doctor)
        db.commit()

        with pytest.raises(ValidationError):
            get_day_availability(db, doctor.id, clinic["service"], future_weekday(0))
