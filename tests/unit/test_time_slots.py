"""Tests for slot generation and the default doctor calendar."""
from datetime import date

from clinica_dental.time_slots import generate_slots, seed_calendar, to_label, to_minutes


class TestGenerateSlots:

    def test_half_hour_steps_closing_exclusive(self):
        assert generate_slots("08:00", "10:00") == ["08:00", "08:30", "09:00", "09:30"]

    def test_single_slot(self):
        assert generate_slots("08:00", "08:30") == ["08:00"]

    def test_opening_after_closing_is_empty(self):
        assert generate_slots("17:00", "08:00") == []

    def test_equal_bounds_is_empty(self):
        assert generate_slots("09:00", "09:00") == []

    def test_unaligned_closing_keeps_last_start_before_it(self):
        assert generate_slots("08:00", "09:15") == ["08:00", "08:30", "09:00"]

    def test_seconds_are_ignored(self):
        assert to_minutes("09:30:00") == 570

    def test_label_is_zero_padded(self):
        assert to_label(8 * 60 + 5) == "08:05"


class TestSeedCalendar:

    def test_only_weekdays(self):
        # 2025-05-12 is a Monday
        calendar = seed_calendar(["08:00"], start=date(2025, 5, 12), days=7)

        assert [entry["fecha"] for entry in calendar] == [
            "2025-05-12", "2025-05-13", "2025-05-14", "2025-05-15", "2025-05-16",
        ]

    def test_every_entry_offers_all_slots(self):
        slots = ["08:00", "08:30"]
        calendar = seed_calendar(slots, start=date(2025, 5, 12), days=30)

        assert all(entry["horariosDisponibles"] == slots for entry in calendar)
        assert len(calendar) == 22

    def test_zero_days_is_empty(self):
        assert seed_calendar(["08:00"], start=date(2025, 5, 12), days=0) == []
