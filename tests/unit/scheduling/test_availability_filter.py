"""Unit tests for the available-slot view and grouping by local date."""

from datetime import date, timedelta

from hypothesis import given, settings as hypothesis_settings, strategies as st
import pytz
from scheduling_factories import at, make_booking, make_window

from tutor_scheduling.scheduling.availability_filter import (
    available_slots,
    group_by_date,
    is_available,
)
from tutor_scheduling.scheduling.generator import generate, generate_many
from tutor_scheduling.scheduling.reconciler import reconcile


class TestIsAvailable:
    def test_future_free_slot_is_available(self):
        slot = generate(make_window(at(9), at(10)))[0]

        assert is_available(slot, at(8))

    def test_slot_starting_now_is_not_available(self):
        slot = generate(make_window(at(9), at(10)))[0]

        assert not is_available(slot, at(9))

    def test_past_slot_is_not_available(self):
        slot = generate(make_window(at(9), at(10)))[0]

        assert not is_available(slot, at(9, 30))

    def test_booked_slot_is_not_available(self):
        slot = reconcile(generate(make_window(at(9), at(10))), [make_booking(ordinal=0)])[0]

        assert not is_available(slot, at(8))

    def test_naive_now_is_treated_as_utc(self):
        slot = generate(make_window(at(9), at(10)))[0]

        assert is_available(slot, at(8).replace(tzinfo=None))


class TestAvailableSlots:
    def test_filters_past_and_booked(self):
        slots = reconcile(generate(make_window(at(9), at(13))), [make_booking(ordinal=2)])

        result = available_slots(slots, at(9, 30))

        assert [s.ordinal for s in result] == [1, 3]

    @hypothesis_settings(max_examples=100, deadline=None)
    @given(
        first=st.integers(min_value=0, max_value=24 * 60),
        advance=st.integers(min_value=0, max_value=24 * 60),
    )
    def test_advancing_now_never_adds_slots(self, first, advance):
        slots = generate_many(
            [
                make_window(at(6), at(12), window_id="A"),
                make_window(at(10, 30), at(20), window_id="B"),
            ]
        )
        earlier = at(0) + timedelta(minutes=first)
        later = earlier + timedelta(minutes=advance)

        assert len(available_slots(slots, later)) <= len(available_slots(slots, earlier))


class TestGroupByDate:
    def test_groups_by_local_date_not_utc_date(self):
        # 04:30 UTC is 23:30 of the previous day in Bogota (UTC-5)
        slots = generate(make_window(at(4, 30), at(6, 30)))

        grouped = group_by_date(slots, pytz.timezone("America/Bogota"))

        assert list(grouped) == [date(2030, 3, 3), date(2030, 3, 4)]
        assert [s.ordinal for s in grouped[date(2030, 3, 3)]] == [0]
        assert [s.ordinal for s in grouped[date(2030, 3, 4)]] == [1]

    def test_uses_given_timezone(self):
        slots = generate(make_window(at(4, 30), at(5, 30)))

        grouped = group_by_date(slots, pytz.UTC)

        assert list(grouped) == [date(2030, 3, 4)]

    def test_defaults_to_display_timezone(self):
        slots = generate(make_window(at(4, 30), at(5, 30)))

        assert list(group_by_date(slots)) == [date(2030, 3, 3)]

    def test_buckets_and_slots_are_ascending(self):
        later_day = make_window(at(15, day=date(2030, 3, 6)), at(17, day=date(2030, 3, 6)), window_id="B")
        earlier_day = make_window(at(15), at(17), window_id="A")
        slots = list(reversed(generate_many([later_day, earlier_day])))

        grouped = group_by_date(slots, pytz.UTC)

        assert list(grouped) == [date(2030, 3, 4), date(2030, 3, 6)]
        for day_slots in grouped.values():
            assert [s.start for s in day_slots] == sorted(s.start for s in day_slots)

    def test_empty_input(self):
        assert group_by_date([], pytz.UTC) == {}
