from datetime import datetime, timedelta, timezone

import pytest

from app.services.schedule_expander import (
    ScheduleValidationError,
    expand_bulk_schedule,
    next_occurrence,
    sunday_weekday,
)

UTC = timezone.utc

# 2024-01-01 is a Monday
MONDAY_0800 = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)
TUESDAY_1000 = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)

BASE = {
    "drive_file_id": "drive-abc",
    "title": "My clip",
    "description": "desc",
    "thumbnail": None,
    "first_comment": "first!",
}


def test_next_monday_when_already_past_this_week():
    got = next_occurrence(1, "09:00", TUESDAY_1000)
    assert got == datetime(2024, 1, 8, 9, 0, tzinfo=UTC)
    assert (got.date() - TUESDAY_1000.date()).days == 6


def test_same_day_when_time_still_ahead():
    got = next_occurrence(1, "09:00", MONDAY_0800)
    assert got == datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def test_candidate_equal_to_now_moves_one_week():
    now = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
    got = next_occurrence(1, "09:00", now)
    assert got == datetime(2024, 1, 1, 9, 0, tzinfo=UTC) + timedelta(days=7)


def test_sunday_is_day_zero():
    saturday_noon = datetime(2024, 1, 6, 12, 0, tzinfo=UTC)
    assert sunday_weekday(saturday_noon) == 6
    assert next_occurrence(0, "10:00", saturday_noon) == datetime(2024, 1, 7, 10, 0, tzinfo=UTC)


def test_seconds_are_zeroed():
    now = datetime(2024, 1, 1, 8, 0, 42, 123456, tzinfo=UTC)
    got = next_occurrence(1, "08:30", now)
    assert got.second == 0 and got.microsecond == 0


def test_every_slot_is_future_within_a_week_on_the_right_weekday():
    nows = [MONDAY_0800, TUESDAY_1000, datetime(2024, 3, 9, 23, 59, 30, tzinfo=UTC)]
    for now in nows:
        for day in range(7):
            for t in ("00:00", "09:00", "23:59"):
                got = next_occurrence(day, t, now)
                assert got > now
                assert got - now <= timedelta(days=7)
                assert sunday_weekday(got) == day


def test_expansion_is_cross_product_with_shared_metadata():
    out = expand_bulk_schedule([0, 3, 5], ["08:00", "20:30"], BASE, now=TUESDAY_1000)

    assert len(out) == 6
    for req in out:
        assert req["scheduled_time"] > TUESDAY_1000
        assert req["drive_file_id"] == "drive-abc"
        assert req["title"] == "My clip"
        assert req["first_comment"] == "first!"


def test_expansion_keeps_duplicates():
    out = expand_bulk_schedule([1, 1], ["09:00"], BASE, now=TUESDAY_1000)
    assert len(out) == 2
    assert out[0]["scheduled_time"] == out[1]["scheduled_time"]


def test_expansion_does_not_mutate_base():
    base = dict(BASE)
    expand_bulk_schedule([1], ["09:00"], base, now=TUESDAY_1000)
    assert "scheduled_time" not in base


def test_expansion_in_local_timezone_is_stored_as_utc():
    # Tuesday 10:00 in New York (EST, UTC-5)
    now = datetime(2024, 1, 2, 15, 0, tzinfo=UTC)
    out = expand_bulk_schedule([1], ["09:00"], BASE, now=now, tz="America/New_York")
    assert out[0]["scheduled_time"] == datetime(2024, 1, 8, 14, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    "days, times",
    [
        ([], ["09:00"]),
        ([1], []),
        ([7], ["09:00"]),
        ([-1], ["09:00"]),
        ([1], ["25:00"]),
        ([1], ["9am"]),
        ([1], ["12:60"]),
    ],
)
def test_invalid_selection_is_rejected(days, times):
    with pytest.raises(ScheduleValidationError):
        expand_bulk_schedule(days, times, BASE, now=TUESDAY_1000)


def test_unknown_timezone_is_rejected():
    with pytest.raises(ScheduleValidationError):
        expand_bulk_schedule([1], ["09:00"], BASE, now=TUESDAY_1000, tz="Mars/Olympus")


def test_missing_drive_file_is_rejected():
    with pytest.raises(ScheduleValidationError):
        expand_bulk_schedule([1], ["09:00"], {"title": "x"}, now=TUESDAY_1000)
