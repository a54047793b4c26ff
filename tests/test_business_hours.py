import pytest

from tattoo_shop.domain.scheduling.business_hours import BusinessHoursStore, DayHours
from tattoo_shop.errors import ValidationError


@pytest.fixture
def store(db):
    return BusinessHoursStore(db)


def test_get_hours_for_day(store, weekly_hours):
    hours = store.get_hours_for_day(1)

    assert hours == DayHours(day_of_week=1, open_time="09:00", close_time="17:00", is_open=True)


@pytest.mark.parametrize("weekday", [-1, 7, 42, "1", None, 1.0, True])
def test_invalid_weekday_returns_none(store, weekly_hours, weekday):
    assert store.get_hours_for_day(weekday) is None


def test_unknown_day_returns_none(store):
    assert store.get_hours_for_day(3) is None


def test_replace_all_swaps_whole_table(store, weekly_hours):
    saved = store.replace_all(
        [
            DayHours(day_of_week=0, open_time="00:00", close_time="00:00", is_open=False),
            DayHours(day_of_week=5, open_time="12:00", close_time="20:00", is_open=True),
        ]
    )

    assert [day.day_of_week for day in saved] == [0, 5]
    assert store.get_hours_for_day(0).is_open is False
    assert store.get_hours_for_day(5).close_time == "20:00"
    assert store.get_hours_for_day(1) is None


def test_replace_all_with_empty_list_clears_every_day(store, weekly_hours):
    assert store.replace_all([]) == []

    assert all(store.get_hours_for_day(day) is None for day in range(7))


@pytest.mark.parametrize(
    "hours",
    [
        [DayHours(day_of_week=7, open_time="09:00", close_time="17:00", is_open=True)],
        [DayHours(day_of_week=1, open_time="9am", close_time="17:00", is_open=True)],
        [DayHours(day_of_week=1, open_time="09:00", close_time="24:00", is_open=True)],
        [DayHours(day_of_week=1, open_time="17:00", close_time="09:00", is_open=True)],
        [
            DayHours(day_of_week=2, open_time="09:00", close_time="17:00", is_open=True),
            DayHours(day_of_week=2, open_time="10:00", close_time="18:00", is_open=True),
        ],
    ],
)
def test_replace_all_rejects_invalid_week_and_keeps_existing(store, weekly_hours, hours):
    with pytest.raises(ValidationError):
        store.replace_all(hours)

    assert len(store.get_all()) == 7
