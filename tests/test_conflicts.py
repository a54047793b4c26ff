from datetime import datetime, timedelta, timezone

import pytest

from tattoo_shop.domain.scheduling.conflicts import ConflictChecker
from tattoo_shop.models import Appointment

DAY = datetime(2024, 1, 20)


def at(hour, minute=0):
    return DAY.replace(hour=hour, minute=minute)


@pytest.fixture
def add_appointment(db, artist, other_artist):
    def _add(start, duration, artist_id="artist-a", status="confirmed"):
        appointment = Appointment(
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            duration_minutes=duration,
            status=status,
            booking_type="tattoo_session",
            artist_id=artist_id,
            contact_email="walkin@example.com",
        )
        db.add(appointment)
        db.commit()
        return appointment

    return _add


@pytest.fixture
def checker(db):
    return ConflictChecker(db)


@pytest.mark.parametrize(
    "start,duration,expected_free",
    [
        (at(13), 60, True),  # ends exactly when the existing one starts
        (at(15), 60, True),  # starts exactly when the existing one ends
        (at(12), 60, True),  # clear gap before
        (at(13, 30), 60, False),  # overlaps the first half
        (at(14, 30), 60, False),  # overlaps the second half
        (at(14), 60, False),  # identical interval
        (at(14, 15), 30, False),  # contained
        (at(13), 180, False),  # contains the existing one
        (at(14, 59), 15, False),  # one minute of overlap
    ],
)
def test_half_open_overlap(add_appointment, checker, start, duration, expected_free):
    add_appointment(at(14), 60)

    assert checker.is_slot_free(start, duration, "artist-a") is expected_free
    assert (not checker.find_conflicts(start, duration, "artist-a")) is expected_free


@pytest.mark.parametrize("status", ["cancelled", "no_show"])
def test_cancelled_and_no_show_do_not_block(add_appointment, checker, status):
    add_appointment(at(14), 60, status=status)

    assert checker.is_slot_free(at(14), 60, "artist-a")


@pytest.mark.parametrize("status", ["pending", "scheduled", "confirmed", "completed"])
def test_other_statuses_block(add_appointment, checker, status):
    add_appointment(at(14), 60, status=status)

    assert not checker.is_slot_free(at(14), 60, "artist-a")


def test_other_artists_do_not_conflict(add_appointment, checker):
    add_appointment(at(14), 60, artist_id="artist-b")

    assert checker.is_slot_free(at(14), 60, "artist-a")


def test_without_artist_any_appointment_conflicts(add_appointment, checker):
    add_appointment(at(14), 60, artist_id="artist-b")

    assert not checker.is_slot_free(at(14), 60)


def test_exclude_own_appointment(add_appointment, checker):
    existing = add_appointment(at(14), 60)

    assert checker.is_slot_free(at(14, 30), 60, "artist-a", exclude_appointment_id=existing.id)
    assert not checker.is_slot_free(at(14, 30), 60, "artist-a")


def test_aware_datetimes_are_normalized(add_appointment, checker):
    add_appointment(at(14), 60)
    # 06:30 in UTC-8 is 14:30 UTC
    pacific = timezone(timedelta(hours=-8))
    start = datetime(2024, 1, 20, 6, 30, tzinfo=pacific)

    assert not checker.is_slot_free(start, 30, "artist-a")
    assert checker.is_slot_free(start + timedelta(hours=1), 30, "artist-a")


def test_find_conflicts_returns_rows_in_start_order(add_appointment, checker):
    late = add_appointment(at(15), 60)
    early = add_appointment(at(13), 60)

    conflicts = checker.find_conflicts(at(13), 180, "artist-a")

    assert [c.id for c in conflicts] == [early.id, late.id]


def test_snapshot_matches_query_verdicts(add_appointment, checker):
    add_appointment(at(14), 60)
    add_appointment(at(10), 30, artist_id="artist-b")
    add_appointment(at(11), 60, status="cancelled")
    snapshot = checker.snapshot(["artist-a", "artist-b"], at(9), at(17))

    for artist_id in ("artist-a", "artist-b"):
        candidate = at(9)
        while candidate < at(17):
            assert snapshot.is_slot_free(candidate, 60, artist_id) == checker.is_slot_free(
                candidate, 60, artist_id
            )
            candidate += timedelta(minutes=15)


def test_lock_artist_returns_none_for_unknown_artist(checker, artist):
    assert checker.lock_artist("artist-a").id == "artist-a"
    assert checker.lock_artist("nobody") is None
