from datetime import datetime, timedelta, timezone

from app.utils.time import coerce_datetime, from_timestamp, to_timestamp, utc_now


def test_coerce_datetime_parses_z_suffix():
    dt = coerce_datetime("2026-01-01T00:00:00Z")
    assert dt is not None
    assert dt.tzinfo is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.isoformat().endswith("+00:00")


def test_coerce_datetime_parses_offset():
    dt = coerce_datetime("2026-01-01T02:00:00+02:00")
    assert dt is not None
    assert dt.tzinfo is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.hour == 0


def test_coerce_datetime_parses_naive_as_utc():
    dt = coerce_datetime("2026-01-01T00:00:00")
    assert dt is not None
    assert dt.tzinfo is not None
    assert dt.utcoffset() == timedelta(0)

    time_diff = utc_now() - dt
    assert isinstance(time_diff, timedelta)


def test_coerce_datetime_accepts_posix_seconds():
    dt = coerce_datetime(1_700_000_000)
    assert dt == from_timestamp(1_700_000_000)
    assert dt.utcoffset() == timedelta(0)


def test_coerce_datetime_rejects_garbage():
    assert coerce_datetime("not a date") is None
    assert coerce_datetime(True) is None
    assert coerce_datetime(None) is None


def test_timestamp_round_trip_treats_naive_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    assert from_timestamp(to_timestamp(naive)) == naive.replace(tzinfo=timezone.utc)
