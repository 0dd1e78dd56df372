import pytest

from pgstats_aggregator.telemetry.clock import bucket, now_floored, seconds_until_next_tick


def test_bucket_floors_to_interval():
    assert bucket(1000, 300) == 900
    assert bucket(900, 300) == 900
    assert bucket(1199, 300) == 900
    assert bucket(1200, 300) == 1200


def test_bucket_truncates_fractional_seconds():
    assert bucket(1000.9, 300) == 900
    assert isinstance(bucket(1000.9, 300), int)


@pytest.mark.parametrize("interval", [1, 60, 300, 3600])
def test_bucket_is_idempotent(interval):
    for now in (0, 1, 299, 1000, 1_700_000_123):
        once = bucket(now, interval)
        assert bucket(once, interval) == once
        assert once <= now < once + interval


@pytest.mark.parametrize("interval", [0, -300, 1.5, None, True])
def test_bucket_rejects_invalid_interval(interval):
    with pytest.raises(ValueError):
        bucket(1000, interval)


def test_now_floored_uses_clock():
    assert now_floored(300, clock=lambda: 1000.25) == 900


def test_seconds_until_next_tick():
    assert seconds_until_next_tick(1000, 300) == 200
    assert seconds_until_next_tick(900, 300) == 300
    assert seconds_until_next_tick(1199.5, 300) == pytest.approx(0.5)
