from decimal import Decimal

import pytest

from pgstats_aggregator.config import PollerConfig
from pgstats_aggregator.protocol.errors import SinkError
from pgstats_aggregator.runner.poller import StatsPoller
from pgstats_aggregator.telemetry.counters import CounterState
from pgstats_aggregator.telemetry.queries import PgStatQueries, COUNTER_COLUMNS
from pgstats_aggregator.tests.mocks import (
    FakeStatQueries,
    COUNTERS_CYCLE_1,
    COUNTERS_CYCLE_2,
    stat_connection,
)


def _values(samples):
    return {s.name: s.value for s in samples}


def test_inserts_scenario_across_four_cycles(poller, sink, queries, clock):
    emitted = []
    for raw in (100, 150, 140, 160):
        queries.counters = {'inserts': raw}
        result = poller.poll(queries)
        emitted.append(_values(result.samples).get('postgres.inserts'))
        clock.advance(300)

    assert emitted == [None, 50, None, 20]
    assert poller.counters.baseline('inserts') == 160
    # Cycles 1 and 3 produced no eligible samples, so only two submissions
    assert sink.calls == 2
    assert sink.batches[0][0].source == "app"


def test_first_cycle_without_gauges_never_calls_sink(poller, sink, queries):
    queries.counters = dict(COUNTERS_CYCLE_1)

    result = poller.poll(queries)

    assert result.samples == []
    assert result.submitted is False
    assert sink.calls == 0
    assert {result.skipped[name] for name in COUNTER_COLUMNS} == {"baseline"}


def test_all_samples_share_the_bucket_computed_at_cycle_start(sink, clock):
    queries = FakeStatQueries(
        counters={'inserts': 1},
        index_hit_rate=Decimal("0.5"),
        cache_hit_rate=Decimal("0.75"),
        total_index_size=8192,
        index_usage=[{'relname': 'orders', 'percent_of_times_index_used': '99', 'rows_in_table': 10}],
    )
    slow_clock_values = iter([1000.0, 1500.0, 2000.0])
    poller = StatsPoller(PollerConfig(interval=300, source="app"), sink,
                         clock=lambda: next(slow_clock_values))

    poller.poll(queries)
    queries.counters = {'inserts': 4}
    result = poller.poll(queries)

    assert {s.timestamp for s in result.samples} == {1500}
    assert len(result.samples) == 5
    assert sink.calls == 2


def test_full_cycle_batch_contents(poller, sink):
    poller.poll(PgStatQueries(stat_connection(counters=COUNTERS_CYCLE_1)))
    result = poller.poll(PgStatQueries(stat_connection(counters=COUNTERS_CYCLE_2)))

    values = _values(sink.last_batch)
    assert values['postgres.sequence_scans'] == 60
    assert values['postgres.index_scans'] == 1500
    assert values['postgres.inserts'] == 50
    assert values['postgres.updates'] == 12
    assert values['postgres.deletes'] == 0
    assert values['postgres.index_hit_rate'] == pytest.approx(0.9987)
    assert values['postgres.cache_hit_rate'] == pytest.approx(0.9912)
    assert values['postgres.total_index_size'] == 48 * 1024 * 1024
    assert values['postgres.orders.percent_of_times_index_used'] == 99
    assert values['postgres.customers.percent_of_times_index_used'] == 87
    assert values['postgres.zip_state.percent_of_times_index_used'] == 0
    assert len(sink.last_batch) == 11
    assert result.submitted is True
    assert {s.timestamp for s in sink.last_batch} == {900}


def test_null_gauges_are_skipped(poller, sink, queries):
    queries.index_hit_rate_value = None
    queries.cache_hit_rate_value = Decimal("0.9")
    queries.total_index_size_value = None

    result = poller.poll(queries)

    assert list(_values(sink.last_batch)) == ['postgres.cache_hit_rate']
    assert result.skipped['index_hit_rate'] == "null"
    assert result.skipped['total_index_size'] == "null"


def test_gauges_do_not_touch_counter_state(poller, queries):
    queries.index_hit_rate_value = Decimal("0.9")
    queries.total_index_size_value = 1024

    poller.poll(queries)

    assert len(poller.counters) == 0


def test_unparseable_counter_is_skipped_and_rest_of_cycle_continues(poller, sink, queries):
    queries.counters = {'inserts': 100, 'updates': 10}
    poller.poll(queries)

    queries.counters = {'inserts': 'garbage', 'updates': 25}
    queries.cache_hit_rate_value = Decimal("0.5")
    result = poller.poll(queries)

    assert result.skipped['inserts'] == "invalid"
    assert poller.counters.baseline('inserts') == 100
    assert _values(sink.last_batch) == {'postgres.updates': 15, 'postgres.cache_hit_rate': 0.5}


def test_unparseable_index_usage_row_is_skipped(poller, sink, queries):
    queries.index_usage = [
        {'relname': 'orders', 'percent_of_times_index_used': 'n/a', 'rows_in_table': 1},
        {'relname': 'items', 'percent_of_times_index_used': '40', 'rows_in_table': 1},
    ]

    result = poller.poll(queries)

    assert _values(sink.last_batch) == {'postgres.items.percent_of_times_index_used': 40}
    assert result.skipped["orders.percent_of_times_index_used"] == "invalid"
    assert "items.percent_of_times_index_used" not in result.skipped


def test_reset_is_reported_as_skip(poller, queries):
    queries.counters = {'deletes': 50}
    poller.poll(queries)
    queries.counters = {'deletes': 3}

    result = poller.poll(queries)

    assert result.skipped['deletes'] == "reset"
    assert poller.counters.baseline('deletes') == 3


def test_query_failure_aborts_cycle_but_keeps_earlier_baselines(poller, sink, queries):
    queries.counters = {'inserts': 100}
    poller.poll(queries)

    queries.counters = {'inserts': 180}
    queries.fail_on['cache_hit_rate'] = RuntimeError("connection lost")

    with pytest.raises(RuntimeError):
        poller.poll(queries)

    assert poller.counters.baseline('inserts') == 180
    assert 'index_size' not in queries.calls[-2:]
    assert sink.calls == 0


def test_counter_query_failure_leaves_state_untouched(poller, queries):
    queries.counters = {'inserts': 100}
    poller.poll(queries)
    queries.fail_on['table_counters'] = RuntimeError("timeout")

    with pytest.raises(RuntimeError):
        poller.poll(queries)

    assert poller.counters.snapshot() == {'inserts': 100}


def test_sink_failure_propagates(poller, sink, queries):
    queries.cache_hit_rate_value = Decimal("0.5")
    sink.fail_with("HTTP 503", status_code=503)

    with pytest.raises(SinkError) as exc_info:
        poller.poll(queries)

    assert exc_info.value.status_code == 503


def test_initial_counters_from_config(sink, clock, queries):
    config = PollerConfig(interval=300, source="app", initial_counters={'inserts': 100})
    poller = StatsPoller(config, sink, clock=clock)
    queries.counters = {'inserts': 125}

    result = poller.poll(queries)

    assert _values(result.samples) == {'postgres.inserts': 25}


def test_separate_pollers_do_not_share_baselines(sink, clock):
    poller_a = StatsPoller(PollerConfig(source="a"), sink, clock=clock)
    poller_b = StatsPoller(PollerConfig(source="b"), sink, clock=clock)

    poller_a.poll(FakeStatQueries(counters={'inserts': 1000}))
    poller_b.poll(FakeStatQueries(counters={'inserts': 10}))
    result_a = poller_a.poll(FakeStatQueries(counters={'inserts': 1010}))
    result_b = poller_b.poll(FakeStatQueries(counters={'inserts': 15}))

    assert _values(result_a.samples) == {'postgres.inserts': 10}
    assert _values(result_b.samples) == {'postgres.inserts': 5}
    assert {s.source for s in result_b.samples} == {"b"}


def test_explicit_counter_state_is_used(sink, clock, queries):
    counters = CounterState({'updates': 5})
    poller = StatsPoller(PollerConfig(), sink, counters=counters, clock=clock)
    queries.counters = {'updates': 9}

    poller.poll(queries)

    assert poller.counters is counters
    assert counters.baseline('updates') == 9
