import pytest

from pgstats_aggregator.config import PollerConfig
from pgstats_aggregator.runner.poller import StatsPoller
from pgstats_aggregator.tests.mocks import FakeStatQueries, ManualClock, RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def clock():
    return ManualClock(1000.0)


@pytest.fixture
def queries():
    return FakeStatQueries()


@pytest.fixture
def poller(sink, clock):
    return StatsPoller(PollerConfig(interval=300, source="app"), sink, clock=clock)
