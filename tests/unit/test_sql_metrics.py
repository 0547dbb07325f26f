from datetime import date

import duckdb
import pytest

from engagement_metrics.core.errors import DivisionByZero, InvalidArgument
from engagement_metrics.schemas.event import Event
from engagement_metrics.services.aggregator import EngagementAggregator
from engagement_metrics.services import sql_metrics as sql_metrics_module
from engagement_metrics.services.sql_metrics import SqlMetrics


DEC = (date(2020, 12, 1), date(2020, 12, 31))
JAN = (date(2021, 1, 1), date(2021, 1, 31))


@pytest.fixture
def events():
    rows = [
        ("2020-12-03", "acc1", "u1"), ("2020-12-03", "acc1", "u2"),
        ("2020-12-04", "acc1", "u1"), ("2020-12-31", "acc1", "u3"),
        ("2020-12-10", "acc2", "u9"), ("2020-12-11", "churned", "u5"),
        ("2021-01-01", "acc1", "u1"), ("2021-01-01", "acc1", "u1"),
        ("2021-01-02", "acc1", "u4"), ("2021-01-31", "acc1", "u2"),
        ("2021-01-02", "acc1", "u3"), ("2021-01-02", "acc1", "u5"),
        ("2021-01-15", "acc2", "u9"), ("2021-01-15", "acc2", "u8"),
        ("2021-02-01", "acc1", "u7"), ("2021-01-20", "new", "u6"),
    ]
    return [
        Event(occurred_on=date.fromisoformat(day), account_id=account_id, user_id=user_id)
        for day, account_id, user_id in rows
    ]


@pytest.fixture
def sql_metrics(events):
    metrics = SqlMetrics()
    metrics.load_events(events)
    yield metrics
    metrics.close()


def test_daily_matches_aggregator(sql_metrics, events):
    expected = EngagementAggregator().daily_active_users(events, *JAN)

    assert sql_metrics.daily_active_users(*JAN) == expected


def test_dau_average_matches_aggregator(sql_metrics, events):
    expected = EngagementAggregator().average_daily_active_users(events, *JAN, 31.0)
    result = sql_metrics.average_daily_active_users(*JAN, 31.0)

    assert result.keys() == expected.keys()
    for account_id, value in expected.items():
        assert result[account_id] == pytest.approx(value)


def test_mau_matches_aggregator(sql_metrics, events):
    result = sql_metrics.monthly_active_users(*JAN)

    assert result == EngagementAggregator().monthly_active_users(events, *JAN)
    assert result == {"acc1": 5, "acc2": 2, "new": 1}


def test_growth_rate_inner_join(sql_metrics, events):
    result = sql_metrics.user_growth_rate(*DEC, *JAN)

    assert result == {"acc1": pytest.approx(5 / 3), "acc2": pytest.approx(2.0)}
    assert result == EngagementAggregator().user_growth_rate(events, *DEC, *JAN)


def test_growth_rate_zero_prior_for_listed_account(sql_metrics):
    with pytest.raises(DivisionByZero) as exc_info:
        sql_metrics.user_growth_rate(*DEC, *JAN, accounts=["acc1", "new"])

    assert exc_info.value.account_ids == ["new"]


@pytest.mark.parametrize("divisor", [0, -31.0, float("nan"), float("inf")])
def test_dau_average_rejects_bad_divisor(sql_metrics, divisor):
    with pytest.raises(InvalidArgument):
        sql_metrics.average_daily_active_users(*JAN, divisor)


def test_reversed_windows_rejected(sql_metrics):
    with pytest.raises(InvalidArgument):
        sql_metrics.monthly_active_users(JAN[1], JAN[0])
    with pytest.raises(InvalidArgument):
        sql_metrics.user_growth_rate(*DEC, JAN[1], JAN[0])


def test_reload_replaces_events(sql_metrics):
    assert sql_metrics.load_events([]) == 0
    assert sql_metrics.monthly_active_users(*JAN) == {}


def test_instances_do_not_share_events(sql_metrics):
    other = SqlMetrics()
    try:
        assert other.monthly_active_users(*JAN) == {}
        assert sql_metrics.monthly_active_users(*JAN) == {"acc1": 5, "acc2": 2, "new": 1}
    finally:
        other.close()


def test_connection_closed_when_table_setup_fails(monkeypatch):
    class FailingConnection:
        closed = False

        def execute(self, query, *args):
            raise duckdb.CatalogException("cannot create events")

        def close(self):
            self.closed = True

    conn = FailingConnection()
    monkeypatch.setattr(sql_metrics_module.duckdb, "connect", lambda database: conn)

    with pytest.raises(duckdb.Error):
        SqlMetrics()

    assert conn.closed
