from datetime import date
from typing import Dict, Iterable, List, Optional

import duckdb
import structlog

from engagement_metrics.schemas.analytics import DailyCount
from engagement_metrics.schemas.event import Event
from engagement_metrics.services.aggregator import (
    growth_rate_from_counts,
    validate_divisor,
    validate_window,
)

logger = structlog.get_logger()


DAILY_QUERY = """
SELECT
    account_id,
    occurred_on AS day,
    COUNT(DISTINCT user_id) AS distinct_user_count
FROM events
WHERE occurred_on BETWEEN ? AND ?
GROUP BY account_id, occurred_on
ORDER BY account_id, day
"""

DAU_AVERAGE_QUERY = """
WITH daily AS (
    SELECT
        account_id,
        occurred_on,
        COUNT(DISTINCT user_id) AS dau
    FROM events
    WHERE occurred_on BETWEEN ? AND ?
    GROUP BY account_id, occurred_on
)
SELECT
    account_id,
    CAST(SUM(dau) AS DOUBLE) / ? AS avg_dau
FROM daily
GROUP BY account_id
ORDER BY account_id
"""

MAU_QUERY = """
SELECT
    account_id,
    COUNT(DISTINCT user_id) AS mau
FROM events
WHERE occurred_on BETWEEN ? AND ?
GROUP BY account_id
ORDER BY account_id
"""

GROWTH_RATE_QUERY = """
WITH prior_window AS (
    SELECT account_id, COUNT(DISTINCT user_id) AS users
    FROM events
    WHERE occurred_on BETWEEN ? AND ?
    GROUP BY account_id
),
current_window AS (
    SELECT account_id, COUNT(DISTINCT user_id) AS users
    FROM events
    WHERE occurred_on BETWEEN ? AND ?
    GROUP BY account_id
)
SELECT
    c.account_id,
    CAST(c.users AS DOUBLE) / p.users AS growth_rate
FROM current_window c
JOIN prior_window p ON c.account_id = p.account_id
ORDER BY c.account_id
"""


class SqlMetrics:
    """The engagement metrics as SQL over a DuckDB events table"""

    def __init__(self):
        # Private in-memory database per instance
        self.conn = duckdb.connect(":memory:")
        try:
            self.conn.execute("""
                CREATE TABLE events (
                    occurred_on DATE NOT NULL,
                    account_id VARCHAR NOT NULL,
                    user_id VARCHAR NOT NULL
                )
            """)
        except duckdb.Error:
            self.conn.close()
            raise
        logger.info("sql_metrics_initialized")

    def load_events(self, events: Iterable[Event]) -> int:
        """Replace this instance's events, returns the row count loaded"""
        rows = [(event.occurred_on, event.account_id, event.user_id) for event in events]

        self.conn.execute("DELETE FROM events")
        if rows:
            self.conn.executemany("INSERT INTO events VALUES (?, ?, ?)", rows)

        logger.info("sql_metrics_events_loaded", count=len(rows))
        return len(rows)

    def daily_active_users(self, start_date: date, end_date: date) -> List[DailyCount]:
        validate_window(start_date, end_date)
        result = self.conn.execute(DAILY_QUERY, [start_date, end_date]).fetchall()

        return [
            DailyCount(account_id=row[0], day=row[1], distinct_user_count=row[2])
            for row in result
        ]

    def average_daily_active_users(
            self,
            start_date: date,
            end_date: date,
            divisor: float
    ) -> Dict[str, float]:
        validate_window(start_date, end_date)
        validate_divisor(divisor)
        result = self.conn.execute(
            DAU_AVERAGE_QUERY, [start_date, end_date, float(divisor)]
        ).fetchall()

        logger.info("dau_average_query_duckdb", start_date=str(start_date), end_date=str(end_date))
        return {row[0]: row[1] for row in result}

    def monthly_active_users(self, start_date: date, end_date: date) -> Dict[str, int]:
        validate_window(start_date, end_date)
        result = self.conn.execute(MAU_QUERY, [start_date, end_date]).fetchall()

        logger.info("mau_query_duckdb", start_date=str(start_date), end_date=str(end_date))
        return {row[0]: row[1] for row in result}

    def user_growth_rate(
            self,
            prior_start: date,
            prior_end: date,
            current_start: date,
            current_end: date,
            accounts: Optional[Iterable[str]] = None
    ) -> Dict[str, float]:
        """Inner join of both windows; a roster zero-fills before joining"""
        validate_window(prior_start, prior_end)
        validate_window(current_start, current_end)

        if accounts is not None:
            prior = self.monthly_active_users(prior_start, prior_end)
            current = self.monthly_active_users(current_start, current_end)
            for account_id in accounts:
                prior.setdefault(account_id, 0)
                current.setdefault(account_id, 0)
            return growth_rate_from_counts(prior, current)

        # Joined accounts always have a non-zero prior count here
        result = self.conn.execute(
            GROWTH_RATE_QUERY,
            [prior_start, prior_end, current_start, current_end]
        ).fetchall()

        logger.info("growth_rate_query_duckdb")
        return {row[0]: row[1] for row in result}

    def close(self):
        """Close DuckDB connection"""
        self.conn.close()
