from datetime import date
from typing import Dict, Iterable, List, Optional

import duckdb
import structlog

from engagement_metrics.core.config import settings
from engagement_metrics.schemas.analytics import DailyCount
from engagement_metrics.schemas.event import Event
from engagement_metrics.services.aggregator import EngagementAggregator
from engagement_metrics.services.sql_metrics import SqlMetrics

logger = structlog.get_logger()


class AnalyticsService:
    """Engagement metrics over one event collection, optionally via DuckDB"""

    def __init__(self, events: Iterable[Event], use_duckdb: Optional[bool] = None):
        self.events = tuple(events)
        self.aggregator = EngagementAggregator()
        self.sql_metrics = None

        if settings.use_duckdb if use_duckdb is None else use_duckdb:
            try:
                self.sql_metrics = SqlMetrics()
                self.sql_metrics.load_events(self.events)
                logger.info("analytics_using_duckdb")
            except duckdb.Error as e:
                logger.warning("duckdb_init_failed_fallback_to_python", error=str(e))
                self.close()

    @property
    def backend(self) -> str:
        return "duckdb" if self.sql_metrics else "python"

    def get_daily(self, from_date: date, to_date: date) -> List[DailyCount]:
        """Distinct users per account per day"""
        if self.sql_metrics:
            return self.sql_metrics.daily_active_users(from_date, to_date)
        return self.aggregator.daily_active_users(self.events, from_date, to_date)

    def get_dau_average(self, from_date: date, to_date: date, divisor: float) -> Dict[str, float]:
        if self.sql_metrics:
            return self.sql_metrics.average_daily_active_users(from_date, to_date, divisor)
        return self.aggregator.average_daily_active_users(self.events, from_date, to_date, divisor)

    def get_mau(self, from_date: date, to_date: date) -> Dict[str, int]:
        if self.sql_metrics:
            return self.sql_metrics.monthly_active_users(from_date, to_date)
        return self.aggregator.monthly_active_users(self.events, from_date, to_date)

    def get_growth_rate(
            self,
            prior_from: date,
            prior_to: date,
            current_from: date,
            current_to: date,
            accounts: Optional[Iterable[str]] = None
    ) -> Dict[str, float]:
        if self.sql_metrics:
            return self.sql_metrics.user_growth_rate(
                prior_from, prior_to, current_from, current_to, accounts
            )
        return self.aggregator.user_growth_rate(
            self.events, prior_from, prior_to, current_from, current_to, accounts
        )

    def close(self):
        """Close DuckDB connection"""
        if self.sql_metrics:
            self.sql_metrics.close()
            self.sql_metrics = None
