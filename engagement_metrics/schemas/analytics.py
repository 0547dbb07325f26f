from pydantic import BaseModel
from datetime import date


class DailyCount(BaseModel):
    """Distinct users of one account on one day"""
    account_id: str
    day: date
    distinct_user_count: int


class MetricRow(BaseModel):
    """One account's value for a metric"""
    account_id: str
    metric_value: int | float
