# Metric computation errors

from typing import Iterable


class EngagementMetricsError(Exception):
    """Base error for metric computations"""


class InvalidArgument(EngagementMetricsError, ValueError):
    """Bad divisor, reversed date window or malformed event input"""


class DivisionByZero(EngagementMetricsError, ZeroDivisionError):
    """Growth rate requested for accounts with no prior-window users"""

    def __init__(self, account_ids: Iterable[str]):
        self.account_ids = sorted(account_ids)
        super().__init__(
            "prior-window user count is zero for account(s): "
            + ", ".join(self.account_ids)
        )
