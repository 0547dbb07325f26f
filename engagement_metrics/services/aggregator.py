import math
from collections import defaultdict
from datetime import date
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Set

import structlog

from engagement_metrics.core.errors import DivisionByZero, InvalidArgument
from engagement_metrics.schemas.analytics import DailyCount
from engagement_metrics.schemas.event import Event

logger = structlog.get_logger()


def validate_window(start_date: date, end_date: date) -> None:
    """Reject reversed windows; both bounds are inclusive"""
    if start_date > end_date:
        raise InvalidArgument(
            f"start date {start_date} must be before or equal to end date {end_date}"
        )


def validate_divisor(divisor: float) -> None:
    if not math.isfinite(divisor) or divisor <= 0:
        raise InvalidArgument(f"divisor must be a finite number greater than zero, got {divisor}")


def growth_rate_from_counts(
        prior: Mapping[str, int],
        current: Mapping[str, int]
) -> Dict[str, float]:
    """
    Join two per-account user counts and divide current by prior.

    Accounts missing from either side are dropped. A zero prior count raises
    DivisionByZero naming every such account.
    """
    joined = sorted(account_id for account_id in current if account_id in prior)

    zero_prior = [account_id for account_id in joined if prior[account_id] == 0]
    if zero_prior:
        logger.warning("growth_rate_zero_prior", account_ids=zero_prior)
        raise DivisionByZero(zero_prior)

    return {
        account_id: current[account_id] / prior[account_id]
        for account_id in joined
    }


class EngagementAggregator:
    """Per-account DAU, MAU and growth rate over an in-memory event collection"""

    def _distinct_users(
            self,
            events: Iterable[Event],
            start_date: date,
            end_date: date,
            by_day: bool = False
    ) -> Dict[Hashable, Set[str]]:
        """Distinct user ids keyed by account, or by (account, day) when by_day is set"""
        validate_window(start_date, end_date)

        users: Dict[Hashable, Set[str]] = defaultdict(set)
        for event in events:
            if not start_date <= event.occurred_on <= end_date:
                continue
            key = (event.account_id, event.occurred_on) if by_day else event.account_id
            users[key].add(event.user_id)

        return users

    def _user_counts(
            self,
            events: Iterable[Event],
            start_date: date,
            end_date: date
    ) -> Dict[str, int]:
        users = self._distinct_users(events, start_date, end_date)
        return {account_id: len(users[account_id]) for account_id in sorted(users)}

    def daily_active_users(
            self,
            events: Iterable[Event],
            start_date: date,
            end_date: date
    ) -> List[DailyCount]:
        """Distinct users per account per day, ordered by account then day"""
        users = self._distinct_users(events, start_date, end_date, by_day=True)

        return [
            DailyCount(account_id=account_id, day=day, distinct_user_count=len(users[(account_id, day)]))
            for account_id, day in sorted(users)
        ]

    def average_daily_active_users(
            self,
            events: Iterable[Event],
            start_date: date,
            end_date: date,
            divisor: float
    ) -> Dict[str, float]:
        """
        Sum of daily distinct users per account divided by a fixed divisor.

        The divisor is the caller's notion of the period length and is not
        derived from the window.
        """
        validate_divisor(divisor)

        totals: Dict[str, int] = defaultdict(int)
        for daily in self.daily_active_users(events, start_date, end_date):
            totals[daily.account_id] += daily.distinct_user_count

        result = {account_id: total / divisor for account_id, total in totals.items()}

        logger.info(
            "dau_average_computed",
            start_date=str(start_date),
            end_date=str(end_date),
            divisor=divisor,
            accounts=len(result)
        )
        return result

    def monthly_active_users(
            self,
            events: Iterable[Event],
            start_date: date,
            end_date: date
    ) -> Dict[str, int]:
        """Distinct users per account within the window"""
        result = self._user_counts(events, start_date, end_date)

        logger.info(
            "mau_computed",
            start_date=str(start_date),
            end_date=str(end_date),
            accounts=len(result)
        )
        return result

    def user_growth_rate(
            self,
            events: Iterable[Event],
            prior_start: date,
            prior_end: date,
            current_start: date,
            current_end: date,
            accounts: Optional[Iterable[str]] = None
    ) -> Dict[str, float]:
        """
        Current-window over prior-window distinct users per account.

        Without `accounts`, only accounts active in both windows are reported.
        With `accounts`, those accounts are zero-filled in both windows first,
        so a listed account with no prior activity raises DivisionByZero.
        """
        events = tuple(events)
        prior = self._user_counts(events, prior_start, prior_end)
        current = self._user_counts(events, current_start, current_end)

        if accounts is not None:
            for account_id in accounts:
                prior.setdefault(account_id, 0)
                current.setdefault(account_id, 0)

        result = growth_rate_from_counts(prior, current)

        logger.info(
            "growth_rate_computed",
            prior_start=str(prior_start),
            prior_end=str(prior_end),
            current_start=str(current_start),
            current_end=str(current_end),
            accounts=len(result)
        )
        return result
