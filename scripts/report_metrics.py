"""
Engagement Metrics Report

Usage:
    python scripts/report_metrics.py <path-to-csv> <prior_from> <prior_to> <current_from> <current_to> [divisor]

CSV Format:
    occurred_on,account_id,user_id

DAU average and MAU are reported for the current window, growth rate
compares the current window with the prior one.
"""

import sys
from datetime import date
from pathlib import Path

# Add parent directory to path to import engagement_metrics modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from engagement_metrics.core.config import settings
from engagement_metrics.core.errors import EngagementMetricsError
from engagement_metrics.services.analytics import AnalyticsService
from engagement_metrics.services.event_store import EventStore


def print_table(title: str, values: dict, fmt: str):
    print(f"\n{title}")
    print(f"{'Account':<30} {'Value':>12}")
    print(f"{'-' * 43}")
    for account_id, value in values.items():
        print(f"{account_id:<30} {value:>12{fmt}}")
    if not values:
        print("(no accounts)")


def report(file_path: str, prior_from: date, prior_to: date,
           current_from: date, current_to: date, divisor: float):
    store = EventStore.from_csv(file_path)
    service = AnalyticsService(store)

    print("=" * 50)
    print(f"Events: {len(store)} | Backend: {service.backend}")
    print(f"Prior window:   {prior_from} .. {prior_to}")
    print(f"Current window: {current_from} .. {current_to}")
    print("=" * 50)

    try:
        print_table(
            f"Average DAU (divisor {divisor})",
            service.get_dau_average(current_from, current_to, divisor),
            ".4f"
        )
        print_table("MAU", service.get_mau(current_from, current_to), "d")
        print_table(
            "Growth rate",
            service.get_growth_rate(prior_from, prior_to, current_from, current_to),
            ".4f"
        )
    finally:
        service.close()


def main():
    if len(sys.argv) not in (6, 7):
        print("Usage: python scripts/report_metrics.py <path-to-csv> "
              "<prior_from> <prior_to> <current_from> <current_to> [divisor]")
        sys.exit(1)

    try:
        prior_from, prior_to, current_from, current_to = (
            date.fromisoformat(value) for value in sys.argv[2:6]
        )
        divisor = float(sys.argv[6]) if len(sys.argv) == 7 else settings.dau_divisor
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        report(sys.argv[1], prior_from, prior_to, current_from, current_to, divisor)
    except EngagementMetricsError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
