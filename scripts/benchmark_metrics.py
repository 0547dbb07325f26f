#!/usr/bin/env python3
"""
Benchmark Script for Engagement Metrics

Times the Python aggregator and the DuckDB backend over synthetic events
"""

import sys
import time
from datetime import date, timedelta
from pathlib import Path
import statistics

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from engagement_metrics.schemas.event import Event
from engagement_metrics.services.analytics import AnalyticsService


def generate_events(count: int, start_date: date):
    """Generate test events spread over 62 days, 50 accounts and 10k users"""
    return [
        Event(
            occurred_on=start_date + timedelta(days=i % 62),
            account_id=f"account_{i % 50}",
            user_id=f"user_{i % 10000}"
        )
        for i in range(count)
    ]


def benchmark_backend(name: str, service: AnalyticsService):
    """Run each metric 5 times and collect timings"""
    dec = (date(2024, 12, 1), date(2024, 12, 31))
    jan = (date(2025, 1, 1), date(2025, 1, 31))

    queries = [
        ("Daily", lambda: service.get_daily(*jan)),
        ("DAU average", lambda: service.get_dau_average(*jan, 31.0)),
        ("MAU", lambda: service.get_mau(*jan)),
        ("Growth rate", lambda: service.get_growth_rate(*dec, *jan)),
    ]

    results = []

    for query_name, query in queries:
        times = []
        for _ in range(5):
            start = time.time()
            query()
            times.append((time.time() - start) * 1000)  # Convert to ms

        results.append({
            "name": f"{name}: {query_name}",
            "p50": statistics.median(times),
            "p95": sorted(times)[int(len(times) * 0.95)],
            "avg": statistics.mean(times),
        })

    return results


def main():
    total_events = int(sys.argv[1]) if len(sys.argv) > 1 else 100000

    print("\n" + "=" * 60)
    print(f"ENGAGEMENT METRICS - BENCHMARK ({total_events:,} events)")
    print("=" * 60)

    events = generate_events(total_events, date(2024, 12, 1))

    results = []
    for use_duckdb in (False, True):
        service = AnalyticsService(events, use_duckdb=use_duckdb)
        try:
            results.extend(benchmark_backend(service.backend, service))
        finally:
            service.close()

    print(f"\n{'Query':<30} {'P50':>10} {'P95':>10} {'Avg':>10}")
    print(f"{'-' * 64}")
    for r in results:
        print(f"{r['name']:<30} {r['p50']:>8.1f}ms {r['p95']:>8.1f}ms {r['avg']:>8.1f}ms")

    print("\n" + "=" * 60)
    print("BENCHMARK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
