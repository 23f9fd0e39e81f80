#!/usr/bin/env python3
"""
Benchmark Script for Journal Event Analytics API

Measures latency of the /stats endpoints for one owner. Seed data first,
e.g. with POST /admin/demo-data as an admin owner.

Usage:
    python scripts/benchmark_analytics.py <owner-id> [base-url]
"""

import sys
import time
import requests
from datetime import date
import statistics

RUNS_PER_QUERY = 5


def benchmark_queries(base_url: str, owner_id: str):
    """Benchmark analytics queries"""
    print(f"\n{'=' * 60}")
    print("BENCHMARK: Query Performance")
    print(f"{'=' * 60}")

    month = date.today().strftime("%Y-%m")
    queries = [
        ("Summary (7 days)", f"{base_url}/stats/summary?range=7"),
        ("Summary (30 days)", f"{base_url}/stats/summary?range=30"),
        ("Summary (all)", f"{base_url}/stats/summary?range=all"),
        ("Emotions (30 days)", f"{base_url}/stats/emotions?range=30"),
        ("Overview (month)", f"{base_url}/stats/overview?range=month"),
        ("Calendar", f"{base_url}/stats/calendar?month={month}"),
        ("Timeline (30, parents)", f"{base_url}/stats/timeline?range=30&structure=parents"),
        ("Reflection", f"{base_url}/stats/reflection"),
    ]
    headers = {"X-User-Id": owner_id}

    results = []

    for name, url in queries:
        times = []

        for _ in range(RUNS_PER_QUERY):
            start = time.time()
            try:
                response = requests.get(url, headers=headers, timeout=30)
                elapsed = (time.time() - start) * 1000  # Convert to ms

                if response.status_code == 200:
                    times.append(elapsed)
                else:
                    print(f"Error in {name}: Status {response.status_code}")
            except requests.RequestException as e:
                print(f"Error in {name}: {e}")

        if times:
            ordered = sorted(times)
            results.append({
                "name": name,
                "p50": statistics.median(times),
                "p95": ordered[int(len(ordered) * 0.95)] if len(ordered) > 1 else ordered[0],
                "avg": statistics.mean(times),
            })

    print(f"\n{'Query':<25} {'P50':>10} {'P95':>10} {'Avg':>10}")
    print(f"{'-' * 60}")
    for r in results:
        print(f"{r['name']:<25} {r['p50']:>9.0f}ms {r['p95']:>9.0f}ms {r['avg']:>9.0f}ms")

    print(f"{'=' * 60}\n")

    return results


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/benchmark_analytics.py <owner-id> [base-url]")
        sys.exit(1)

    owner_id = sys.argv[1]
    base_url = sys.argv[2] if len(sys.argv) > 2 else "http://localhost:8000"

    print("\n" + "=" * 60)
    print("JOURNAL ANALYTICS API - BENCHMARK")
    print("=" * 60)
    print(f"Target: {base_url} (owner {owner_id})")
    print("=" * 60)

    # Test connection
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code != 200:
            print("Error: API is not healthy")
            sys.exit(1)
    except requests.RequestException as e:
        print(f"Error: Cannot connect to API: {e}")
        sys.exit(1)

    benchmark_queries(base_url, owner_id)

    print("\n" + "=" * 60)
    print("BENCHMARK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
