"""Prometheus metrics for monitoring analyses, score distribution and registry health"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from support_oss.domain.models import Category

# Analysis metrics
analyze_counter = Counter(
    "support_oss_analyze_total",
    "Total dependency analyses served",
)

packages_scored_counter = Counter(
    "support_oss_packages_scored_total",
    "Packages scored by resulting category",
    ["category"],  # critical | needs-support | stable | thriving | corporate
)

allocated_amount_histogram = Histogram(
    "support_oss_allocated_amount",
    "Suggested amount per package",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250, 1000],
)

# Registry / funding platform metrics
registry_fetch_failures_counter = Counter(
    "registry_fetch_failures_total",
    "Failed registry or funding platform calls",
    ["registry"],  # npm | opencollective
)

registry_latency_histogram = Histogram(
    "registry_latency_seconds",
    "Registry and funding platform response time",
    ["registry"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_analysis(categories: Iterable[Category], amounts: Iterable[float]) -> None:
    """Record category distribution and allocation sizes of one analysis"""
    analyze_counter.inc()
    for category in categories:
        packages_scored_counter.labels(category=category.value).inc()
    for amount in amounts:
        allocated_amount_histogram.observe(amount)
