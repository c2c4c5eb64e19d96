"""Prometheus metrics for the tag scoring and trending subsystem."""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

tag_score_total = Counter(
    "cms_tag_score_total",
    "Tag relationship score computations",
)
tag_score_failures = Counter(
    "cms_tag_score_failures_total",
    "Tag relationship score computations that fell back to 0.0",
)
tag_score_duration = Histogram(
    "cms_tag_score_duration_seconds",
    "Tag relationship score latency, including corpus queries",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0],
)

trending_refresh_duration = Histogram(
    "cms_trending_refresh_duration_seconds",
    "Trending refresh latency",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)
trending_tags_updated = Counter(
    "cms_trending_tags_updated_total",
    "Tags written by the trending refresh",
)
trending_refresh_failures = Counter(
    "cms_trending_refresh_failures_total",
    "Trending refresh passes abandoned on error",
    ["stage"],
)


async def metrics_endpoint() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
