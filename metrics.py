"""Prometheus metrics shared by the HTTP surface and the completion client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

request_count = Counter(
    "promptcraft_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
request_latency = Histogram(
    "promptcraft_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)
completion_outcomes = Counter(
    "promptcraft_completions_total",
    "Completion calls by backend, path and outcome",
    ["backend", "path", "outcome"],
)
stream_frames = Counter(
    "promptcraft_stream_data_frames_total",
    "SSE data frames received from backends",
    ["backend"],
)
frame_decode_failures = Counter(
    "promptcraft_frame_decode_failures_total",
    "SSE data frames skipped because they could not be decoded",
    ["backend"],
)
title_fallbacks = Counter(
    "promptcraft_title_fallbacks_total",
    "Titles derived locally because the title request failed",
)


def record_outcome(backend: str, path: str, outcome: str) -> None:
    """Count one completion call outcome (``ok`` or an error kind)."""
    completion_outcomes.labels(backend=backend, path=path, outcome=outcome).inc()
