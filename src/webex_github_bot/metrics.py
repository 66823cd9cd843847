"""Prometheus metrics for webhook processing."""

from enum import Enum

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

__all__ = ["CONTENT_TYPE_LATEST", "Outcome", "WebhookMetrics"]


class Outcome(str, Enum):
    """Terminal state of one webhook request."""

    RELAYED = "relayed"
    RELAY_FAILED = "relay_failed"
    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"
    MALFORMED = "malformed"
    INCOMPLETE = "incomplete"
    TOO_LARGE = "too_large"


class WebhookMetrics:
    """Counters and latency histogram, each app instance with its own registry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.received = Counter(
            "github_webhooks_received_total",
            "GitHub webhook requests received",
            ["event_type"],
            registry=self.registry,
        )
        self.rejected = Counter(
            "github_webhooks_rejected_total",
            "GitHub webhook requests rejected before formatting",
            ["reason"],
            registry=self.registry,
        )
        self.outcomes = Counter(
            "github_webhooks_outcome_total",
            "GitHub webhook requests by terminal outcome",
            ["event_type", "outcome"],
            registry=self.registry,
        )
        self.relay_failures = Counter(
            "webex_relay_failures_total",
            "Messages that could not be relayed to Webex",
            ["event_type"],
            registry=self.registry,
        )
        self.latency = Histogram(
            "github_webhook_processing_seconds",
            "Time spent handling a GitHub webhook request",
            ["event_type", "outcome"],
            registry=self.registry,
        )

    def record(self, label: str, outcome: Outcome, duration: float) -> None:
        """Record the outcome and latency of one request, labelled by event type."""
        self.outcomes.labels(event_type=label, outcome=outcome.value).inc()
        self.latency.labels(event_type=label, outcome=outcome.value).observe(duration)
        if outcome is Outcome.RELAY_FAILED:
            self.relay_failures.labels(event_type=label).inc()

    def count(self, name: str, **labels: str) -> float:
        """Current value of a sample, 0.0 if it was never recorded."""
        value = self.registry.get_sample_value(name, labels)
        return value or 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)
