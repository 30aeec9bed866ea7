"""Self-monitoring metrics for the forwarder."""
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


class SelfMetrics:
    """Counters describing the forwarder's own cycles."""

    def __init__(self, registry=None, prefix="promforward_"):
        if registry is None:
            registry = CollectorRegistry()
        self.registry = registry

        self.cycles_total = Counter(
            f"{prefix}cycles_total",
            "Total number of completed forwarding cycles",
            ["outcome"],
            registry=registry
        )

        self.stage_errors_total = Counter(
            f"{prefix}stage_errors_total",
            "Total number of cycles aborted, by failing stage",
            ["stage"],
            registry=registry
        )

        self.cycle_duration_seconds = Histogram(
            f"{prefix}cycle_duration_seconds",
            "Duration of each forwarding cycle in seconds",
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0],
            registry=registry
        )

        self.series_forwarded_total = Counter(
            f"{prefix}series_forwarded_total",
            "Total number of time series handed to the remote endpoint",
            registry=registry
        )

        self.remote_write_last_status = Gauge(
            f"{prefix}remote_write_last_status",
            "HTTP status code of the most recent remote write",
            registry=registry
        )

    def record_cycle(self, ok: bool, duration: float):
        self.cycles_total.labels(outcome="success" if ok else "failure").inc()
        self.cycle_duration_seconds.observe(duration)

    def record_stage_error(self, stage: str):
        self.stage_errors_total.labels(stage=stage).inc()

    def record_delivery(self, status_code: int, series_count: int):
        self.remote_write_last_status.set(status_code)
        self.series_forwarded_total.inc(series_count)

    def render(self) -> bytes:
        """Render the registry in the text exposition format."""
        return generate_latest(self.registry)
