"""Tick-driven scheduler for the scrape-transform-forward cycle."""
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import threading
import time

from promforward.config import Config, Credentials
from promforward.converter import Converter, TextFormatConverter
from promforward.encoder import Encoder
from promforward.errors import ForwarderError
from promforward.fetcher import Fetcher
from promforward.self_metrics import SelfMetrics
from promforward.sender import Sender

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_S = 15.0
NODE_LABEL = "node_name"


@dataclass
class CycleResult:
    """Outcome of one cycle. `stage` is the last stage entered."""
    cycle: int
    ok: bool
    stage: str
    status_code: Optional[int] = None
    error: Optional[str] = None
    series_count: int = 0
    duration_s: float = 0.0
    finished_at: float = field(default_factory=time.time)


class ForwarderScheduler:
    """Runs fetch -> convert -> encode -> send once per tick."""

    def __init__(
        self,
        credentials: Credentials,
        labels: Dict[str, str],
        fetcher: Optional[Fetcher] = None,
        converter: Optional[Converter] = None,
        encoder: Optional[Encoder] = None,
        sender: Optional[Sender] = None,
        tick_interval_s: float = DEFAULT_TICK_INTERVAL_S,
        self_metrics: Optional[SelfMetrics] = None,
    ):
        if NODE_LABEL not in labels:
            raise ValueError(f"fixed labels must include '{NODE_LABEL}'")

        self.credentials = credentials
        self.labels = dict(labels)
        self.fetcher = fetcher or Fetcher()
        self.converter = converter or TextFormatConverter()
        self.encoder = encoder or Encoder()
        self.sender = sender or Sender()
        self.tick_interval_s = tick_interval_s
        self.self_metrics = self_metrics or SelfMetrics()

        self.running = False
        self.cycle_count = 0
        self.start_time = time.time()
        self.last_result: Optional[CycleResult] = None

        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config, self_metrics: Optional[SelfMetrics] = None) -> "ForwarderScheduler":
        return cls(
            credentials=config.credentials(),
            labels={NODE_LABEL: config.global_.node_name},
            fetcher=Fetcher(timeout_s=config.scrape.timeout_s),
            sender=Sender(timeout_s=config.remote_write.timeout_s),
            tick_interval_s=config.global_.tick_interval_s,
            self_metrics=self_metrics,
        )

    def run_cycle(self) -> CycleResult:
        """Execute one cycle. Never raises; failures are logged and returned."""
        with self._state_lock:
            self.cycle_count += 1
            cycle = self.cycle_count

        cycle_start = time.monotonic()
        stage = "fetch"
        status_code = None
        series_count = 0
        error = None

        try:
            body = self.fetcher.fetch()

            stage = "convert"
            request = self.converter.convert(body, dict(self.labels))
            series_count = len(request.timeseries)

            stage = "encode"
            payload = self.encoder.encode(request)

            stage = "send"
            status_code = self.sender.send(payload, self.credentials)
        except ForwarderError as e:
            error = f"{type(e).__name__}: {e}"
            logger.error(f"Cycle {cycle} failed at stage '{stage}': {error}")
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.error(f"Cycle {cycle} failed at stage '{stage}' with unexpected error: {error}", exc_info=True)

        duration = time.monotonic() - cycle_start
        result = CycleResult(
            cycle=cycle,
            ok=error is None,
            stage=stage,
            status_code=status_code,
            error=error,
            series_count=series_count,
            duration_s=duration,
        )

        if result.ok:
            logger.debug(
                f"Cycle {cycle}: forwarded {series_count} series in {duration:.3f}s, "
                f"remote status code {status_code}"
            )
            self.self_metrics.record_delivery(status_code, series_count)
        else:
            self.self_metrics.record_stage_error(stage)
        self.self_metrics.record_cycle(result.ok, duration)

        with self._state_lock:
            self.last_result = result
        return result

    def run(self):
        """Run cycles until stop() is called."""
        self.running = True
        self.start_time = time.time()

        logger.info(
            f"Starting forwarder: every {self.tick_interval_s}s to "
            f"{self.credentials.redacted_url()}"
        )

        delay = self.tick_interval_s
        try:
            while not self._stop_event.wait(delay):
                cycle_start = time.monotonic()
                self.run_cycle()

                # Sleep for remaining time in tick interval
                cycle_duration = time.monotonic() - cycle_start
                delay = max(0.0, self.tick_interval_s - cycle_duration)
                if delay == 0:
                    logger.warning(
                        f"Cycle took {cycle_duration:.3f}s, longer than interval "
                        f"{self.tick_interval_s}s"
                    )
        finally:
            self.running = False
            logger.info(f"Forwarder stopped after {self.cycle_count} cycles")

    def stop(self):
        """Stop scheduling new cycles; an in-flight cycle completes."""
        if not self._stop_event.is_set():
            logger.info("Stopping forwarder")
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def status(self) -> dict:
        with self._state_lock:
            last = self.last_result
            cycle_count = self.cycle_count
        return {
            "running": self.running,
            "uptime_seconds": time.time() - self.start_time,
            "cycle_count": cycle_count,
            "tick_interval_s": self.tick_interval_s,
            "remote_write_target": self.credentials.redacted_url(),
            "last_cycle": None if last is None else {
                "cycle": last.cycle,
                "ok": last.ok,
                "stage": last.stage,
                "status_code": last.status_code,
                "error": last.error,
                "series_count": last.series_count,
                "duration_s": round(last.duration_s, 4),
                "finished_at": last.finished_at,
            },
        }

