"""Conversion of exposition-format text into remote-write requests."""
from typing import Callable, Dict, List, Optional, Protocol, Tuple
import logging
import time

from prometheus_client.parser import text_string_to_metric_families

from promforward.errors import ConversionError
from promforward.series import Label, Sample, TimeSeries, WriteRequest

logger = logging.getLogger(__name__)

NAME_LABEL = "__name__"


class Converter(Protocol):
    """Turns a scraped body plus a fixed label set into a write request."""

    def convert(self, data: bytes, labels: Dict[str, str]) -> WriteRequest:
        ...


def now_ms() -> int:
    return int(time.time() * 1000)


class TextFormatConverter:
    """Converter backed by the prometheus_client text parser."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self.clock = clock or now_ms

    def convert(self, data: bytes, labels: Dict[str, str]) -> WriteRequest:
        """
        Convert one scrape into a write request.

        Args:
            data: Raw scrape body
            labels: Fixed labels attached to every series; they win on a clash

        Returns:
            WriteRequest with one series per distinct label set, in scrape order
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConversionError(f"scrape body is not valid UTF-8: {e}") from e

        scrape_ts = self.clock()
        series: Dict[Tuple[Tuple[str, str], ...], TimeSeries] = {}

        try:
            for family in text_string_to_metric_families(text):
                for sample in family.samples:
                    merged = dict(sample.labels)
                    merged[NAME_LABEL] = sample.name
                    merged.update(labels)

                    key = tuple(sorted(merged.items()))
                    ts = series.get(key)
                    if ts is None:
                        ts = TimeSeries(labels=[Label(k, v) for k, v in key])
                        series[key] = ts

                    timestamp = scrape_ts
                    if sample.timestamp is not None:
                        timestamp = _timestamp_ms(sample.timestamp)
                    ts.samples.append(Sample(value=float(sample.value), timestamp=timestamp))
        except Exception as e:
            raise ConversionError(f"malformed exposition-format body: {e}") from e

        timeseries: List[TimeSeries] = list(series.values())
        for ts in timeseries:
            ts.samples.sort(key=lambda s: s.timestamp)

        logger.debug(f"Converted scrape into {len(timeseries)} series")
        return WriteRequest(timeseries=timeseries)


def _timestamp_ms(timestamp) -> int:
    """Exposition timestamps arrive from the parser in seconds."""
    if hasattr(timestamp, "sec"):
        return timestamp.sec * 1000 + timestamp.nsec // 1_000_000
    return int(round(float(timestamp) * 1000))
