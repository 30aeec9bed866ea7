"""Data structures for remote-write time series."""
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class Label:
    """A single label pair."""
    name: str
    value: str


@dataclass
class Sample:
    """A single sample: value plus timestamp in milliseconds."""
    value: float
    timestamp: int


@dataclass
class TimeSeries:
    """A label set with its ordered samples."""
    labels: List[Label] = field(default_factory=list)
    samples: List[Sample] = field(default_factory=list)

    def label_dict(self) -> Dict[str, str]:
        return {label.name: label.value for label in self.labels}


@dataclass
class WriteRequest:
    """One cycle's worth of time series, in the order they were scraped."""
    timeseries: List[TimeSeries] = field(default_factory=list)
