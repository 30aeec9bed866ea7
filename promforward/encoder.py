"""Prometheus remote write wire encoding.

A write request is converted to the remote write protobuf messages, serialized
and snappy-compressed (raw block format, length-prefixed), which is what the
remote_write API expects with `Content-Encoding: snappy`.
"""

import logging

import snappy

from promforward import remote_pb2
from promforward.errors import EncodeError
from promforward.series import Label, Sample, TimeSeries, WriteRequest

logger = logging.getLogger(__name__)


def to_message(request: WriteRequest) -> remote_pb2.WriteRequest:
    """Build the protobuf WriteRequest for a write request."""
    message = remote_pb2.WriteRequest()
    for ts in request.timeseries:
        series = message.timeseries.add()
        for label in ts.labels:
            series.labels.add(name=label.name, value=label.value)
        for sample in ts.samples:
            series.samples.add(value=float(sample.value), timestamp=int(sample.timestamp))
    return message


def from_message(message: remote_pb2.WriteRequest) -> WriteRequest:
    return WriteRequest(timeseries=[
        TimeSeries(
            labels=[Label(label.name, label.value) for label in series.labels],
            samples=[Sample(value=sample.value, timestamp=sample.timestamp) for sample in series.samples],
        )
        for series in message.timeseries
    ])


def serialize(request: WriteRequest) -> bytes:
    """Serialize a write request to protobuf wire format."""
    return to_message(request).SerializeToString(deterministic=True)


def deserialize(raw: bytes) -> WriteRequest:
    """Parse protobuf wire bytes back into a write request."""
    message = remote_pb2.WriteRequest()
    message.ParseFromString(raw)
    return from_message(message)


class Encoder:
    """Serializes and snappy-compresses write requests."""

    def encode(self, request: WriteRequest) -> bytes:
        try:
            raw = serialize(request)
        except Exception as e:
            raise EncodeError(f"could not serialize write request: {e}") from e

        try:
            payload = snappy.compress(raw)
        except Exception as e:
            raise EncodeError(f"could not compress write request: {e}") from e

        logger.debug(
            f"Encoded {len(request.timeseries)} series: "
            f"{len(raw)} bytes raw, {len(payload)} bytes compressed"
        )
        return payload

    def decode(self, payload: bytes) -> WriteRequest:
        """Reverse encode(): decompress then deserialize."""
        try:
            raw = snappy.decompress(payload)
        except Exception as e:
            raise EncodeError(f"could not decompress payload: {e}") from e

        try:
            return deserialize(raw)
        except Exception as e:
            raise EncodeError(f"could not deserialize write request: {e}") from e
