"""Error taxonomy for the scrape-transform-forward pipeline.

Each pipeline stage raises its own error type so the scheduler can report
which stage aborted a cycle.
"""


class ForwarderError(Exception):
    """Base class for pipeline errors."""

    stage = "unknown"


class FetchError(ForwarderError):
    """The local metrics endpoint could not be scraped."""

    stage = "fetch"


class FetchRequestError(FetchError):
    """The scrape request could not be built."""


class FetchTransportError(FetchError):
    """The scrape request failed on the wire (refused, DNS, timeout)."""


class FetchBodyError(FetchError):
    """The scrape response body could not be read."""


class ConversionError(ForwarderError):
    """The scraped body is not valid exposition-format text."""

    stage = "convert"


class EncodeError(ForwarderError):
    """The write request could not be serialized or compressed."""

    stage = "encode"


class SendError(ForwarderError):
    """The payload could not be delivered to the remote endpoint."""

    stage = "send"


class SendRequestError(SendError):
    """The remote-write request could not be built."""


class SendTransportError(SendError):
    """The remote-write request failed on the wire."""
