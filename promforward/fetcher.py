"""Scrape the local metrics endpoint."""
from typing import Optional
import logging

import requests

from promforward.errors import FetchBodyError, FetchRequestError, FetchTransportError

logger = logging.getLogger(__name__)

METRICS_HOST = "localhost"
METRICS_PORT = 6060
METRICS_URL = f"http://{METRICS_HOST}:{METRICS_PORT}/metrics"


class Fetcher:
    """Pulls one exposition-format snapshot per call."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout_s: Optional[float] = None,
        url: str = METRICS_URL,
    ):
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.url = url

    def fetch(self) -> bytes:
        """Return the raw response body. The status code is not inspected."""
        try:
            request = self.session.prepare_request(requests.Request("GET", self.url))
        except (requests.exceptions.RequestException, ValueError) as e:
            raise FetchRequestError(f"could not build scrape request for {self.url}: {e}") from e

        try:
            response = self.session.send(request, timeout=self.timeout_s, stream=True)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise FetchTransportError(f"scrape of {self.url} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise FetchRequestError(f"could not send scrape request to {self.url}: {e}") from e

        try:
            body = response.content
        except requests.exceptions.RequestException as e:
            raise FetchBodyError(f"could not read scrape body from {self.url}: {e}") from e
        finally:
            response.close()

        logger.debug(f"Scraped {len(body)} bytes from {self.url} (status {response.status_code})")
        return body
