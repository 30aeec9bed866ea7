"""Authenticated delivery of encoded payloads to a remote write endpoint."""
from typing import Dict, Optional
import logging

import requests
from requests.auth import HTTPBasicAuth

from promforward import __version__
from promforward.config import Credentials
from promforward.errors import SendRequestError, SendTransportError

logger = logging.getLogger(__name__)

USER_AGENT = f"promforward/{__version__}"
REMOTE_WRITE_VERSION = "0.1.0"

REMOTE_WRITE_HEADERS: Dict[str, str] = {
    "Content-Encoding": "snappy",
    "Content-Type": "application/x-protobuf",
    "User-Agent": USER_AGENT,
    "X-Prometheus-Remote-Write-Version": REMOTE_WRITE_VERSION,
}


class Sender:
    """POSTs snappy payloads with URL-embedded basic auth."""

    def __init__(self, session: Optional[requests.Session] = None, timeout_s: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def build_request(self, payload: bytes, credentials: Credentials) -> requests.PreparedRequest:
        """Prepare the POST; credentials move from the URL into an Authorization header."""
        if "://" in credentials.host_path():
            raise SendRequestError(
                f"remote write url must be https or scheme-less: {credentials.redacted_url()}"
            )
        try:
            request = requests.Request(
                "POST",
                credentials.target_url(),
                data=payload,
                headers=dict(REMOTE_WRITE_HEADERS),
                # explicit auth keeps a netrc entry for the host from replacing the URL credentials
                auth=HTTPBasicAuth(credentials.user.get_secret_value(), credentials.key.get_secret_value()),
            )
            return self.session.prepare_request(request)
        except (requests.exceptions.RequestException, ValueError) as e:
            # Exception text can echo the URL, so only the redacted form is reported
            raise SendRequestError(
                f"could not build remote write request for {credentials.redacted_url()}: "
                f"{type(e).__name__}"
            ) from None

    def send(self, payload: bytes, credentials: Credentials) -> int:
        """
        Deliver one payload.

        Returns:
            The HTTP status code. Non-2xx responses are returned, not raised.
        """
        prepared = self.build_request(payload, credentials)

        try:
            response = self.session.send(prepared, timeout=self.timeout_s)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise SendTransportError(
                f"remote write to {credentials.redacted_url()} failed: {type(e).__name__}"
            ) from None
        except requests.exceptions.RequestException as e:
            raise SendRequestError(
                f"could not send remote write request to {credentials.redacted_url()}: "
                f"{type(e).__name__}"
            ) from None

        status = response.status_code
        response.close()
        logger.debug(f"Remote write result: status code {status}")
        return status
