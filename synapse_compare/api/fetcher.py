"""
Resource Fetcher

Fetches a single resource over HTTP(S) and classifies the outcome as success,
bad status, or transport failure. One attempt per call; retry policy belongs
to the caller.
"""

from typing import Optional

import requests
from urllib3.util import Timeout

from synapse_compare.domain.records import FetchOutcome
from synapse_compare.utils.logger import get_logger, redact_url

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "Timeout"


class ResourceFetcher:
    """
    GET client returning FetchOutcome values instead of raising.

    The timeout is one deadline running from dispatch until the response
    headers arrive. Redirects are not followed, so a 3xx is a failed fetch.
    The response is streamed so a non-2xx or wrong content-type response is
    closed without reading its body; a 2xx body is read to its end with no
    timeout.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, session: Optional[requests.Session] = None):
        """
        Initialize fetcher.

        Args:
            session: Optional requests.Session (a fresh session is created by default)
        """
        self.session = session or requests.Session()

    def fetch(self, url: str, timeout_ms: int, expect_image: bool = False) -> FetchOutcome:
        """
        Fetch one URL.

        Args:
            url: Absolute http:// or https:// URL
            timeout_ms: Positive timeout in milliseconds
            expect_image: Require an image/* Content-Type

        Returns:
            FetchOutcome, ok=True only for a fully read 2xx response
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")

        try:
            response = self.session.get(
                url,
                timeout=Timeout(total=timeout_ms / 1000.0),
                allow_redirects=False,
                stream=True,
            )
        except requests.Timeout:
            logger.warning(
                "Fetch timed out",
                operation="fetch",
                context={"url": redact_url(url), "timeout_ms": timeout_ms},
            )
            return FetchOutcome.failure(0, TIMEOUT_MESSAGE)
        except requests.RequestException as e:
            logger.warning(
                "Fetch transport failure",
                operation="fetch",
                context={"url": redact_url(url)},
                error=str(e),
            )
            return FetchOutcome.failure(0, str(e))

        with response:
            status_code = response.status_code or 0
            declared_type = response.headers.get("Content-Type", "") or ""

            if status_code < 200 or status_code >= 300:
                return FetchOutcome.failure(status_code, f"HTTP {status_code}", declared_type)

            if expect_image and not declared_type.startswith("image/"):
                return FetchOutcome.failure(
                    status_code,
                    f"Invalid content-type: {declared_type} (expected image/*)",
                    declared_type,
                )

            _clear_read_timeout(response)
            try:
                body = b"".join(response.iter_content(chunk_size=self.CHUNK_SIZE))
            except requests.RequestException as e:
                logger.warning(
                    "Body read failed",
                    operation="fetch",
                    context={"url": redact_url(url), "status": status_code},
                    error=str(e),
                )
                return FetchOutcome.failure(status_code, str(e), declared_type)

        logger.debug(
            "Fetched resource",
            operation="fetch",
            context={"url": redact_url(url), "status": status_code, "size": len(body)},
        )
        return FetchOutcome.success(status_code, body, declared_type)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()


def _clear_read_timeout(response: requests.Response) -> None:
    # Headers are in; the body may take as long as the server needs.
    connection = getattr(response.raw, "_connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        sock.settimeout(None)
