"""HTTP transport for signed requests.

The client talks to the network only through a ``Transport``: given a
method, URL, headers and body it returns a status, headers and body.
Connection handling, TLS and timeouts live here; signing never does.
Network errors are raised as the HTTP library raised them.
"""

import logging
from abc import ABC, abstractmethod
from typing import BinaryIO, Mapping, Optional, Union

import httpx

from s3lite.models import Response

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

Body = Union[bytes, BinaryIO, None]


class Transport(ABC):
    """Performs one HTTP exchange."""

    # True when the transport derives Content-Length from the body itself
    sets_content_length: bool = True

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Body = None,
        content_length: Optional[int] = None,
        destination: Optional[BinaryIO] = None,
    ) -> Response:
        """Send a request.

        Args:
            method: HTTP method.
            url: Absolute URL.
            headers: Headers to send as-is.
            body: Request body.
            content_length: Body size, for transports that set the header.
            destination: When given, a 2xx response body is written here
                        instead of being returned.

        Returns:
            The Response. Any status code is a valid response.
        """

    def close(self) -> None:
        pass


class HttpxTransport(Transport):
    """Transport backed by an ``httpx.Client``."""

    sets_content_length = True

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ):
        """Initialize the transport.

        Args:
            client: Existing httpx client to use. It is not closed by
                   ``close()``. A new client is created when omitted.
            timeout: Timeout in seconds for a new client.
            verify: Verify TLS certificates for a new client.
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout,
            verify=verify,
            follow_redirects=True,
        )

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Body = None,
        content_length: Optional[int] = None,
        destination: Optional[BinaryIO] = None,
    ) -> Response:
        request_headers = dict(headers)
        has_length = any(k.lower() == "content-length" for k in request_headers)
        if body is not None and content_length is not None and not has_length:
            # Streams are otherwise sent chunked
            request_headers["Content-Length"] = str(content_length)

        logger.debug("%s %s", method, url)
        with self.client.stream(
            method,
            url,
            headers=request_headers,
            content=body,
        ) as response:
            if destination is not None and response.is_success:
                for chunk in response.iter_bytes():
                    destination.write(chunk)
                content = b""
            else:
                content = response.read()

        return Response(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=content,
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()


def build_transport(timeout: float = DEFAULT_TIMEOUT, verify: bool = True) -> Transport:
    """Build the default transport.

    Args:
        timeout: Request timeout in seconds.
        verify: Verify TLS certificates.

    Returns:
        An HttpxTransport owning a new httpx client.
    """
    return HttpxTransport(timeout=timeout, verify=verify)
