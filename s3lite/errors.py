"""Exception types raised by the client.

Transport failures (``httpx.HTTPError`` and friends) are not wrapped; they
reach the caller exactly as the HTTP library raised them.
"""

from typing import Optional


class S3LiteError(Exception):
    """Base class for errors raised by this package."""

    pass


class SigningInputError(S3LiteError, ValueError):
    """Raised when the signer is given input it cannot sign.

    Malformed URLs, unparsable or non-UTC timestamps, empty credentials and
    out-of-range expiry times are programmer errors. Nothing is signed.
    """

    pass


class ListingParseError(S3LiteError):
    """Raised when a bucket-listing response body is not well-formed XML.

    The HTTP request itself succeeded; only the body could not be read.
    """

    pass


class ProtocolError(S3LiteError):
    """Raised on demand for a non-2xx response from the storage service."""

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[bytes] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
