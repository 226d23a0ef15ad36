"""Request envelope assembly.

Builds the URL and header set for an outgoing request, signs it, and
hands back a ``RequestEnvelope`` ready for the transport. Content
length, hash and MIME type come from ``ObjectMetadata``; nothing is
computed from the body here.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO, Callable, Mapping, Optional, Union
from urllib.parse import urlsplit

from s3lite.canonical import QueryParams, canonical_query_string, uri_encode
from s3lite.constants import AmzHeader, EMPTY_SHA256
from s3lite.errors import SigningInputError
from s3lite.models import ObjectMetadata
from s3lite.signer import Signer, host_header, http_date, utc_now

logger = logging.getLogger(__name__)

Body = Union[bytes, BinaryIO, None]


class ContentLengthPolicy(Enum):
    """Who supplies the Content-Length header.

    TRANSPORT: the HTTP library sets it from the body, so the envelope
    neither signs nor sends it (sending it too would duplicate the header).
    SIGNED: the envelope sends it and includes it in the signature.
    """

    TRANSPORT = "transport"
    SIGNED = "signed"


@dataclass(frozen=True)
class RequestEnvelope:
    """A signed request ready to send."""

    method: str
    url: str
    headers: dict[str, str]
    body: Body = None
    content_length: Optional[int] = None
    signed_headers: str = field(default="", compare=False)


DOT_SEGMENTS = {".": "%2E", "..": "%2E%2E"}


def encode_key(key: str) -> str:
    """Percent-encode an object key for use in a URL path.

    Leading slashes are dropped; inner slashes are kept. Segments that are
    exactly ``.`` or ``..`` are encoded too, so HTTP clients do not
    collapse them and send a different path than the one signed.
    """
    segments = key.lstrip("/").split("/")
    return "/".join(DOT_SEGMENTS.get(segment) or uri_encode(segment) for segment in segments)


def object_path(bucket: str, key: str) -> str:
    """Path-style object path ``/{bucket}/{key}`` with the key encoded."""
    return f"/{bucket}/{encode_key(key)}"


def bucket_path(bucket: str) -> str:
    return f"/{bucket}"


def merge_headers(base: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Merge header mappings, later names replacing earlier ones regardless of case."""
    merged = {name: str(value) for name, value in base.items()}
    for name, value in (overrides or {}).items():
        for existing in [n for n in merged if n.lower() == name.lower()]:
            del merged[existing]
        merged[name] = str(value)
    return merged


def metadata_headers(metadata: ObjectMetadata) -> dict[str, str]:
    """Object headers for an upload described by ``metadata``."""
    return {
        AmzHeader.ACL.value: metadata.acl.value,
        AmzHeader.STORAGE_CLASS.value: metadata.storage_class.value,
        AmzHeader.CONTENT_SHA256.value: metadata.sha256,
        AmzHeader.CACHE_CONTROL.value: metadata.cache_control,
        AmzHeader.CONTENT_MD5.value: metadata.md5,
        AmzHeader.CONTENT_LENGTH.value: str(metadata.length),
        AmzHeader.CONTENT_TYPE.value: metadata.content_type,
    }


class EnvelopeBuilder:
    """Assembles and signs requests against one endpoint."""

    def __init__(
        self,
        endpoint: str,
        signer: Signer,
        content_length_policy: ContentLengthPolicy = ContentLengthPolicy.TRANSPORT,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the builder.

        Args:
            endpoint: Base URL, e.g. ``https://s3.amazonaws.com``.
            signer: Signer for the client's credentials and region.
            content_length_policy: Whether Content-Length is signed and sent.
            clock: Source of the request timestamp.
        """
        self.endpoint = endpoint.rstrip("/")
        self.host = host_header(urlsplit(self.endpoint))
        self.signer = signer
        self.content_length_policy = content_length_policy
        self.clock = clock

    def url_for(self, path: str, query: Optional[QueryParams] = None) -> str:
        url = f"{self.endpoint}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{canonical_query_string(query)}"
        return url

    def base_headers(self, now: datetime) -> dict[str, str]:
        """Headers every request carries: Date, Host and the empty-body hash."""
        return {
            AmzHeader.HTTP_DATE.value: http_date(now),
            AmzHeader.HOST.value: self.host,
            AmzHeader.CONTENT_SHA256.value: EMPTY_SHA256,
        }

    def build(
        self,
        method: str,
        path: str,
        query: Optional[QueryParams] = None,
        headers: Optional[Mapping[str, Any]] = None,
        body: Body = None,
        metadata: Optional[ObjectMetadata] = None,
    ) -> RequestEnvelope:
        """Assemble and sign a request.

        Args:
            method: HTTP method.
            path: Request path, already percent-encoded.
            query: Query parameters.
            headers: Caller headers; these override generated ones.
            body: Request body, sent as-is by the transport.
            metadata: Upload description; adds the object headers.

        Returns:
            The signed RequestEnvelope.
        """
        url = self.url_for(path, query)
        merged = self.base_headers(self.clock())
        if metadata is not None:
            merged = merge_headers(merged, metadata_headers(metadata))
        merged = merge_headers(merged, headers)

        content_length = None
        for name in [n for n in merged if n.lower() == AmzHeader.CONTENT_LENGTH.value]:
            try:
                content_length = int(merged[name])
            except ValueError as e:
                raise SigningInputError(
                    f"Content-Length must be an integer, got {merged[name]!r}"
                ) from e
            if self.content_length_policy is ContentLengthPolicy.TRANSPORT:
                del merged[name]

        authorization = self.signer.authorize(method, url, merged)
        merged["Authorization"] = str(authorization)
        logger.debug("%s %s signed headers: %s", method, url, authorization.signed_headers)

        return RequestEnvelope(
            method=method.upper(),
            url=url,
            headers=merged,
            body=body,
            content_length=content_length,
            signed_headers=authorization.signed_headers,
        )
