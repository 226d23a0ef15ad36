"""Object storage client.

``ObjectStoreClient`` exposes put/get/delete/list/presign for one bucket.
Each operation builds a signed envelope and hands it to the transport;
the result is always an ``OperationResult`` carrying the HTTP status, so
callers decide what a 403 or 404 means to them.
"""

import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, Mapping, Optional, Union
from urllib.parse import urlsplit

from s3lite.constants import (
    AmzHeader,
    CannedACL,
    DEFAULT_PRESIGN_TTL,
    DEFAULT_REGION,
    Region,
    ServerSideEncryption,
    StorageClass,
    endpoint_host,
)
from s3lite.envelope import (
    Body,
    ContentLengthPolicy,
    EnvelopeBuilder,
    RequestEnvelope,
    bucket_path,
    encode_key,
    merge_headers,
    object_path,
)
from s3lite.keys import SigningKeyCache
from s3lite.listing import parse_listing
from s3lite.models import Credentials, OperationResult, Response
from s3lite.payload import PayloadLike, analyze, as_payload
from s3lite.signer import PresignContentLength, Signer, Timestamp
from s3lite.transport import Transport, build_transport

logger = logging.getLogger(__name__)

Destination = Union[str, os.PathLike, BinaryIO, None]


class ObjectStoreClient:
    """Client for one bucket of an S3-compatible service.

    Can be used as a context manager; the transport is closed on exit when
    the client created it.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        bucket: str,
        region: Union[Region, str] = DEFAULT_REGION,
        endpoint: Optional[str] = None,
        transport: Optional[Transport] = None,
        content_length_policy: Optional[ContentLengthPolicy] = None,
        presign_content_length: PresignContentLength = PresignContentLength.PUT_ONLY,
    ):
        """Initialize the client.

        Args:
            access_key: Access key ID.
            secret_key: Secret access key.
            bucket: Bucket name.
            region: Region enum member or identifier.
            endpoint: Base URL overriding the region's AWS endpoint, for
                     S3-compatible services. Any region string is accepted
                     with a custom endpoint.
            transport: HTTP transport. Defaults to a new httpx transport.
            content_length_policy: Whether Content-Length is signed. Defaults
                                  to leaving it to the transport when the
                                  transport sets it itself.
            presign_content_length: Which presigned methods get a known
                                   content length signed in.
        """
        if not bucket:
            raise ValueError("Bucket name must not be empty")
        self.credentials = Credentials(access_key, secret_key)
        self.bucket = bucket

        if endpoint is None:
            region = Region.parse(region)
            endpoint = f"https://{endpoint_host(region)}"
        self.region = region.value if isinstance(region, Region) else region
        self.endpoint = endpoint.rstrip("/")

        self._owns_transport = transport is None
        self.transport = transport or build_transport()

        if content_length_policy is None:
            content_length_policy = (
                ContentLengthPolicy.TRANSPORT
                if self.transport.sets_content_length
                else ContentLengthPolicy.SIGNED
            )
        self.presign_content_length = presign_content_length

        self.signer = Signer(
            self.credentials,
            self.region,
            key_cache=SigningKeyCache(self.credentials.secret_key),
        )
        self.envelopes = EnvelopeBuilder(
            self.endpoint,
            self.signer,
            content_length_policy=content_length_policy,
        )

    def __repr__(self) -> str:
        return f"<ObjectStoreClient bucket={self.bucket!r} at {self.endpoint!r}>"

    def _send(
        self,
        envelope: RequestEnvelope,
        destination: Optional[BinaryIO] = None,
    ) -> Response:
        response = self.transport.send(
            envelope.method,
            envelope.url,
            envelope.headers,
            body=envelope.body,
            content_length=envelope.content_length,
            destination=destination,
        )
        logger.info("%s %s -> %d", envelope.method, envelope.url, response.status_code)
        return response

    def request(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, Any]] = None,
        body: Body = None,
    ) -> OperationResult:
        """Send an arbitrary signed request.

        Args:
            method: HTTP method.
            path: Path below the endpoint, already percent-encoded.
            query: Query parameters.
            headers: Extra headers.
            body: Request body. Its hash must be passed in the
                 ``x-amz-content-sha256`` header unless it is empty.
        """
        envelope = self.envelopes.build(method, path, query=query, headers=headers, body=body)
        response = self._send(envelope)
        return OperationResult(response.status_code, response.headers, response.body)

    def put(
        self,
        key: str,
        payload: PayloadLike,
        acl: CannedACL = CannedACL.PRIVATE,
        storage_class: StorageClass = StorageClass.STANDARD,
        encryption: Optional[ServerSideEncryption] = None,
        headers: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        """Upload an object.

        Args:
            key: Object key.
            payload: File path, bytes or text, open binary stream, or
                    PayloadSource.
            acl: Canned ACL for the object.
            storage_class: Storage redundancy class.
            encryption: Server-side encryption to request, if any.
            headers: Extra headers; these override the generated ones.

        Returns:
            OperationResult with the raw response body.
        """
        if encryption is not None:
            headers = merge_headers(
                {AmzHeader.ENCRYPTION.value: encryption.value}, headers
            )

        source = as_payload(payload)
        owns_source = source is not payload
        try:
            metadata = analyze(source, acl=acl, storage_class=storage_class)
            envelope = self.envelopes.build(
                "PUT",
                object_path(self.bucket, key),
                headers=headers,
                body=source.open(),
                metadata=metadata,
            )
            response = self._send(envelope)
        finally:
            if owns_source:
                source.close()
        return OperationResult(response.status_code, response.headers, response.body)

    def get(self, key: str, destination: Destination = None) -> OperationResult:
        """Download an object.

        Args:
            key: Object key.
            destination: Where to write the body. A path is opened for
                        writing (the result is the path); an open binary
                        stream is written to, flushed and rewound (the
                        result is the stream). With no destination the
                        body is returned as bytes.

        Returns:
            OperationResult. On a non-2xx status the result is the raw
            error body; a destination path is removed and a destination
            stream is left as it was.
        """
        envelope = self.envelopes.build("GET", object_path(self.bucket, key))

        if destination is None:
            response = self._send(envelope)
            return OperationResult(response.status_code, response.headers, response.body)

        if isinstance(destination, (str, os.PathLike)):
            path = Path(destination)
            try:
                with open(path, "wb") as handle:
                    response = self._send(envelope, destination=handle)
            except Exception:
                path.unlink(missing_ok=True)
                raise
            if not 200 <= response.status_code < 300:
                path.unlink(missing_ok=True)
                return OperationResult(response.status_code, response.headers, response.body)
            return OperationResult(response.status_code, response.headers, destination)

        start = destination.tell()
        response = self._send(envelope, destination=destination)
        if not 200 <= response.status_code < 300:
            return OperationResult(response.status_code, response.headers, response.body)
        destination.flush()
        destination.seek(start)
        return OperationResult(response.status_code, response.headers, destination)

    def delete(self, key: str) -> OperationResult:
        """Delete an object. S3 answers 204 whether or not the key existed."""
        envelope = self.envelopes.build("DELETE", object_path(self.bucket, key))
        response = self._send(envelope)
        return OperationResult(response.status_code, response.headers, response.body)

    def list(
        self,
        prefix: Optional[str] = None,
        marker: Optional[str] = None,
        max_keys: Optional[int] = None,
        delimiter: Optional[str] = None,
    ) -> OperationResult:
        """List objects in the bucket.

        Returns:
            OperationResult whose result is a list of ListingEntry on
            HTTP 200, or the raw body on any other status.

        Raises:
            ListingParseError: If a 200 response body is not valid XML.
        """
        params = {
            "prefix": prefix,
            "marker": marker,
            "max-keys": max_keys,
            "delimiter": delimiter,
        }
        query = {name: value for name, value in params.items() if value is not None}

        envelope = self.envelopes.build("GET", bucket_path(self.bucket), query=query)
        response = self._send(envelope)

        if response.status_code != 200:
            logger.warning("Listing %s failed with HTTP %d", self.bucket, response.status_code)
            return OperationResult(response.status_code, response.headers, response.body)
        return OperationResult(
            response.status_code,
            response.headers,
            parse_listing(response.body),
        )

    def presigned_base_url(self) -> str:
        """Virtual-host style base URL for presigned links.

        For AWS endpoints the bucket becomes part of the host; custom
        endpoints keep path-style addressing.
        """
        parts = urlsplit(self.endpoint)
        if parts.hostname and parts.hostname.endswith("amazonaws.com"):
            return f"{parts.scheme}://{self.bucket}.{parts.netloc}"
        return f"{self.endpoint}/{self.bucket}"

    def presign(
        self,
        key: str,
        ttl: int = DEFAULT_PRESIGN_TTL,
        method: str = "GET",
        timestamp: Optional[Timestamp] = None,
        content_length: Optional[int] = None,
    ) -> str:
        """Build a presigned URL for an object.

        Args:
            key: Object key.
            ttl: Seconds the URL stays valid.
            method: HTTP method the URL is for.
            timestamp: Reference time; defaults to now.
            content_length: Exact upload size to bind the URL to, signed
                           according to the client's presign policy.
        """
        url = f"{self.presigned_base_url()}/{encode_key(key)}"
        return self.signer.presign(
            url,
            ttl=ttl,
            method=method,
            timestamp=timestamp,
            content_length=content_length,
            content_length_policy=self.presign_content_length,
        )

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "ObjectStoreClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
