"""AWS Signature Version 4 signer.

Two modes share one primitive (HMAC-SHA256 of the string to sign with the
day-scoped signing key):

- Header-based auth: ``Signer.sign_request`` returns the ``Authorization``
  header value for a request whose headers are already assembled.
- Query-string auth: ``Signer.presign`` returns a presigned URL that
  carries its own credential, expiry and signature.

Signing never reads the clock on its own for header-based auth: the
timestamp comes from the request's ``X-Amz-Date`` or ``Date`` header, so
the same inputs always give the same signature.

http://docs.aws.amazon.com/AmazonS3/latest/API/sigv4-query-string-auth.html
"""

import hmac
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime, parsedate_to_datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union
from urllib.parse import SplitResult, urlsplit

from s3lite.canonical import (
    build_canonical_request,
    canonical_query_string,
    split_query,
    uri_encode,
)
from s3lite.constants import (
    ALGORITHM,
    AMZ_DATE_FORMAT,
    AmzHeader,
    DEFAULT_PRESIGN_TTL,
    MAX_PRESIGN_TTL,
    PresignParam,
    UNSIGNED_PAYLOAD,
)
from s3lite.errors import SigningInputError
from s3lite.keys import SigningKeyCache
from s3lite.models import CanonicalRequest, Credentials, Scope

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, str]


class PresignContentLength(Enum):
    """When a known content length is signed into a presigned URL.

    Signing Content-Length binds the URL to one exact body size; the
    server then rejects uploads of any other size.
    """

    NEVER = "never"
    PUT_ONLY = "put-only"
    ALWAYS = "always"

    def applies_to(self, method: str) -> bool:
        if self is PresignContentLength.ALWAYS:
            return True
        if self is PresignContentLength.PUT_ONLY:
            return method.upper() == "PUT"
        return False


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _require_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() != timedelta(0):
        raise SigningInputError(f"Timestamp must be timezone-aware UTC: {value!r}")
    return value


def parse_timestamp(value: Timestamp) -> datetime:
    """Parse a request timestamp into an aware UTC datetime.

    Accepts an aware UTC ``datetime``, an ISO 8601 basic string
    (``20130524T000000Z``) or an HTTP-date (``Fri, 24 May 2013 00:00:00 GMT``).

    Raises:
        SigningInputError: If the value is naive, not UTC or unparsable.
    """
    if isinstance(value, datetime):
        return _require_utc(value)
    if not isinstance(value, str):
        raise SigningInputError(f"Unsupported timestamp type: {type(value).__name__}")

    text = value.strip()
    try:
        return datetime.strptime(text, AMZ_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        raise SigningInputError(f"Unparsable timestamp: {value!r}")
    return _require_utc(parsed)


def normalize_timestamp(value: Timestamp) -> str:
    """Return a timestamp in the ``YYYYMMDDTHHMMSSZ`` form used for signing."""
    return parse_timestamp(value).strftime(AMZ_DATE_FORMAT)


def http_date(value: datetime) -> str:
    """Format a UTC datetime as an HTTP ``Date`` header value."""
    return format_datetime(_require_utc(value).astimezone(timezone.utc), usegmt=True)


def string_to_sign(timestamp: str, scope: Scope, canonical_request: CanonicalRequest) -> str:
    """Build the string to sign from its three inputs."""
    return "\n".join((ALGORITHM, timestamp, str(scope), canonical_request.digest()))


def _split_url(url: str) -> SplitResult:
    try:
        parts = urlsplit(url)
        parts.port  # raises on a non-numeric or out-of-range port
    except ValueError as e:
        raise SigningInputError(f"Malformed URL: {url!r}") from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise SigningInputError(f"URL must be absolute http(s) with a host: {url!r}")
    return parts


DEFAULT_PORTS = {"http": 80, "https": 443}


def host_header(parts: SplitResult) -> str:
    """Host header value for a split URL, without the scheme's default port."""
    host = parts.hostname or ""
    if parts.port is not None and parts.port != DEFAULT_PORTS.get(parts.scheme):
        host = f"{host}:{parts.port}"
    return host


def _find_header(headers: Mapping[str, Any], name: AmzHeader) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name.value:
            return str(value)
    return None


@dataclass(frozen=True)
class Authorization:
    """Result of header-based signing."""

    access_key: str
    scope: Scope
    signed_headers: str
    signature: str

    def __str__(self) -> str:
        return (
            f"{ALGORITHM} "
            f"Credential={self.access_key}/{self.scope},"
            f"SignedHeaders={self.signed_headers},"
            f"Signature={self.signature}"
        )


class Signer:
    """Signs requests for one set of credentials and one region.

    Holds no per-request state; a single instance can be shared across
    threads. Signing keys are cached per (date, region).
    """

    def __init__(
        self,
        credentials: Credentials,
        region: str,
        key_cache: Optional[SigningKeyCache] = None,
    ):
        """Initialize the signer.

        Args:
            credentials: Access key and secret.
            region: Region identifier placed in the credential scope.
            key_cache: Optional shared signing-key cache; it must derive
                      from the same secret. A private one is created
                      when omitted.
        """
        if not region:
            raise SigningInputError("Region must not be empty")
        self.credentials = credentials
        self.region = region
        if key_cache is None:
            key_cache = SigningKeyCache(credentials.secret_key)
        elif not key_cache.derives_from(credentials.secret_key):
            raise SigningInputError("Signing-key cache was built for a different secret")
        self._key_cache = key_cache

    @property
    def key_cache(self) -> SigningKeyCache:
        return self._key_cache

    def scope(self, timestamp: str) -> Scope:
        """Credential scope for a normalized timestamp."""
        return Scope(date=timestamp[:8], region=self.region)

    def signing_key(self, date: str) -> bytes:
        """Signing key for a ``YYYYMMDD`` date in this signer's region."""
        return self._key_cache.get(date, self.region)

    def signature(self, timestamp: str, canonical_request: CanonicalRequest) -> str:
        """Hex signature of a canonical request at a normalized timestamp."""
        scope = self.scope(timestamp)
        sts = string_to_sign(timestamp, scope, canonical_request)
        logger.debug("Canonical request:\n%s", canonical_request)
        logger.debug("String to sign:\n%s", sts)

        key = self.signing_key(scope.date)
        return hmac.new(key, sts.encode("utf-8"), hashlib.sha256).hexdigest()

    def _request_timestamp(self, headers: Mapping[str, Any]) -> str:
        value = _find_header(headers, AmzHeader.DATE)
        if value is None:
            value = _find_header(headers, AmzHeader.HTTP_DATE)
        if value is None:
            raise SigningInputError("Request has neither X-Amz-Date nor Date header")
        return normalize_timestamp(value)

    def canonical_request_for(
        self,
        method: str,
        url: str,
        headers: Mapping[str, Any],
        payload_hash: Optional[str] = None,
    ) -> CanonicalRequest:
        """Canonical request for header-based auth.

        Every supplied header except ``Authorization`` is signed.

        Raises:
            SigningInputError: If the URL is not absolute, the Host header
                              is missing, or there is no payload hash.
        """
        parts = _split_url(url)

        to_sign = {
            name: value
            for name, value in headers.items()
            if name.lower() != AmzHeader.AUTHORIZATION.value
        }
        if _find_header(to_sign, AmzHeader.HOST) is None:
            raise SigningInputError("Request headers must include Host")

        if payload_hash is None:
            payload_hash = _find_header(to_sign, AmzHeader.CONTENT_SHA256)
        if payload_hash is None:
            raise SigningInputError(
                f"Request headers must include {AmzHeader.CONTENT_SHA256.value}"
            )

        query = canonical_query_string(split_query(parts.query), encoded=True)
        return build_canonical_request(
            method, parts.path, query, to_sign, payload_hash
        )

    def authorize(
        self,
        method: str,
        url: str,
        headers: Mapping[str, Any],
        payload_hash: Optional[str] = None,
    ) -> Authorization:
        """Sign a request for header-based auth.

        Args:
            method: HTTP method.
            url: Absolute request URL, path already percent-encoded.
            headers: Headers that will be sent. Must include ``Host``, a
                    timestamp (``X-Amz-Date`` or ``Date``) and, unless
                    ``payload_hash`` is given, ``x-amz-content-sha256``.
            payload_hash: Overrides the content hash header when given.

        Returns:
            The Authorization; ``str()`` of it is the header value.

        Raises:
            SigningInputError: On malformed URL, headers or timestamp.
        """
        timestamp = self._request_timestamp(headers)
        canonical = self.canonical_request_for(method, url, headers, payload_hash)
        return Authorization(
            access_key=self.credentials.access_key,
            scope=self.scope(timestamp),
            signed_headers=canonical.signed_headers,
            signature=self.signature(timestamp, canonical),
        )

    def sign_request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, Any],
        payload_hash: Optional[str] = None,
    ) -> str:
        """Compute the ``Authorization`` header value for a request.

        Returns:
            ``AWS4-HMAC-SHA256 Credential=...,SignedHeaders=...,Signature=...``
        """
        return str(self.authorize(method, url, headers, payload_hash))

    def presign(
        self,
        url: str,
        ttl: int = DEFAULT_PRESIGN_TTL,
        method: str = "GET",
        timestamp: Optional[Timestamp] = None,
        content_length: Optional[int] = None,
        content_length_policy: PresignContentLength = PresignContentLength.PUT_ONLY,
    ) -> str:
        """Build a presigned URL for one request.

        Args:
            url: Absolute object URL, path already percent-encoded. Any
                query parameters already present are signed as well.
            ttl: Seconds the URL stays valid (1 to 604800).
            method: HTTP method the URL is valid for.
            timestamp: Reference time the validity window starts from.
                      Defaults to now.
            content_length: Exact body size to bind the URL to.
            content_length_policy: Which methods get ``content_length``
                                  signed into the URL.

        Returns:
            The URL with ``X-Amz-*`` parameters, ``X-Amz-Signature`` last.

        Raises:
            SigningInputError: On malformed URL, timestamp or TTL.
        """
        if isinstance(ttl, bool) or not isinstance(ttl, int) or not 0 < ttl <= MAX_PRESIGN_TTL:
            raise SigningInputError(
                f"TTL must be between 1 and {MAX_PRESIGN_TTL} seconds, got {ttl!r}"
            )
        parts = _split_url(url)
        amz_date = normalize_timestamp(timestamp if timestamp is not None else utc_now())
        scope = self.scope(amz_date)

        headers = {AmzHeader.HOST.value: host_header(parts)}
        if content_length is not None:
            if content_length_policy.applies_to(method):
                headers[AmzHeader.CONTENT_LENGTH.value] = str(content_length)
            else:
                logger.debug(
                    "Content length not signed for %s (policy %s)",
                    method, content_length_policy.value,
                )
        signed_headers = ";".join(sorted(headers))

        params = split_query(parts.query)
        params.extend([
            (PresignParam.ALGORITHM.value, ALGORITHM),
            (PresignParam.CREDENTIAL.value,
             uri_encode(f"{self.credentials.access_key}/{scope}")),
            (PresignParam.DATE.value, amz_date),
            (PresignParam.EXPIRES.value, str(ttl)),
            (PresignParam.SIGNED_HEADERS.value, uri_encode(signed_headers)),
        ])
        query = canonical_query_string(params, encoded=True)

        canonical = build_canonical_request(
            method, parts.path, query, headers, UNSIGNED_PAYLOAD
        )
        signature = self.signature(amz_date, canonical)

        return (
            f"{parts.scheme}://{parts.netloc}{canonical.path}"
            f"?{query}&{PresignParam.SIGNATURE.value}={signature}"
        )


def verify_presigned_url(signer: Signer, url: str, method: str = "GET") -> bool:
    """Recompute the signature of a presigned URL and compare it.

    Only the URL itself is checked; expiry is not evaluated. Useful for
    services that hand out URLs and want to validate them locally.
    """
    parts = _split_url(url)
    params = split_query(parts.query)
    given = [v for k, v in params if k == PresignParam.SIGNATURE.value]
    if len(given) != 1:
        return False
    params = [(k, v) for k, v in params if k != PresignParam.SIGNATURE.value]

    values = dict(params)
    amz_date = values.get(PresignParam.DATE.value)
    signed_names = values.get(PresignParam.SIGNED_HEADERS.value, "")
    if amz_date is None:
        return False
    if signed_names.replace("%3B", ";").split(";") != [AmzHeader.HOST.value]:
        # Only host-signed URLs can be checked without the original request
        return False

    canonical = build_canonical_request(
        method,
        parts.path,
        canonical_query_string(params, encoded=True),
        {AmzHeader.HOST.value: host_header(parts)},
        UNSIGNED_PAYLOAD,
    )
    expected = signer.signature(normalize_timestamp(amz_date), canonical)
    return hmac.compare_digest(expected, given[0])
