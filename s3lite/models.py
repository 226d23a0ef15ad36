"""Data models for the S3 client."""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Optional

from s3lite.constants import (
    CannedACL,
    SERVICE,
    StorageClass,
    TERMINATOR,
)
from s3lite.errors import ProtocolError, SigningInputError


@dataclass(frozen=True)
class Credentials:
    """Long-term access credentials, fixed for the lifetime of a client."""

    access_key: str
    secret_key: str = field(repr=False)

    def __post_init__(self):
        if not self.access_key:
            raise SigningInputError("Access key must not be empty")
        if not self.secret_key:
            raise SigningInputError("Secret key must not be empty")


@dataclass(frozen=True)
class Scope:
    """Credential scope binding a signature to a day, region and service."""

    date: str
    region: str
    service: str = SERVICE
    terminator: str = TERMINATOR

    def __str__(self) -> str:
        return "/".join((self.date, self.region, self.service, self.terminator))


@dataclass(frozen=True)
class CanonicalRequest:
    """Normalized form of an HTTP request, hashed before signing."""

    method: str
    path: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    def __str__(self) -> str:
        # The header block carries its own trailing newline, which yields
        # the blank line between headers and the signed-header list.
        return "\n".join((
            self.method,
            self.path,
            self.query,
            self.headers,
            self.signed_headers,
            self.payload_hash,
        ))

    def digest(self) -> str:
        """Hex SHA-256 of the canonical request text."""
        return hashlib.sha256(str(self).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ObjectMetadata:
    """Content analysis results and object settings for an upload."""

    length: int
    sha256: str
    md5: str
    content_type: str
    acl: CannedACL = CannedACL.PRIVATE
    storage_class: StorageClass = StorageClass.STANDARD

    @property
    def cache_control(self) -> str:
        return self.acl.cache_control


@dataclass(frozen=True)
class ListingEntry:
    """One object returned by a bucket listing."""

    key: str
    last_modified: Optional[str] = None
    etag: Optional[str] = None
    size: Optional[int] = None
    storage_class: Optional[str] = None
    extra: dict[str, str] = field(default_factory=dict, compare=False)

    def as_dict(self) -> dict[str, Any]:
        """Flat record keyed by lower-cased tag name."""
        record: dict[str, Any] = dict(self.extra)
        record.update({
            "key": self.key,
            "lastmodified": self.last_modified,
            "etag": self.etag,
            "size": self.size,
            "storageclass": self.storage_class,
        })
        return record


@dataclass
class Response:
    """Raw HTTP response returned by a transport."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@dataclass
class OperationResult:
    """Result of a client operation.

    ``result`` depends on the operation: bytes for an in-memory download,
    the destination for a download to a file, a list of ``ListingEntry``
    for a successful listing, and the raw body otherwise.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    result: Any = None

    @property
    def ok(self) -> bool:
        """True for any 2xx status."""
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> "OperationResult":
        """Raise ProtocolError unless the status is 2xx.

        Returns:
            self, so calls can be chained.
        """
        if not self.ok:
            body = self.result if isinstance(self.result, bytes) else None
            raise ProtocolError(
                f"Storage service returned HTTP {self.status_code}",
                status_code=self.status_code,
                body=body,
            )
        return self
